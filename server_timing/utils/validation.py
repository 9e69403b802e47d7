import math
import re
from collections.abc import Mapping
from typing import Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ..schemas.timing_label import LabelSpec, TimingLabel
from .errors import ValidationError

# https://httpwg.org/specs/rfc7230.html#rfc.section.3.2.6
# labels are a "token"
LABEL_RE = re.compile(r"[A-Za-z0-9!#$%&'*+\-.^_`|~]+")
# descriptions are sent as a quoted-string without escaping, so a bare quote
# is the one thing that can never be allowed through
DESCRIPTION_RE = re.compile(r'"')


def validate_label(label: str) -> str:
    if not isinstance(label, str) or LABEL_RE.fullmatch(label) is None:
        raise ValidationError(f"'{label}' is not a valid label")
    return label


def validate_description(description: Optional[str]) -> Optional[str]:
    if description is None:
        return None
    if not isinstance(description, str) or DESCRIPTION_RE.search(description):
        raise ValidationError(f"'{description}' is not a valid description")
    return description


def normalize_label(spec: LabelSpec) -> TimingLabel:
    """Turn any accepted label form into a validated :class:`TimingLabel`."""
    if isinstance(spec, TimingLabel):
        detailed = spec
    elif isinstance(spec, str):
        detailed = TimingLabel(label=spec)
    elif isinstance(spec, Mapping):
        try:
            detailed = TimingLabel.model_validate(dict(spec))
        except PydanticValidationError as exc:
            errors = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
            )
            raise ValidationError(f"invalid timing label {dict(spec)!r}: {errors}") from exc
    else:
        raise ValidationError(
            f"timing label must be a string or a mapping, got {type(spec).__name__}"
        )

    validate_label(detailed.label)
    validate_description(detailed.description)
    if detailed.description == "":
        detailed = detailed.model_copy(update={"description": None})
    return detailed


def validate_precision(precision: Union[int, float]) -> Union[int, float]:
    """Return ``math.inf`` or a non-negative ``int`` number of decimals."""
    if isinstance(precision, bool) or not isinstance(precision, (int, float)):
        raise ValidationError(f"precision must be a number, got {precision!r}")
    if precision == math.inf:
        return math.inf
    if math.isnan(precision) or precision < 0 or precision != int(precision):
        raise ValidationError(
            f"precision must be a non-negative integer or infinity, got {precision!r}"
        )
    return int(precision)
