from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TimingLabel(BaseModel):
    """Structured form of a timing label.

    ``desc`` and ``dur`` are accepted as short aliases so plain dicts such as
    ``{"label": "db", "dur": 53}`` validate the same way as the long names.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="forbid")

    label: str
    description: Optional[str] = Field(default=None, alias="desc")
    # milliseconds, supplied by the caller instead of measured
    duration: Optional[float] = Field(default=None, alias="dur", ge=0, allow_inf_nan=False)

    @field_validator("duration", mode="before")
    def reject_bool_duration(cls, v: Any) -> Any:
        if isinstance(v, bool):
            raise ValueError("duration must be a number of milliseconds, not a boolean")
        return v


LabelSpec = Union[str, Mapping[str, object], TimingLabel]
