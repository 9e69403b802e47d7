from .errors import NestingError, NotStartedError, ServerTimingError, ValidationError
from .formatting import format_duration, format_number
from .validation import normalize_label, validate_description, validate_label, validate_precision
