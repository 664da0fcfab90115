"""Exception hierarchy for query filter compilation."""


class FilterError(Exception):
    """Base exception for filter parsing and compilation errors.

    Provides dual messaging: a sanitized user-facing message and
    internal details for logging (CWE-209 prevention). Every subclass is
    recoverable at the request boundary; malformed filters are normal input.
    """

    def __init__(
        self,
        user_message: str,
        internal_details: str = "",
        wrapped: Exception | None = None,
    ) -> None:
        super().__init__(user_message)
        self.user_message = user_message
        self.internal_details = internal_details or user_message
        self.wrapped = wrapped

    def internal(self) -> str:
        return self.internal_details


class InvalidFilterConfigurationError(FilterError):
    """Raised when a filter is not valid JSON or has an unsupported shape."""


class UnknownOperatorError(FilterError):
    """Raised when a method token matches no operator or alias."""


class MalformedRangeError(FilterError):
    """Raised when a range literal does not have exactly one separator and two bounds."""


class TypeMismatchError(FilterError):
    """Raised when a value cannot be coerced to the field's declared type."""


class UnsupportedFilterOperationError(FilterError):
    """Raised when an operator is recognized but cannot be applied here."""


class InvalidSortError(FilterError):
    """Raised when a sort parameter is malformed."""


class InvalidFieldNameError(FilterError):
    """Raised when a field or table name is invalid or empty."""


class InvalidSchemaError(FilterError):
    """Raised when a filter references a field the schema does not declare."""


class MaxDepthExceededError(FilterError):
    """Raised when condition nesting exceeds the depth limit."""


class MaxOutputLengthExceededError(FilterError):
    """Raised when SQL output length limit is exceeded."""


# Sanitized user-facing error message constants
ERR_MSG_INVALID_FILTER = "invalid filter configuration"
ERR_MSG_UNKNOWN_OPERATOR = "unknown filter method"
ERR_MSG_MALFORMED_RANGE = "malformed range value"
ERR_MSG_TYPE_MISMATCH = "filter value does not match field type"
ERR_MSG_UNSUPPORTED_OPERATION = "the requested filter operation is not supported"
ERR_MSG_INVALID_SORT = "invalid sort parameter"
ERR_MSG_UNKNOWN_FIELD = "unknown filter field"
ERR_MSG_DEPTH_EXCEEDED = "maximum filter nesting depth exceeded"
