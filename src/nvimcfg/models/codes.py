"""Stable diagnostic codes."""

SYNTAX_ERROR = "SYNTAX_ERROR"
DOCUMENT_TOO_LARGE = "DOCUMENT_TOO_LARGE"
READ_ERROR = "READ_ERROR"

UNKNOWN_OPTION = "UNKNOWN_OPTION"
OPTION_TYPE_MISMATCH = "OPTION_TYPE_MISMATCH"
INVALID_OPTION_VALUE = "INVALID_OPTION_VALUE"
DEPRECATED_OPTION = "DEPRECATED_OPTION"
UNKNOWN_EVENT = "UNKNOWN_EVENT"
MISSING_KNOWN_DEPENDENCY = "MISSING_KNOWN_DEPENDENCY"
DUPLICATE_PLUGIN = "DUPLICATE_PLUGIN"

UNRESOLVED_DEPENDENCY = "UNRESOLVED_DEPENDENCY"
CYCLIC_DEPENDENCY = "CYCLIC_DEPENDENCY"

MISSING_RUNTIME_PATH = "MISSING_RUNTIME_PATH"

TRANSFORM_TARGET_NOT_FOUND = "TRANSFORM_TARGET_NOT_FOUND"
TRANSFORM_MALFORMED = "TRANSFORM_MALFORMED"
WRITE_FAILED = "WRITE_FAILED"
