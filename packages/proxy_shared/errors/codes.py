"""Error codes understood by every proxy component.

Artifact-specific codes live beside the artifact authority factories; this
module only holds the generic fallbacks used by shared helpers.
"""

INVALID_ARGUMENT = "INVALID_ARGUMENT"
VALIDATION_ERROR = "VALIDATION_ERROR"

NOT_FOUND = "NOT_FOUND"

CONFLICT = "CONFLICT"
ALREADY_EXISTS = "ALREADY_EXISTS"

DEPENDENCY_FAILURE = "DEPENDENCY_FAILURE"
DEPENDENCY_UNAVAILABLE = "DEPENDENCY_UNAVAILABLE"

INTERNAL_ERROR = "INTERNAL_ERROR"
UNEXPECTED_EXCEPTION = "UNEXPECTED_EXCEPTION"
