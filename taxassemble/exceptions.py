"""
Custom exception hierarchy for taxassemble.

Provides granular exception types so that drivers (the CLI, batch tools or a
progress UI) can tell recoverable input problems apart from programming errors
and from user cancellation.
"""


class TaxAssembleException(Exception):
    """Base exception for all taxassemble errors."""

    def __init__(self, message: str, details: dict = None):
        """
        Initialize exception with message and optional details.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class CanceledError(TaxAssembleException):
    """
    Raised when a long-running loop observes a cancellation request.

    Not a failure: callers stop cleanly and discard partial results.
    """

    def __init__(self, message: str = "Operation canceled", details: dict = None):
        super().__init__(message, details)


# Classification-tree exceptions
class ClassificationException(TaxAssembleException):
    """Base exception for classification tree errors."""
    pass


class UnknownClassificationError(ClassificationException):
    """No tree is registered under the requested classification name."""
    pass


class TreeStructureError(ClassificationException):
    """The tree has orphans, cycles or duplicate ids and cannot be addressed."""
    pass


class TreeLoadError(ClassificationException):
    """Error reading a classification tree from disk."""
    pass


# Input validation exceptions
class ValidationException(TaxAssembleException):
    """Base exception for validation errors."""
    pass


class InvalidInputFileError(ValidationException):
    """Input file is invalid or cannot be read."""
    pass


class InvalidParameterError(ValidationException):
    """Parameter value is invalid or out of range."""
    pass


class InvalidSequenceError(ValidationException):
    """Read sequence is empty or contains characters outside ACGTN."""
    pass


class TooManyErrorsError(ValidationException):
    """The number of skipped input records exceeded the configured limit."""
    pass


# Processing exceptions
class ProcessingException(TaxAssembleException):
    """Base exception for processing errors."""
    pass


class AssignmentError(ProcessingException):
    """Error during read assignment."""
    pass


class AssemblyError(ProcessingException):
    """Error during gene-centric assembly."""
    pass


class GraphInvariantError(AssemblyError):
    """An overlap graph invariant was violated (self loop, unknown node)."""
    pass


# Resource exceptions
class ResourceException(TaxAssembleException):
    """Base exception for resource-related errors."""
    pass


class OutputWriteError(ResourceException):
    """Error writing output files."""
    pass
