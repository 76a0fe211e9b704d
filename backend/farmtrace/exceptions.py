"""
FarmTrace Backend — Custom Exception Hierarchy
================================================

What:  Application-specific exceptions for ledger and request failures.
How:   Each exception carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by the ledger contract and the invoker; caught by global handlers.

Exception Hierarchy:
    FarmTraceError (base)
    ├── ValidationError          → 400 Bad Request
    ├── UnknownFunctionError     → 400 Bad Request
    ├── NotFoundError            → 404 Not Found
    ├── DuplicateRecordError     → 409 Conflict
    └── LedgerError              → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class FarmTraceError(Exception):
    """
    Base exception for all FarmTrace application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(FarmTraceError):
    """
    Raised when ledger arguments are malformed.

    When:    Wrong argument count, non-integer produce key, path segment
             that does not split into the expected number of fields.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class UnknownFunctionError(FarmTraceError):
    """Raised when a ledger function is invoked by a name the contract does not define."""

    def __init__(self, function: str, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["function"] = function
        super().__init__(message="Invalid Smart Contract function name.", context=ctx)
        self.function = function


class NotFoundError(FarmTraceError):
    """
    Raised when a produce key has no state on the ledger.

    HTTP:    404 Not Found
    """

    def __init__(
        self,
        message: Optional[str] = None,
        resource: str = "produce",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id:
                message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class DuplicateRecordError(FarmTraceError):
    """
    Raised when recording produce under a key that already holds state.

    HTTP:    409 Conflict

    Recording never overwrites; ownership changes go through
    changeProduceHolder instead.
    """

    def __init__(self, key: str, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["key"] = key
        super().__init__(
            message=(
                "Produce with the same ID already exists in the ledger, "
                "you may want to use changeProduceHolder function"
            ),
            context=ctx,
        )
        self.key = key


class LedgerError(FarmTraceError):
    """
    Raised when the world state cannot be read or written.

    When:    Storage still failing after tenacity retries are exhausted,
             or a stored value cannot be decoded.
    HTTP:    500 Internal Server Error

    The message returned to the client is always generic; the underlying
    driver error is logged server-side only.
    """

    def __init__(
        self,
        message: str = "A ledger error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
