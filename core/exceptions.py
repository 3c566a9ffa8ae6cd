"""
Custom exceptions for the episode sync engine with structured error context.

Each exception carries a context dictionary for debugging and for the
``error_context`` extra attached to log records. Per-episode, per-batch and
per-podcast failures are converted into counters where they happen; only
configuration problems and genuinely unexpected errors reach the
orchestrator's top-level handler.

Exception Hierarchy:
    SyncException (base)
    ├── ConfigMissingError
    ├── AuthenticationError
    ├── UpstreamRequestError
    │   ├── RateLimitError
    │   └── UpstreamAuthenticationError (also an AuthenticationError)
    ├── PersistenceError
    └── UnhandledSyncError
"""

from typing import Optional, Dict, Any

from core.clock import utcnow


class SyncException(Exception):
    """
    Base exception for all sync-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (podcast, url, status code, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = utcnow()

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/storage."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


class ConfigMissingError(SyncException):
    """
    Raised when a required operational config key is absent.

    Context should include:
        - config_key: The missing key
    """
    pass


class AuthenticationError(SyncException):
    """Rejected credentials, either ours (operator key) or upstream (HTTP 401/403)."""
    pass


# ============================================================================
# Upstream Errors
# ============================================================================

class UpstreamRequestError(SyncException):
    """
    Non-success response or transport failure from the Podscan API.

    Context should include:
        - api_url: The endpoint that failed
        - status_code: HTTP status code (if a response was received)
        - response_body: Response body (truncated)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        status_code: Optional[int] = None
    ):
        super().__init__(message, context, original_exception)
        self.status_code = status_code
        if status_code is not None:
            self.context["status_code"] = status_code


class RateLimitError(UpstreamRequestError):
    """HTTP 429 from the Podscan API. Not retried inside a run."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        retry_after: Optional[int] = None,
        rate_limit_remaining: Optional[int] = None
    ):
        super().__init__(message, context, original_exception, status_code=429)
        self.retry_after = retry_after
        self.rate_limit_remaining = rate_limit_remaining
        if retry_after is not None:
            self.context["retry_after"] = retry_after
        if rate_limit_remaining is not None:
            self.context["rate_limit_remaining"] = rate_limit_remaining


class UpstreamAuthenticationError(UpstreamRequestError, AuthenticationError):
    """HTTP 401/403 from the Podscan API. Usually a bad PODSCAN_API_KEY."""
    pass


# ============================================================================
# Persistence Errors
# ============================================================================

class PersistenceError(SyncException):
    """
    Insert/update failure against the sync tables.

    Context should include:
        - operation: INSERT, UPDATE, SELECT
        - table_name: Name of the table
    """
    pass


class UnhandledSyncError(SyncException):
    """Anything unexpected that escaped to the orchestrator's top-level handler."""
    pass
