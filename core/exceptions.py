"""
Custom exceptions for the harvest engine with structured error context.

This module provides the exception hierarchy used throughout the
collection engine. Each exception includes context information
(content type, query, page, item id, url) so a log line can be
correlated with the checkpoint state at the time of failure.

Exception Hierarchy:
    HarvestException (base)
    ├── ConfigurationError
    ├── SourceError
    │   ├── APIRequestError
    │   │   ├── AuthenticationError
    │   │   ├── ResourceNotFoundError
    │   │   ├── RateLimitError
    │   │   └── NetworkError
    │   ├── WebRequestError
    │   └── PageFetchError
    ├── ItemProcessingError
    ├── MissingCredentialsError
    ├── ProxyConfigurationError
    ├── StoreError
    ├── CheckpointError
    └── RetryableError / NonRetryableError (mixins)
"""

from typing import Optional, Dict, Any
from datetime import datetime, timezone


class HarvestException(Exception):
    """
    Base exception for all harvest-related errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (content type, query, page, etc.)
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
        self.timestamp = datetime.now(timezone.utc)

        # Add timestamp to context
        self.context["error_timestamp"] = self.timestamp.isoformat()

        # Chain original exception if provided
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


# ============================================================================
# Configuration Errors
# ============================================================================

class ConfigurationError(HarvestException):
    """
    Invalid or missing required run selection.

    Fatal: raised before any network call is made.
    """
    pass


# ============================================================================
# Retry Strategy Mixins
# ============================================================================

class RetryableError(HarvestException):
    """
    Mixin for errors that should trigger retry logic.

    Use this for transient errors like:
    - Network timeouts
    - Rate limiting (HTTP 429)
    - Service unavailable (HTTP 5xx)
    """
    pass


class NonRetryableError(HarvestException):
    """
    Mixin for errors that should NOT trigger retry logic.

    Use this for permanent errors like:
    - Authentication failures (HTTP 401, 403)
    - Resource not found (HTTP 404)
    """
    pass


# ============================================================================
# Source Errors
# ============================================================================

class SourceError(HarvestException):
    """Base exception for failures talking to a TMDb source."""
    pass


class APIRequestError(SourceError):
    """
    Exception raised when a TMDb API request fails.

    Context should include:
        - path: The API path that failed
        - status_code: HTTP status code (if applicable)
        - retry_count: Number of retries attempted
    """
    pass


class AuthenticationError(NonRetryableError, APIRequestError):
    """Authentication failures (HTTP 401, 403)."""
    pass


class ResourceNotFoundError(NonRetryableError, APIRequestError):
    """Resource not found (HTTP 404)."""
    pass


class NetworkError(RetryableError, APIRequestError):
    """Timeouts, connection failures and 5xx responses."""
    pass


class RateLimitError(RetryableError, APIRequestError):
    """Rate limiting errors (HTTP 429) that should be retried with backoff."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        retry_after: Optional[float] = None
    ):
        super().__init__(message, context, original_exception)
        self.retry_after = retry_after  # Seconds to wait before retry
        if retry_after:
            self.context["retry_after"] = retry_after


class WebRequestError(SourceError):
    """
    Exception raised when a TMDb website request fails.

    Context should include:
        - url: The page URL
        - status_code: HTTP status code (if applicable)
    """
    pass


class PageFetchError(SourceError):
    """
    A listing/search page could not be fetched.

    Raised by the API pipeline to signal a page-level failure, which the
    coordinator answers with a permanent switch to web scraping.

    Attributes:
        collected: Items stored for the current pair before the failure
        page: The page that failed (where the fallback resumes)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None,
        collected: int = 0,
        page: int = 1
    ):
        super().__init__(message, context, original_exception)
        self.collected = collected
        self.page = page


# ============================================================================
# Item, Capability and Environment Errors
# ============================================================================

class ItemProcessingError(HarvestException):
    """
    A single detail fetch, extras fetch or store failed.

    Context should include:
        - content_type, item_id and, where known, query and page
    """
    pass


class MissingCredentialsError(HarvestException):
    """Extras or people collection requested without an API key."""
    pass


class ProxyConfigurationError(HarvestException):
    """Proxy acquisition failed; the run continues without a proxy."""
    pass


# ============================================================================
# Persistence Errors
# ============================================================================

class StoreError(HarvestException):
    """
    Exception raised when storing records fails.

    Context should include:
        - data_types: Record types in the failed write
        - external_id: ID of the primary record
    """
    pass


class CheckpointError(HarvestException):
    """
    Exception raised when checkpoint persistence fails.

    Context should include:
        - slot: Checkpoint slot name
        - operation: Operation that failed (load, save, clear)
    """
    pass
