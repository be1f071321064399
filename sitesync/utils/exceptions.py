"""
SiteSync Custom Exceptions
=========================

Exception hierarchy for SiteSync with error codes, context information,
and user-friendly error messages.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration errors (C001-C099)
    CONFIG_INVALID = "C001"
    CONFIG_MISSING = "C002"

    # Feed / transport errors (F001-F099)
    FEED_INVALID_URL = "F001"
    FEED_FETCH_TIMEOUT = "F002"
    FEED_PARSE_ERROR = "F003"
    FEED_NETWORK_ERROR = "F004"
    FEED_ACCESS_DENIED = "F005"
    FEED_NOT_FOUND = "F006"

    # Manifest errors (M001-M099)
    MANIFEST_MISSING = "M001"
    MANIFEST_PARSE_ERROR = "M002"
    MANIFEST_INVALID = "M003"
    MANIFEST_WRITE_FAILED = "M004"
    MANIFEST_SEQUENCE_CONFLICT = "M005"

    # Rendering / document errors (R001-R099)
    RENDER_FAILED = "R001"
    DOCUMENT_WRITE_FAILED = "R002"

    # Notification errors (N001-N099)
    NOTIFICATION_FAILED = "N001"
    NOTIFICATION_REJECTED = "N002"

    # Validation errors (V001-V099)
    VALIDATION_REQUIRED_FIELD = "V001"
    VALIDATION_INVALID_FORMAT = "V002"

    # System errors (S001-S099)
    SYSTEM_PERMISSION_DENIED = "S002"
    SYSTEM_DISK_FULL = "S003"


class SiteSyncError(Exception):
    """Base exception for all SiteSync errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: bool = False,
    ):
        """Initialize SiteSync error.

        Args:
            message: Technical error message for logging
            error_code: Categorized error code
            context: Additional context information
            user_message: User-friendly error message
            recoverable: Whether the error is recoverable
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.user_message = user_message or message
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": str(self),
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        """String representation with error code."""
        if self.error_code:
            return f"[{self.error_code.value}] {super().__str__()}"
        return super().__str__()


def _split_kwargs(kwargs: Dict[str, Any], *consumed: str) -> Dict[str, Any]:
    return {k: v for k, v in kwargs.items() if k not in consumed}


class ConfigurationError(SiteSyncError):
    """Configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        """Initialize configuration error.

        Args:
            message: Error message
            config_key: Configuration key that caused the error
            **kwargs: Additional arguments for SiteSyncError
        """
        context = kwargs.get("context", {})
        if config_key:
            context["config_key"] = config_key

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.CONFIG_INVALID),
            context=context,
            user_message=kwargs.get("user_message", f"Configuration error: {message}"),
            **_split_kwargs(kwargs, "context", "error_code", "user_message"),
        )


class FeedError(SiteSyncError):
    """Feed and API transport errors."""

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        """Initialize feed error.

        Args:
            message: Error message
            feed_url: Feed or API URL that caused the error
            **kwargs: Additional arguments for SiteSyncError
        """
        context = kwargs.get("context", {})
        if feed_url:
            context["feed_url"] = feed_url

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.FEED_NETWORK_ERROR),
            context=context,
            user_message=kwargs.get(
                "user_message", f"Feed processing failed: {message}"
            ),
            recoverable=kwargs.get("recoverable", True),
            **_split_kwargs(
                kwargs, "context", "error_code", "user_message", "recoverable"
            ),
        )


class FeedFetchError(FeedError):
    """Fetching a feed or an API page failed."""

    pass


class ManifestError(SiteSyncError):
    """Manifest load, validation and persistence errors.

    Always fatal for a run: continuing without a trustworthy manifest
    could import the same items twice.
    """

    def __init__(self, message: str, manifest_path: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if manifest_path:
            context["manifest_path"] = manifest_path

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.MANIFEST_INVALID),
            context=context,
            user_message=kwargs.get("user_message", f"Manifest error: {message}"),
            recoverable=False,
            **_split_kwargs(
                kwargs, "context", "error_code", "user_message", "recoverable"
            ),
        )


class RenderError(SiteSyncError):
    """Artifact rendering and document write errors."""

    def __init__(self, message: str, document: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if document:
            context["document"] = document

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.RENDER_FAILED),
            context=context,
            user_message=kwargs.get("user_message", "Page generation failed"),
            **_split_kwargs(kwargs, "context", "error_code", "user_message"),
        )


class NotificationError(SiteSyncError):
    """Newsletter webhook errors."""

    def __init__(self, message: str, status_code: Optional[int] = None, **kwargs):
        context = kwargs.get("context", {})
        if status_code is not None:
            context["status_code"] = status_code

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.NOTIFICATION_FAILED),
            context=context,
            user_message=kwargs.get("user_message", "Newsletter send failed"),
            recoverable=kwargs.get("recoverable", True),
            **_split_kwargs(
                kwargs, "context", "error_code", "user_message", "recoverable"
            ),
        )


class ValidationError(SiteSyncError):
    """Data validation errors."""

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        """Initialize validation error.

        Args:
            message: Error message
            field_name: Field name that failed validation
            **kwargs: Additional arguments for SiteSyncError
        """
        context = kwargs.get("context", {})
        if field_name:
            context["field_name"] = field_name

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.VALIDATION_INVALID_FORMAT),
            context=context,
            user_message=kwargs.get(
                "user_message", f"Invalid {field_name or 'input'}: {message}"
            ),
            recoverable=kwargs.get("recoverable", False),
            **_split_kwargs(
                kwargs, "context", "error_code", "user_message", "recoverable"
            ),
        )


# Exception handling utilities


def handle_exception(
    exception: Exception,
    logger,
    operation: str,
    context: Optional[Dict[str, Any]] = None,
) -> SiteSyncError:
    """Convert generic exceptions to SiteSync exceptions with proper logging.

    Args:
        exception: Original exception
        logger: Logger instance for error logging
        operation: Operation that was being performed
        context: Additional context information

    Returns:
        SiteSync exception with proper categorization
    """
    context = context or {}
    context["operation"] = operation
    context["original_exception_type"] = type(exception).__name__

    if isinstance(exception, SiteSyncError):
        logger.error(f"Operation '{operation}' failed", extra=exception.to_dict())
        return exception

    elif isinstance(exception, (ConnectionError, TimeoutError)):
        error = FeedFetchError(
            message=f"Network error during {operation}: {str(exception)}",
            error_code=ErrorCode.FEED_NETWORK_ERROR,
            context=context,
            user_message="Network connection failed",
        )

    elif isinstance(exception, PermissionError):
        error = SiteSyncError(
            message=f"Permission denied during {operation}: {str(exception)}",
            error_code=ErrorCode.SYSTEM_PERMISSION_DENIED,
            context=context,
            user_message="Access denied",
            recoverable=False,
        )

    elif isinstance(exception, FileNotFoundError):
        error = ConfigurationError(
            message=f"Required file not found during {operation}: {str(exception)}",
            error_code=ErrorCode.CONFIG_MISSING,
            context=context,
            user_message="Required file missing",
        )

    else:
        error = SiteSyncError(
            message=f"Unexpected error during {operation}: {str(exception)}",
            context=context,
            user_message="An unexpected error occurred",
            recoverable=False,
        )

    logger.error(f"Operation '{operation}' failed", extra=error.to_dict())
    return error


def get_user_friendly_message(exception: Exception) -> str:
    """Get user-friendly error message for any exception."""
    if isinstance(exception, SiteSyncError):
        return exception.user_message

    return "An unexpected error occurred. Please try again later."
