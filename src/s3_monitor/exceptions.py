# src/s3_monitor/exceptions.py

"""
Shared custom exceptions for the S3 Monitor service.

Centralizing exception definitions in a separate module prevents circular
import errors between other modules that need to raise or catch them.

Exception Hierarchy:
- S3MonitorError (base)
  - RetryableError (the invocation may succeed if Lambda re-drives it)
    - TransportFailureError
    - EmissionTimeoutError
    - InsufficientTimeError
    - FunctionMetadataThrottlingError
  - NonRetryableError (re-driving will not help)
    - ValidationError
      - InvalidArgumentError
      - InvalidS3EventError
    - ConfigurationError
      - InvalidCollectorUrlError
    - FunctionMetadataError
    - InterruptedWaitError
    - CoordinatorStateError
"""

from typing import Any, Dict, Optional


class S3MonitorError(Exception):
    """Base exception for all S3 Monitor service errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        correlation_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = dict(context) if context else {}  # Copy context to prevent mutation
        self.correlation_id = correlation_id

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "correlation_id": self.correlation_id,
            "retryable": isinstance(self, RetryableError),
        }


class RetryableError(S3MonitorError):
    """Base class for errors that can be retried."""

    pass


class NonRetryableError(S3MonitorError):
    """Base class for errors that should not be retried."""

    pass


# === Validation Errors ===


class ValidationError(NonRetryableError):
    """Base class for validation errors."""

    pass


class InvalidArgumentError(ValidationError):
    """Raised when a caller-supplied argument is malformed or empty."""

    def __init__(self, message: str, **kwargs):
        if "error_code" not in kwargs:
            kwargs["error_code"] = "INVALID_ARGUMENT"
        super().__init__(message, **kwargs)


class InvalidS3EventError(ValidationError):
    """Raised when S3 event structure is invalid."""

    def __init__(self, message: str, **kwargs):
        # Don't override error_code if it's already provided in kwargs
        if "error_code" not in kwargs:
            kwargs["error_code"] = "INVALID_S3_EVENT"
        super().__init__(message, **kwargs)


# === Configuration Errors ===


class ConfigurationError(NonRetryableError):
    """Raised when there's an error in the application configuration."""

    def __init__(self, message: str, **kwargs):
        if "error_code" not in kwargs:
            kwargs["error_code"] = "CONFIGURATION_ERROR"
        super().__init__(message, **kwargs)


class InvalidCollectorUrlError(ConfigurationError):
    """Raised when the function description does not hold a usable collector URL."""

    def __init__(self, function_name: str, url: Optional[str], reason: str, **kwargs):
        message = (
            f"Collector URL in description of function '{function_name}' "
            f"is invalid - '{url}': {reason}"
        )
        context = {"function_name": function_name, "url": url, "reason": reason}
        super().__init__(
            message, error_code="INVALID_COLLECTOR_URL", context=context, **kwargs
        )


# === Function Metadata Errors ===


class FunctionMetadataError(NonRetryableError):
    """Raised when the Lambda function configuration cannot be read."""

    def __init__(self, function_name: str, region: str, reason: str, **kwargs):
        message = f"Unable to read configuration of function '{function_name}' in {region}: {reason}"
        context = {"function_name": function_name, "region": region}
        if "context" in kwargs:
            context.update(kwargs.pop("context"))
        if "error_code" not in kwargs:
            kwargs["error_code"] = "FUNCTION_METADATA_ERROR"
        super().__init__(message, context=context, **kwargs)


class FunctionMetadataThrottlingError(RetryableError):
    """Raised when the Lambda metadata API throttles or times out."""

    def __init__(self, function_name: str, region: str, reason: str, **kwargs):
        message = f"Metadata lookup for function '{function_name}' in {region} failed transiently: {reason}"
        context = {"function_name": function_name, "region": region}
        if "context" in kwargs:
            context.update(kwargs.pop("context"))
        if "error_code" not in kwargs:
            kwargs["error_code"] = "FUNCTION_METADATA_THROTTLING"
        super().__init__(message, context=context, **kwargs)


# === Emission Errors ===


class TransportFailureError(RetryableError):
    """Raised when one or more events of a batch were not confirmed by the collector."""

    def __init__(self, failure_count: int, total_count: int, **kwargs):
        message = f"Failed to send {failure_count} of {total_count} events to collector!"
        context = {"failure_count": failure_count, "total_count": total_count}
        super().__init__(
            message, error_code="TRANSPORT_FAILURE", context=context, **kwargs
        )
        self.failure_count = failure_count
        self.total_count = total_count


class EmissionTimeoutError(RetryableError):
    """Raised when the collector has not reported every outcome before the deadline."""

    def __init__(
        self,
        timeout_seconds: float,
        success_count: int,
        failure_count: int,
        total_count: int,
        **kwargs,
    ):
        message = (
            f"Timed out after {timeout_seconds:.3f}s waiting for the collector: "
            f"{success_count + failure_count} of {total_count} outcomes reported"
        )
        context = {
            "timeout_seconds": timeout_seconds,
            "success_count": success_count,
            "failure_count": failure_count,
            "total_count": total_count,
        }
        super().__init__(
            message, error_code="EMISSION_TIMEOUT", context=context, **kwargs
        )


class InsufficientTimeError(RetryableError):
    """Raised when not enough Lambda time is left to safely emit a batch."""

    def __init__(self, remaining_time_ms: int, guard_threshold_ms: int, **kwargs):
        message = f"Insufficient time remaining for emission: {remaining_time_ms}ms"
        context = {
            "remaining_time_ms": remaining_time_ms,
            "guard_threshold_ms": guard_threshold_ms,
        }
        super().__init__(
            message, error_code="INSUFFICIENT_TIME", context=context, **kwargs
        )


class InterruptedWaitError(NonRetryableError):
    """Raised when the wait for delivery outcomes is interrupted."""

    def __init__(self, reason: str, **kwargs):
        message = f"Interrupted while waiting for delivery outcomes: {reason}"
        context = {"reason": reason}
        if "context" in kwargs:
            context.update(kwargs.pop("context"))
        super().__init__(
            message, error_code="INTERRUPTED_WAIT", context=context, **kwargs
        )


class CoordinatorStateError(NonRetryableError):
    """Raised when a coordinator is used outside its one-shot lifecycle."""

    def __init__(self, state: str, **kwargs):
        message = f"Coordinator cannot emit from state {state}; create a new one per batch"
        super().__init__(
            message,
            error_code="COORDINATOR_STATE",
            context={"state": state},
            **kwargs,
        )


# === Utility Functions ===


def is_retryable_error(error: Exception) -> bool:
    """Check if an error is retryable."""
    return isinstance(error, RetryableError)


def get_error_context(error: Exception) -> Dict[str, Any]:
    """Extract error context for logging."""
    if isinstance(error, S3MonitorError):
        return error.to_dict()
    else:
        return {
            "error_type": error.__class__.__name__,
            "message": str(error),
            "retryable": False,  # Unknown errors default to non-retryable
        }
