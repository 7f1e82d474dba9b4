"""Resilience patterns module."""

from log_shipper.patterns.backoff import (
    BackoffPolicy,
    RetryExecutionResult,
    RetryExhaustedError,
)

__all__ = [
    "BackoffPolicy",
    "RetryExecutionResult",
    "RetryExhaustedError",
]
