"""Helpers for formatting exchange log messages."""

from typing import Optional


def log_message(message: str, correlation_id: Optional[str] = None) -> str:
    """Prefix a log message with the exchange's correlation id."""
    if correlation_id:
        return f"[Correlation ID: {correlation_id}] {message}"
    return message


def exception_details(exc: BaseException, log_pii: bool = False) -> str:
    """Describe an exception for logging. Without ``log_pii`` only the class name is kept."""
    if log_pii:
        return f"{type(exc).__name__}: {exc}"
    return type(exc).__name__
