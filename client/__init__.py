"""Python client for the BankIt category update endpoint."""

from client.category_update import (
    FALLBACK_ERROR,
    SAVED_MESSAGE,
    CategoryUpdater,
    LoggingNotifier,
    UiEffect,
    UiNotifier,
    interpret_response,
    parse_operation_id,
)

__all__ = [
    "FALLBACK_ERROR",
    "SAVED_MESSAGE",
    "CategoryUpdater",
    "LoggingNotifier",
    "UiEffect",
    "UiNotifier",
    "interpret_response",
    "parse_operation_id",
]
