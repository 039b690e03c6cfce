"""Shared utilities for the BankIt web application."""

from utils.config import AppConfig, Config, normalize_context_path
from utils.formatting import format_amount, format_month

__all__ = [
    "AppConfig",
    "Config",
    "normalize_context_path",
    "format_amount",
    "format_month",
]
