"""
Dashboard business logic services.
"""
from .auth import (
    AuthService,
    PasswordChangeError,
    SessionRegistry,
    UserStore,
    hash_password,
    verify_password,
)
from .receipt import DEFAULT_RECEIPT_TEMPLATE, format_currency, render_receipt

__all__ = [
    "AuthService",
    "PasswordChangeError",
    "SessionRegistry",
    "UserStore",
    "hash_password",
    "verify_password",
    "DEFAULT_RECEIPT_TEMPLATE",
    "format_currency",
    "render_receipt",
]
