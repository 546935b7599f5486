"""
Authentication Module
Bearer token decoding and role checks
"""

from app.auth.dependencies import (
    create_access_token,
    decode_access_token,
    get_current_user,
    get_admin_user,
    verify_cron_secret
)

__all__ = [
    "create_access_token",
    "decode_access_token",
    "get_current_user",
    "get_admin_user",
    "verify_cron_secret",
]
