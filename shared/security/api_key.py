"""
Shared secret for service-to-service calls.

The payment gateway adapter sends it in ``X-Internal-API-Key`` when it relays
a payment result. Without INTERNAL_API_KEY the app still starts (local runs,
tests) but warns and uses a placeholder that must never reach production.
"""
import os
import secrets
import warnings

_INTERNAL_API_KEY: str = os.getenv("INTERNAL_API_KEY", "")

if not _INTERNAL_API_KEY:
    warnings.warn(
        "INTERNAL_API_KEY is not set. Payment callbacks accept an insecure "
        "placeholder key. Set this env var in production!",
        stacklevel=2,
    )
    _INTERNAL_API_KEY = "insecure-default-change-me"

INTERNAL_API_KEY: str = _INTERNAL_API_KEY


def verify_api_key(provided_key: str | None) -> bool:
    """Constant-time comparison against the configured key."""
    if not provided_key:
        return False
    return secrets.compare_digest(str(provided_key), INTERNAL_API_KEY)
