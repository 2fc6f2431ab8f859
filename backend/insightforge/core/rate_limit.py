"""
Upload rate limiting.

The limit string is read from settings on every request, so
RATE_LIMIT_PER_MINUTE changes apply after reload_settings().
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from insightforge.core.config import get_settings

limiter = Limiter(key_func=get_remote_address)


def upload_rate_limit() -> str:
    return f"{get_settings().rate_limit_per_minute}/minute"
