"""
Rate Limiting
Single slowapi limiter shared by every router and registered on the app.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from ateleslie.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)
