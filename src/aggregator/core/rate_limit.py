# src/aggregator/core/rate_limit.py
from slowapi import Limiter
from slowapi.util import get_remote_address

from aggregator.core.config import get_settings

limiter = Limiter(
    key_func=get_remote_address,
    enabled=get_settings().rate_limit_enabled,
)
