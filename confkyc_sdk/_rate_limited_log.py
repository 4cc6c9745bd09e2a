"""
Rate-limited logging for repetitive wallet messages.

Waits on wallet state and polling transports report progress on every
snapshot. This module keeps those messages visible without flooding the log:
each distinct message is emitted at most once per interval.
"""
import logging
import threading
import time
from typing import Optional

from cachetools import TTLCache

logger = logging.getLogger(__name__)

# Last emission time per message key; entries expire after an hour
_last_logged: TTLCache = TTLCache(maxsize=256, ttl=3600)
_last_logged_lock = threading.RLock()


def rate_limited_log(
    message: str,
    level: str = "info",
    interval: float = 30,
    logger_instance: Optional[logging.Logger] = None
) -> bool:
    """
    Log a message unless the same message was logged within interval seconds.

    Args:
        message: Message to log
        level: Log level (debug, info, warning, error, critical)
        interval: Minimum interval between identical messages in seconds
        logger_instance: Logger to use (defaults to module logger)

    Returns:
        True if the message was emitted
    """
    log_instance = logger_instance or logger
    log_method = getattr(log_instance, level.lower(), log_instance.info)
    key = f"{log_instance.name}:{level}:{message}"

    with _last_logged_lock:
        now = time.monotonic()
        last = _last_logged.get(key)
        if last is not None and now - last < interval:
            return False
        _last_logged[key] = now

    log_method(message)
    return True


def reset() -> None:
    """Forget all emission times."""
    with _last_logged_lock:
        _last_logged.clear()
