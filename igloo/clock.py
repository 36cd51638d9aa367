#!/usr/bin/env python3

"""
Clock helpers. Every component that checks expiry takes a clock callable so
tests can pin or advance time.
"""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)
