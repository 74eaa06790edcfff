from datetime import datetime, timezone
from typing import Callable

# Источник "текущего времени"; в тестах подменяется фиксированным
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
