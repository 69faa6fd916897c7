import time
from typing import Callable

Clock = Callable[[], float]


def now_ms() -> float:
    """Wall clock in epoch milliseconds."""
    return time.time() * 1000.0
