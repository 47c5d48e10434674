"""Decorators shared by loading entry points."""

import functools
import logging
import time
from typing import Callable

log = logging.getLogger(__name__)


def measure_time(func: Callable) -> Callable:
    """Log wall time of every call to ``func``, including calls that raise."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        succeeded = False
        try:
            result = func(*args, **kwargs)
            succeeded = True
            return result
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            outcome = "completed" if succeeded else "failed"
            log.info(f"{func.__qualname__} {outcome} in {elapsed_ms:.1f} ms")

    return wrapper
