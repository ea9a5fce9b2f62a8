"""
Waiting utilities for container and chain synchronization.
"""

import logging
import time
from collections.abc import Callable
from typing import Any, TypeVar

from chaincontainers.errors import WaitTimeoutError

logger = logging.getLogger(__name__)


def _poll(attempt: Callable[[], bool], timeout: float, step: float, fatal=()) -> bool:
    """
    Call ``attempt`` every ``step`` seconds until it returns True or ``timeout``
    seconds of wall-clock time have passed, time spent inside ``attempt``
    included. One final attempt is made at the deadline.
    """
    deadline = time.monotonic() + timeout
    while True:
        try:
            if attempt():
                return True
        except fatal:
            raise
        except Exception as e:
            ety = type(e)
            logger.warning(f"caught exception {ety}, will still wait for timeout: {e}")

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return False
        time.sleep(min(step, remaining))


def wait_until(
    fn: Callable[[], Any],
    error_with: str = "Timed out",
    timeout: float = 30,
    step: float = 0.5,
    fatal: tuple[type[BaseException], ...] = (),
):
    """
    Wait until a function call returns truth value, given time step, and timeout.
    This function waits until function call returns truth value at the interval of step seconds.

    Exceptions raised by ``fn`` are logged and polling continues, except for
    those listed in ``fatal`` which propagate immediately.

    Raises:
        WaitTimeoutError: If ``fn`` never returned a truth value
    """
    if not _poll(lambda: bool(fn()), timeout, step, fatal):
        raise WaitTimeoutError(error_with)


T = TypeVar("T")


def wait_until_with_value(
    fn: Callable[..., T],
    predicate: Callable[[T], bool],
    error_with: str = "Timed out",
    timeout: float = 5,
    step: float = 0.5,
    debug=False,
) -> T:
    """
    Similar to `wait_until` but this returns the value of the function.
    This also takes another predicate which acts on the function value and returns a bool
    """
    found: list[T] = []

    def attempt() -> bool:
        r = fn()
        if debug:
            logger.debug(f"Waiting.. current value: {r}")
        if predicate(r):
            found.append(r)
            return True
        return False

    if not _poll(attempt, timeout, step):
        raise WaitTimeoutError(error_with)
    return found[0]
