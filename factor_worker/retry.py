"""
Fixed-delay retry combinator.
"""
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass
class RetryResult(Generic[T]):
    """Outcome of a retried call."""
    succeeded: bool
    attempts: int
    value: Optional[T] = None
    error: Optional[BaseException] = None


def _always(_: Any) -> bool:
    return True


def retry_call(
    func: Callable[[], T],
    attempts: int,
    delay: float,
    is_success: Callable[[T], bool] = _always,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    operation_name: str = "operation",
    sleep: Callable[[float], None] = time.sleep
) -> RetryResult[T]:
    """
    Call ``func`` until it succeeds or ``attempts`` calls have been made.

    A call fails if it raises one of ``retry_on`` or its return value does not
    satisfy ``is_success``. Other exceptions propagate immediately. There is no
    delay after the final attempt.

    Args:
        func: Zero-argument callable to invoke
        attempts: Total number of calls allowed (>= 1)
        delay: Seconds to wait between calls
        is_success: Predicate applied to each return value
        retry_on: Exception types treated as retryable failures
        operation_name: Name used in log messages
        sleep: Sleep function (injectable for tests)

    Returns:
        RetryResult with the last value or error and the number of calls made
    """
    if attempts < 1:
        raise ValueError(f"attempts must be >= 1, got {attempts}")

    value: Optional[T] = None
    error: Optional[BaseException] = None

    for attempt in range(1, attempts + 1):
        try:
            value = func()
            error = None
            if is_success(value):
                return RetryResult(succeeded=True, attempts=attempt, value=value)
            problem = f"unsuccessful result {value!r}"
        except retry_on as e:
            value = None
            error = e
            problem = str(e)

        if attempt < attempts:
            logger.warning(
                f"{operation_name} failed (attempt {attempt}/{attempts}): {problem}. "
                f"Retrying in {delay}s..."
            )
            sleep(delay)
        else:
            logger.error(f"{operation_name} failed after {attempts} attempts: {problem}")

    return RetryResult(succeeded=False, attempts=attempts, value=value, error=error)
