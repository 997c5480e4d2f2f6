"""General utility helper functions."""
from typing import Any, Callable, Optional
import logging
import time

logger = logging.getLogger(__name__)


def retry_on_exception(
    func: Callable[[], Any],
    max_attempts: int = 3,
    delay_seconds: float = 0,
    backoff_factor: float = 1.0,
    exceptions: tuple = (Exception,),
    on_retry: Optional[Callable[[int, Exception], None]] = None,
) -> Any:
    """
    Retry a function on exception.

    Args:
        func: Function to retry
        max_attempts: Maximum number of attempts
        delay_seconds: Delay between attempts in seconds
        backoff_factor: Multiplier for delay after each attempt
        exceptions: Tuple of exceptions to catch
        on_retry: Called with (attempt, exception) before the next attempt

    Returns:
        Function result

    Raises:
        The last caught exception once all attempts are used
    """
    attempt = 0
    current_delay = delay_seconds

    while True:
        try:
            return func()
        except exceptions as e:
            attempt += 1
            if attempt >= max_attempts:
                logger.error(f'Failed after {max_attempts} attempts: {str(e)}')
                raise
            logger.warning(
                f'Attempt {attempt} failed: {str(e)}. '
                f'Retrying in {current_delay}s...'
            )
            if on_retry is not None:
                on_retry(attempt, e)
            if current_delay:
                time.sleep(current_delay)
            current_delay *= backoff_factor


def is_blank(value: Optional[str]) -> bool:
    """True for None, empty and whitespace-only strings."""
    return value is None or not str(value).strip()
