from functools import wraps
from typing import Tuple, Type

from structlog import get_logger
from tenacity import RetryCallState, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

logger = get_logger(__name__)


def _log_attempt(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Retrying outbound call",
        func=retry_state.fn.__name__ if retry_state.fn else None,
        attempt=retry_state.attempt_number,
        error=str(exc),
    )


def retry_api(
    tries: int = 3,
    delay: float = 1,
    backoff: float = 2,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
):
    """Retry an async call with exponential backoff.

    Only exceptions in ``retry_on`` are retried; anything else, and the last
    failure once ``tries`` is exhausted, propagates unchanged.
    """
    def decorator(func):
        retrying = retry(
            stop=stop_after_attempt(tries),
            wait=wait_exponential(multiplier=delay, exp_base=backoff),
            retry=retry_if_exception_type(retry_on),
            before_sleep=_log_attempt,
            reraise=True,
        )

        @wraps(func)
        async def wrapper(*args, **kwargs):
            return await retrying(func)(*args, **kwargs)
        return wrapper
    return decorator
