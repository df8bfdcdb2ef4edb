"""
Usecase deadline
Every service operation runs under the configured timeout budget
"""
import asyncio
import functools
import logging

from forex.exceptions import OperationTimeoutError

logger = logging.getLogger(__name__)


def bounded(method):
    """Cancel the wrapped coroutine method after settings.APP_TIMEOUT_SECONDS"""

    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        timeout = self.settings.APP_TIMEOUT_SECONDS
        try:
            return await asyncio.wait_for(method(self, *args, **kwargs), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("%s exceeded its %.1fs deadline", method.__qualname__, timeout)
            raise OperationTimeoutError()

    return wrapper
