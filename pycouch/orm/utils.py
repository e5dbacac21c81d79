import asyncio
import re
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

T = TypeVar("T")

_WORD_BOUNDARY = re.compile(r"[-_\s]+(.)?")


def camelize(value: str) -> str:
    """
    ``by_slug`` -> ``bySlug``. A leading separator capitalizes the first word: ``_by_slug`` -> ``BySlug``.
    """
    return _WORD_BOUNDARY.sub(lambda m: m.group(1).upper() if m.group(1) else "", value.strip())


def deliver(
    awaitable: Awaitable[T], callback: Optional[Callable[[Optional[BaseException], Any], Any]] = None
) -> Union[Awaitable[T], "asyncio.Task[T]"]:
    """
    Return ``awaitable`` as is, or schedule it and report to ``callback(error, result)`` once done.

    The callback form needs a running event loop; the scheduled task is returned so callers can
    still await or cancel it.
    """
    if callback is None:
        return awaitable

    task = asyncio.ensure_future(awaitable)

    def _done(fut: "asyncio.Future[T]"):
        if fut.cancelled():
            callback(asyncio.CancelledError(), None)
        elif fut.exception() is not None:
            callback(fut.exception(), None)
        else:
            callback(None, fut.result())

    task.add_done_callback(_done)
    return task
