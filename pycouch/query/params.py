from typing import Any, Callable, Mapping, Optional, Sequence

from pycouch.connection.exceptions import InvalidInvocationError
from pycouch.connection.types import ViewParams
from pycouch.query.consts import (
    DESCENDING,
    END_KEY,
    KEY,
    LIMIT,
    SKIP,
    SORT_ASC,
    SORT_DSC,
    START_KEY,
)

Callback = Callable[[Optional[BaseException], Any], Any]

# positional slots after (startkey, endkey, sort)
_MANY_SLOTS = (LIMIT, SKIP)
_ONE_SLOTS = (SKIP,)


def split_callback(args: Sequence[Any]) -> tuple[tuple[Any, ...], Optional[Callback]]:
    """Strip a trailing completion handler off a positional argument list."""
    if args and callable(args[-1]):
        return tuple(args[:-1]), args[-1]
    return tuple(args), None


def _check_count(name: str, value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidInvocationError(f"{name} must be a non-negative integer, got {value!r}")
    return value


def normalize_view_args(args: Sequence[Any], many: bool = True) -> tuple[ViewParams, Optional[Callback]]:
    """
    Map a flexible positional call onto view query parameters.

    Two calling conventions are accepted:

    * ``(None, params)``: ``params`` is passed through to the database as is.
    * ``(startkey, endkey=None, sort=None, limit=None, skip=None)``: with a single key the query is an
      exact match on ``key``, with two it is a ``startkey``/``endkey`` range. Single result queries
      (``many=False``) have no ``limit`` slot, the fourth argument is ``skip``.

    With ``sort="dsc"`` the range bounds are swapped: the database walks the index backwards from
    ``startkey``, so the caller's upper bound has to come first.

    A trailing callable is returned separately as the completion handler.
    """
    args, callback = split_callback(args)

    if not args:
        return {}, callback

    startkey, *rest = args
    if startkey is None:
        explicit = rest[0] if rest else None
        if not isinstance(explicit, Mapping) or len(rest) > 1:
            raise InvalidInvocationError("a null first argument must be followed by a params mapping only")
        return dict(explicit), callback

    slots = _MANY_SLOTS if many else _ONE_SLOTS
    if len(rest) > 2 + len(slots):
        raise InvalidInvocationError(f"too many positional arguments: {len(args)}")

    endkey = rest[0] if len(rest) > 0 else None
    sort = rest[1] if len(rest) > 1 else None
    counts = dict(zip(slots, rest[2:]))

    params: ViewParams = {}
    if endkey is None:
        params[KEY] = startkey
    else:
        params[START_KEY] = startkey
        params[END_KEY] = endkey

    if sort not in (None, SORT_ASC, SORT_DSC):
        raise InvalidInvocationError(f"sort must be {SORT_ASC!r} or {SORT_DSC!r}, got {sort!r}")

    if sort == SORT_DSC:
        params[DESCENDING] = True
        if KEY not in params:
            params[START_KEY], params[END_KEY] = endkey, startkey

    for name, value in counts.items():
        if value:
            params[name] = _check_count(name, value)

    return params, callback
