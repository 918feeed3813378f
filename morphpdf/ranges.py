"""Page selection parsing for range-based operations."""

from __future__ import annotations

import re
from typing import Optional

from .exceptions import EmptyExpression, InvalidToken, OutOfRange
from .types import PageSelection

_TOKEN_RE = re.compile(r"^(\d+)(?:-(\d+))?$", re.ASCII)


def resolve(expression: str, page_count: int) -> PageSelection:
    """Parse a comma-separated page expression into a :class:`PageSelection`.

    ``"1,3-5,8"`` selects pages 1, 3, 4, 5 and 8. Overlapping segments
    collapse into one page set, and the result is always ascending.

    Args:
        expression: Raw user input, e.g. ``"1-3, 7"``.
        page_count: Number of pages in the source document.

    Raises:
        EmptyExpression: If the expression is blank.
        InvalidToken: If a segment is neither ``n`` nor ``n-m``.
        OutOfRange: If a segment points outside ``[1, page_count]`` or
            its start exceeds its end.

    Validation stops at the first bad segment, scanning left to right, and
    no partial selection is produced.
    """

    if expression is None or not expression.strip():
        raise EmptyExpression()

    pages: set[int] = set()
    for segment in expression.split(","):
        token = segment.strip()
        match = _TOKEN_RE.match(token)
        if not match:
            raise InvalidToken(token)

        start = int(match.group(1))
        end = int(match.group(2)) if match.group(2) is not None else start
        if start < 1 or end < 1 or start > page_count or end > page_count or start > end:
            raise OutOfRange(token)

        pages.update(range(start, end + 1))

    return PageSelection(pages=tuple(sorted(pages)), expression=expression)


def resolve_or_all(expression: Optional[str], page_count: int) -> PageSelection:
    """Like :func:`resolve`, but a missing or blank expression selects every page."""

    if expression is None or not expression.strip():
        return PageSelection(pages=tuple(range(1, page_count + 1)), expression="")
    return resolve(expression, page_count)


__all__ = ["resolve", "resolve_or_all"]
