"""Page-range parsing and selection."""

from __future__ import annotations

import re

from .errors import InputError
from .models import PageRange

_PAGE_SPEC = re.compile(r"^([1-9][0-9]*)(?:-([1-9][0-9]*))?$")


def parse_page_range(spec: str | None) -> PageRange:
    """Parse ``""``, ``"N"`` or ``"N-M"`` into a :class:`PageRange`.

    An empty spec means "page 1 to the last page". The two bounds of
    ``"N-M"`` are plain ASCII numbers without leading zeros and may be given
    in either order. Zero is never a valid page.
    """
    text = (spec or "").strip()
    if not text:
        return PageRange()

    match = _PAGE_SPEC.match(text)
    if not match:
        raise InputError(f'invalid page number format: "{text}" (expected e.g. "1-10")')

    first = int(match.group(1))
    last = int(match.group(2)) if match.group(2) is not None else first
    return PageRange(min(first, last), max(first, last))


def select_pages(total_pages: int, page_range: PageRange) -> list[int]:
    """Return the 1-based page numbers of ``page_range`` that actually exist."""
    last = total_pages if page_range.max_page is None else min(page_range.max_page, total_pages)
    return list(range(page_range.min_page, last + 1))
