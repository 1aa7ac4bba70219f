"""Page arithmetic for the contact list.

Requested page numbers and sizes are coerced rather than rejected:
anything unparsable falls back to the default, ``page`` is at least 1
and ``per_page`` is clamped to ``[1, max_per_page]``.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

DEFAULT_PER_PAGE = 5
MAX_PER_PAGE = 100


def _to_int(value: Any, default: int) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def coerce_page(value: Any) -> int:
    """Parse a requested page number; invalid or < 1 becomes 1."""
    return max(1, _to_int(value, 1))


def clamp_per_page(
    value: Any, default: int = DEFAULT_PER_PAGE, maximum: int = MAX_PER_PAGE
) -> int:
    """Parse a requested page size and clamp it to ``[1, maximum]``."""
    return min(max(1, _to_int(value, default)), maximum)


def last_page(total: int, per_page: int) -> int:
    """Number of the last page; an empty result still has page 1."""
    return max(1, math.ceil(total / per_page))


@dataclass
class Page:
    """One page of results plus the metadata clients need to navigate."""

    items: Sequence[Any]
    total: int
    current_page: int
    per_page: int
    last_page: int = field(init=False)

    def __post_init__(self):
        self.last_page = last_page(self.total, self.per_page)

    @property
    def offset(self) -> int:
        return (self.current_page - 1) * self.per_page

    @property
    def from_(self) -> int | None:
        return self.offset + 1 if self.items else None

    @property
    def to(self) -> int | None:
        return self.offset + len(self.items) if self.items else None

    def meta(self) -> dict:
        return {
            "current_page": self.current_page,
            "per_page": self.per_page,
            "total": self.total,
            "last_page": self.last_page,
            "from": self.from_,
            "to": self.to,
        }

    def links(self, url_for_page: Callable[[int], str]) -> dict:
        """
        Navigation links built by ``url_for_page``.

        Args:
            url_for_page (Callable[[int], str]): Builds the URL of a page number.

        Returns:
            dict: ``first``/``last``/``prev``/``next`` URLs; ``prev`` and
            ``next`` are ``None`` at the boundaries.
        """
        has_prev = self.current_page > 1
        has_next = self.current_page < self.last_page
        return {
            "first": url_for_page(1),
            "last": url_for_page(self.last_page),
            "prev": url_for_page(self.current_page - 1) if has_prev else None,
            "next": url_for_page(self.current_page + 1) if has_next else None,
        }
