"""Deterministic, collision-safe slug generation.

Two layers:

* :func:`slugify` -- a pure function turning any string into a lowercase,
  hyphen-separated identifier.
* :class:`SlugFactory` -- a stateful wrapper that remembers every slug it has
  issued and appends ``-2``, ``-3``, ... on collision.

A factory is scoped to one normalization pass and one kind of object (tags,
operations, schemas, examples of one operation).  Never share an instance
between two specs: uniqueness state must not leak across documents.
"""

from __future__ import annotations

import re
from typing import Any, Optional

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(value: Any, fallback: str = "item") -> str:
    """Convert *value* into a URL-safe slug.

    Lowercases, replaces every run of characters outside ``[a-z0-9]`` with a
    single hyphen, and trims leading/trailing hyphens.

    Args:
        value: The text to slugify.  Non-strings and blank strings are
            replaced by *fallback* before slugifying.
        fallback: Returned when the result would otherwise be empty.

    Returns:
        The slug, never empty as long as *fallback* is not empty.

    Example::

        slugify("Pets & Owners")   # "pets-owners"
        slugify("!!!", "tag")      # "tag"
    """
    base = value.strip() if isinstance(value, str) and value.strip() else fallback
    slug = _NON_ALNUM.sub("-", base.lower()).strip("-")
    return slug or fallback


class SlugFactory:
    """Issue unique slugs within one scope.

    The first occurrence of a base slug is returned unchanged; later
    occurrences get ``-2``, ``-3``, ... appended.  A suffixed candidate that
    was already issued (for example because a raw input was literally
    ``"users-2"``) is skipped, so every returned slug is distinct.

    Args:
        default: Fallback used when neither the value nor the per-call
            fallback yields a non-empty slug.

    Example::

        factory = SlugFactory("tag")
        factory("Users")    # "users"
        factory("users!")   # "users-2"
        factory("")         # "tag"
    """

    def __init__(self, default: str = "item") -> None:
        self._default = default
        self._counts: dict[str, int] = {}
        self._issued: set[str] = set()

    def __call__(self, value: Any, fallback: Optional[str] = None) -> str:
        base = slugify(value, slugify(fallback or self._default, self._default))
        count = self._counts.get(base, 0)
        candidate = base if count == 0 else f"{base}-{count + 1}"
        while candidate in self._issued:
            count += 1
            candidate = f"{base}-{count + 1}"
        self._counts[base] = count + 1
        self._issued.add(candidate)
        return candidate

    @property
    def issued(self) -> frozenset[str]:
        """Every slug handed out so far."""
        return frozenset(self._issued)
