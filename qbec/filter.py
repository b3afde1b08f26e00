"""Include/exclude filters for component names, kinds and namespaces."""

from __future__ import annotations

from collections.abc import Callable, Iterable

AliasFn = Callable[[str], list[str]]

_CONSONANTS = "bcdfghjklmnpqrstvwxyz"


def pluralize(word: str) -> str:
    """Return the lower-case plural form of a type name."""
    if len(word) < 2:
        return word.lower()
    last, prev = word[-1], word[-2]
    if last in "sxz":
        plural = word + "es"
    elif last == "y":
        plural = word[:-1] + "ies" if prev in _CONSONANTS else word + "s"
    elif last == "h":
        plural = word + "es" if prev in "cs" else word + "s"
    elif last == "e":
        plural = word[:-2] + "ves" if prev == "f" else word + "s"
    elif last == "f":
        plural = word[:-1] + "ves"
    else:
        plural = word + "s"
    return plural.lower()


def _identity(s: str) -> list[str]:
    return [s]


class Filter:
    """Decides whether names are included, given include or exclude lists."""

    def __init__(
        self,
        includes: Iterable[str] | None = None,
        excludes: Iterable[str] | None = None,
        alias_fn: AliasFn | None = None,
        kind: str = "items",
    ) -> None:
        inc = list(includes or ())
        exc = list(excludes or ())
        if inc and exc:
            raise ValueError(f"cannot include as well as exclude {kind}, specify one or the other")
        self._includes = frozenset(inc)
        self._excludes = frozenset(exc)
        self._alias_fn = alias_fn or _identity

    @property
    def includes(self) -> frozenset[str]:
        return self._includes

    @property
    def excludes(self) -> frozenset[str]:
        return self._excludes

    def has_filters(self) -> bool:
        """Return True if any filtering is in effect."""
        return bool(self._includes or self._excludes)

    def should_include(self, s: str) -> bool:
        """Return True if the supplied name passes the filter."""
        for name in self._alias_fn(s):
            if name in self._includes:
                return True
            if name in self._excludes:
                return False
        return not self._includes

    def __repr__(self) -> str:
        return f"Filter(includes={sorted(self._includes)}, excludes={sorted(self._excludes)})"


def new_string_filter(kind: str, includes: Iterable[str] | None, excludes: Iterable[str] | None) -> Filter:
    """Return a filter for exact string matches."""
    return Filter(includes, excludes, kind=kind)


def new_component_filter(includes: Iterable[str] | None, excludes: Iterable[str] | None) -> Filter:
    """Return a filter for component names."""
    return new_string_filter("components", includes, excludes)


def _kind_aliases(s: str) -> list[str]:
    kind = s.lower()
    return [kind, pluralize(kind)]


def new_kind_filter(includes: Iterable[str] | None, excludes: Iterable[str] | None) -> Filter:
    """Return a case-insensitive filter for object kinds that accepts plural forms."""
    return Filter(
        [s.lower() for s in includes or ()],
        [s.lower() for s in excludes or ()],
        alias_fn=_kind_aliases,
        kind="kinds",
    )