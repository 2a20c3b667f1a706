"""Formatter cache shared by the calendar and currency helpers."""

from __future__ import annotations

import logging
from datetime import tzinfo
from typing import Callable, Dict, Optional

from babel import Locale, UnknownLocaleError

logger = logging.getLogger(__name__)

_MISSING = object()


class FormatterCache:
    """Append-only memo of timezone and locale objects.

    Entries are written once per key and never invalidated; when two callers
    race on the same key the first stored value wins. A miss (unknown zone or
    locale) is memoized as ``None`` so the lookup and its warning happen once.
    """

    def __init__(self) -> None:
        self._timezones: Dict[str, Optional[tzinfo]] = {}
        self._locales: Dict[str, Optional[Locale]] = {}

    def timezone(self, name: str, loader: Callable[[str], Optional[tzinfo]]) -> Optional[tzinfo]:
        cached = self._timezones.get(name, _MISSING)
        if cached is not _MISSING:
            return cached
        return self._timezones.setdefault(name, loader(name))

    def locale(self, identifier: str) -> Optional[Locale]:
        cached = self._locales.get(identifier, _MISSING)
        if cached is not _MISSING:
            return cached
        try:
            value: Optional[Locale] = Locale.parse(identifier, sep="-")
        except (UnknownLocaleError, ValueError):
            logger.warning("Locale %r unknown to the locale engine; using fallback formatting", identifier)
            value = None
        return self._locales.setdefault(identifier, value)

    def __len__(self) -> int:
        return len(self._timezones) + len(self._locales)

