"""
=============================================================================
LOCALIZATION
=============================================================================

Replaces placeholder tokens in compiled text with strings for the
request's locale.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         TOKEN GRAMMAR                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   {{greeting}}              key "greeting", fallback "greeting"     │
    │   {{ greeting }}            same, whitespace ignored                │
    │   {{greeting|Hello}}        key "greeting", fallback "Hello"        │
    │                                                                      │
    │   key: letters, digits, "_", "-", "."                               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A key the lookup cannot resolve is a LookupMiss, never an error: the
fallback text is substituted, the miss is recorded and logged, and the
compile carries on. A lookup that raises counts as a miss too.

The lookup is injected when the Localizer is built. Anything callable as
lookup(key, locale) -> Optional[str] works; StringCatalog is a ready-made
dict-backed one.

=============================================================================
"""

import json
import logging
import re
import threading
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, Mapping, Optional

from .base import Processor, ProcessingContext


logger = logging.getLogger(__name__)


Lookup = Callable[[str, str], Optional[str]]

# Distinct misses kept for inspection; later ones are still logged.
MAX_RECORDED_MISSES = 1024

TOKEN_PATTERN = re.compile(r"\{\{\s*([A-Za-z0-9_.\-]+)\s*(?:\|([^}]*))?\}\}")


@dataclass(frozen=True)
class LookupMiss:
    """A key that had no translation for a locale."""
    key: str
    locale: Optional[str]


class Localizer(Processor):
    """
    Substitutes {{key}} tokens using an injected lookup.

    Args:
        lookup: lookup(key, locale) -> str or None.
        escape: Applied to every substituted value, e.g. js_string_escape
                when tokens sit inside JavaScript string literals.
    """

    locale_aware = True

    def __init__(self, lookup: Lookup, escape: Optional[Callable[[str], str]] = None):
        self.lookup = lookup
        self.escape = escape
        self._misses: set = set()
        self._lock = threading.Lock()

    def process(self, text: str, context: ProcessingContext) -> str:
        locale = context.locale

        def substitute(match: re.Match) -> str:
            key, fallback = match.group(1), match.group(2)
            value = self._resolve(key, locale, context.route)
            if value is None:
                self._record_miss(key, locale, context.route)
                value = fallback.strip() if fallback is not None else key
            return self.escape(value) if self.escape else value

        return TOKEN_PATTERN.sub(substitute, text)

    def _resolve(self, key: str, locale: Optional[str], route: str) -> Optional[str]:
        if locale is None:
            return None
        try:
            value = self.lookup(key, locale)
        except Exception as e:
            logger.warning(f"Lookup of {key!r} for {locale!r} ({route}) failed: {type(e).__name__}: {e}")
            return None
        if value is not None and not isinstance(value, str):
            logger.warning(f"Lookup of {key!r} for {locale!r} ({route}) returned {type(value).__name__}")
            return None
        return value

    def _record_miss(self, key: str, locale: Optional[str], route: str) -> None:
        miss = LookupMiss(key, locale)
        with self._lock:
            first = miss not in self._misses and len(self._misses) < MAX_RECORDED_MISSES
            if first:
                self._misses.add(miss)
        if first:
            logger.warning(f"No translation for {key!r} in locale {locale!r} ({route}), using fallback")
        else:
            logger.debug(f"Unresolved {key!r} for {locale!r} ({route})")

    @property
    def misses(self) -> FrozenSet[LookupMiss]:
        """(key, locale) pairs that fell back so far, up to MAX_RECORDED_MISSES."""
        with self._lock:
            return frozenset(self._misses)

    def settings_key(self) -> str:
        escape_name = getattr(self.escape, "__name__", repr(self.escape)) if self.escape else ""
        return f"escape={escape_name}"


class StringCatalog:
    """
    Dict-backed lookup: {locale: {key: text}}.

    Locales match case-insensitively and fall back to their parent culture,
    so a request for "fr-CA" finds keys defined only under "fr".

        catalog = StringCatalog({"fr": {"greeting": "Bonjour"}})
        catalog("greeting", "fr-CA")   # "Bonjour"
        catalog("greeting", "xx")      # None
    """

    def __init__(self, strings: Optional[Mapping[str, Mapping[str, str]]] = None):
        self._strings: Dict[str, Dict[str, str]] = {}
        for locale, table in (strings or {}).items():
            self.add(locale, table)

    def add(self, locale: str, table: Mapping[str, str]) -> "StringCatalog":
        self._strings.setdefault(locale.lower(), {}).update(table)
        return self

    def __call__(self, key: str, locale: str) -> Optional[str]:
        candidate = locale.lower()
        while candidate:
            table = self._strings.get(candidate)
            if table is not None and key in table:
                return table[key]
            if "-" not in candidate:
                break
            candidate = candidate.rsplit("-", 1)[0]
        return None

    @property
    def locales(self) -> list[str]:
        return sorted(self._strings)


def js_string_escape(value: str) -> str:
    """Escape text for use inside a quoted JavaScript string literal."""
    # json.dumps handles quotes, backslashes and control characters; the
    # extra replacements keep "</script>" and line separators harmless.
    escaped = json.dumps(value, ensure_ascii=False)[1:-1]
    return (escaped.replace("'", "\\'")
                   .replace("</", "<\\/")
                   .replace("\u2028", "\\u2028")
                   .replace("\u2029", "\\u2029"))
