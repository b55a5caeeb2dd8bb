# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Header helpers tolerant of the naming used by different stream servers."""

from __future__ import annotations

from collections.abc import Iterable, Mapping


def _items(headers: object) -> Iterable[tuple[object, object]]:
    """
    Iterate header pairs from dicts, httpx.Headers, HTTPMessage-like objects
    or an iterable of pairs.
    """
    if isinstance(headers, Mapping):
        return headers.items()
    items = getattr(headers, "items", None)
    if callable(items):
        return items()
    return headers  # type: ignore[return-value]


def normalize_headers(headers: object | None) -> dict[str, str]:
    """
    Return a lowercase-keyed copy of a header container.

    Repeated headers keep the first non-empty value; stream servers that echo
    a header twice usually disagree only on padding.
    """
    if not headers:
        return {}
    out: dict[str, str] = {}
    try:
        pairs = list(_items(headers))
    except (TypeError, ValueError):
        return {}
    for pair in pairs:
        try:
            key, value = pair
        except (TypeError, ValueError):
            continue
        if key is None:
            continue
        name = str(key).strip().lower()
        if not name:
            continue
        text = "" if value is None else str(value).strip()
        if name not in out or (not out[name] and text):
            out[name] = text
    return out


def first_header(headers: Mapping[str, str] | None, aliases: Iterable[str]) -> str | None:
    """Return the first non-empty value among header aliases, in order."""
    if not headers:
        return None
    for alias in aliases:
        value = headers.get(alias.lower())
        if value:
            return value
    return None


def has_header_prefix(headers: Mapping[str, str] | None, prefixes: Iterable[str]) -> bool:
    if not headers:
        return False
    lowered = tuple(prefix.lower() for prefix in prefixes)
    return any(name.startswith(lowered) for name in headers)


__all__ = ["first_header", "has_header_prefix", "normalize_headers"]
