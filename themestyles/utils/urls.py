from __future__ import annotations

from collections.abc import Iterable, Mapping
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


def add_query_args(url: str, args: Mapping[str, str]) -> str:
    """Set ``args`` on ``url``'s query string, replacing existing values."""
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query) if k not in args]
    query.extend(args.items())
    return urlunsplit(parts._replace(query=urlencode(query)))


def remove_query_args(url: str, names: Iterable[str]) -> str:
    drop = set(names)
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query) if k not in drop]
    return urlunsplit(parts._replace(query=urlencode(query)))
