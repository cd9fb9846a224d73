from __future__ import annotations

from typing import Any, Iterable, Sequence, Tuple

from ..domain.entities import ListQuery

QueryKey = Tuple[Any, ...]

NOTES = "notes"
NOTE = "note"

_SCALARS = (str, int, type(None))


def fingerprint(operation: str, *params: Any) -> QueryKey:
    for p in params:
        if not isinstance(p, _SCALARS) or isinstance(p, bool):
            raise TypeError(f"unsupported_key_part:{type(p).__name__}")
    return (operation, *params)


def notes_list_key(query: ListQuery) -> QueryKey:
    return fingerprint(NOTES, query.search_term, query.page, query.tag)


def note_key(note_id: str) -> QueryKey:
    return fingerprint(NOTE, note_id)


def key_matches(key: QueryKey, prefix: Sequence[Any]) -> bool:
    prefix = tuple(prefix)
    return key[: len(prefix)] == prefix


def encode_key(key: QueryKey) -> list[Any]:
    return list(key)


def decode_key(raw: Iterable[Any]) -> QueryKey:
    parts = list(raw)
    if not parts or not isinstance(parts[0], str):
        raise ValueError("query_key_missing_operation")
    return fingerprint(parts[0], *parts[1:])
