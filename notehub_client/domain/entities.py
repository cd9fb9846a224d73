from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class NoteTag(str, Enum):
    TODO = "Todo"
    WORK = "Work"
    PERSONAL = "Personal"
    MEETING = "Meeting"
    SHOPPING = "Shopping"


TAGS: tuple[str, ...] = tuple(t.value for t in NoteTag)


@dataclass(frozen=True)
class ListQuery:
    search_term: str = ""
    page: int = 1
    tag: str | None = None

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError("page_must_be_positive")
