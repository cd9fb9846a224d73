from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError as SchemaError

from ..domain.entities import TAGS, NoteTag
from ..domain.exceptions import MutationError, ValidationError
from ..domain.ports import NoteService
from ..domain.schemas import Note, NoteCreateIn
from ..query.cache import QueryCache
from .queries import NOTES_PREFIX
from .surfaces import Surface

logger = logging.getLogger("notehub.notes")

_MESSAGES = {
    ("title", "string_too_short"): "Minimum 3 letters",
    ("title", "string_too_long"): "Maximum 50 letters",
    ("content", "string_too_long"): "500 letters is maximum",
}


@dataclass(frozen=True)
class NoteFormValues:
    title: str = ""
    content: str = ""
    tag: str = NoteTag.TODO.value


INITIAL_VALUES = NoteFormValues()


@dataclass(frozen=True)
class ValidationResult:
    note: Optional[NoteCreateIn] = None
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.note is not None and not self.errors


def _message_for(name: str, err: Mapping[str, Any]) -> str:
    message = _MESSAGES.get((name, err.get("type", "")))
    if message:
        return message
    if name == "tag":
        return "Tag must be one of: " + ", ".join(TAGS)
    return str(err.get("msg") or "invalid")


def parse_note_input(candidate: Union[NoteFormValues, Mapping[str, Any]]) -> NoteCreateIn:
    raw = asdict(candidate) if isinstance(candidate, NoteFormValues) else dict(candidate)
    if raw.get("content") is None:
        raw["content"] = ""

    errors: dict[str, str] = {}
    if not raw.get("title"):
        errors["title"] = "Title is required"
    if not raw.get("tag"):
        errors["tag"] = "Tag is required"

    note: NoteCreateIn | None = None
    try:
        note = NoteCreateIn.model_validate(raw)
    except SchemaError as e:
        for err in e.errors():
            name = str(err["loc"][0]) if err.get("loc") else "form"
            errors.setdefault(name, _message_for(name, err))

    if errors or note is None:
        raise ValidationError(errors)
    return note


def validate(candidate: Union[NoteFormValues, Mapping[str, Any]]) -> ValidationResult:
    try:
        return ValidationResult(note=parse_note_input(candidate))
    except ValidationError as e:
        return ValidationResult(errors=e.errors)


class CreateNoteFlow:
    """
    The single note-creation form.

    Validation runs before any request. A successful create invalidates every
    cached notes list, resets the form and dismisses the surface; a failed one
    keeps the typed values so the user can resubmit.
    """

    def __init__(self, cache: QueryCache, service: NoteService, surface: Surface) -> None:
        self.cache = cache
        self.surface = surface
        self.values = INITIAL_VALUES
        self.errors: dict[str, str] = {}
        self._mutation = cache.mutation(service.create_note, on_success=self._on_created)

    @property
    def is_pending(self) -> bool:
        return self._mutation.is_pending

    @property
    def error(self) -> MutationError | None:
        return self._mutation.error

    def change(self, name: str, value: str) -> None:
        if name not in {"title", "content", "tag"}:
            raise KeyError(name)
        self.values = replace(self.values, **{name: value})
        if self.errors.get(name):
            self.errors = {**self.errors, name: ""}

    async def submit(self) -> Note | None:
        if self.is_pending:
            return None
        result = validate(self.values)
        if not result.ok:
            self.errors = result.errors
            return None
        try:
            return await self._mutation.mutate(result.note)
        except MutationError:
            logger.info("note_create_failed", extra={"title": self.values.title})
            return None

    def cancel(self) -> None:
        self.surface.dismiss()

    def _on_created(self, note: Note, _payload: NoteCreateIn) -> None:
        logger.info("note_create", extra={"id": note.id})
        self.cache.invalidate(NOTES_PREFIX)
        self.values = INITIAL_VALUES
        self.errors = {}
        self.surface.dismiss()
