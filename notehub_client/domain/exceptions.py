from __future__ import annotations

from typing import Any


class NoteServiceError(RuntimeError):
    pass


class ValidationError(ValueError):
    """Field-level input errors for a note candidate; never sent to the network."""

    def __init__(self, errors: dict[str, str]) -> None:
        super().__init__("validation_failed")
        self.errors = dict(errors)


class FetchError(RuntimeError):
    def __init__(self, key: tuple[Any, ...], message: str = "fetch_failed") -> None:
        super().__init__(message)
        self.key = key


class MutationError(RuntimeError):
    pass
