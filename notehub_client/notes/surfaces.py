from __future__ import annotations

from typing import Callable, Protocol

ALL_NOTES_HREF = "/notes/filter/all"


class Surface(Protocol):
    def dismiss(self) -> None:
        ...


class ModalSurface:
    """Overlay opened from the notes list; dismissing closes it in place."""

    def __init__(self, on_close: Callable[[], None]) -> None:
        self._on_close = on_close

    def dismiss(self) -> None:
        self._on_close()


class RouteSurface:
    """Standalone page; dismissing navigates back to the notes list."""

    def __init__(self, navigate: Callable[[str], None], href: str = ALL_NOTES_HREF) -> None:
        self._navigate = navigate
        self.href = href

    def dismiss(self) -> None:
        self._navigate(self.href)
