from __future__ import annotations

import logging
from typing import Any

import httpx

from ..domain.exceptions import NoteServiceError
from ..domain.schemas import Note, NoteCreateIn, NoteListResult

logger = logging.getLogger("notehub.remote")


class HttpNoteService:
    """NoteHub REST client. One pooled ``httpx.AsyncClient`` per instance; call ``aclose`` on teardown."""

    def __init__(
        self,
        base_url: str,
        *,
        per_page: int = 12,
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.per_page = per_page
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/",
            timeout=timeout_s,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            resp = await self._client.request(method, path.lstrip("/"), **kwargs)
        except httpx.HTTPError as e:
            logger.warning("notes_request_failed", extra={"method": method, "path": path})
            raise NoteServiceError("notes_request_failed") from e

        if resp.status_code >= 400:
            logger.warning("notes_http_error", extra={"method": method, "path": path, "status": resp.status_code})
            raise NoteServiceError(f"notes_http_{resp.status_code}")

        try:
            return resp.json()
        except ValueError as e:
            raise NoteServiceError("notes_bad_response") from e

    async def list_notes(self, search_term: str, page: int, tag: str | None = None) -> NoteListResult:
        params: dict[str, Any] = {"page": page, "perPage": self.per_page}
        if search_term:
            params["search"] = search_term
        if tag:
            params["tag"] = tag
        data = await self._request("GET", "/notes", params=params)
        try:
            return NoteListResult.model_validate(data)
        except ValueError as e:
            raise NoteServiceError("notes_bad_response") from e

    async def get_note(self, note_id: str) -> Note:
        data = await self._request("GET", f"/notes/{note_id}")
        try:
            return Note.model_validate(data)
        except ValueError as e:
            raise NoteServiceError("notes_bad_response") from e

    async def create_note(self, payload: NoteCreateIn) -> Note:
        data = await self._request("POST", "/notes", json=payload.model_dump(mode="json"))
        try:
            return Note.model_validate(data)
        except ValueError as e:
            raise NoteServiceError("notes_bad_response") from e
