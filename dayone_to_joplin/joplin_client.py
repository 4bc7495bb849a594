from __future__ import annotations

import json
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

try:
    import requests
except ImportError as exc:  # pragma: no cover
    raise SystemExit("The 'requests' package is required. Install it with 'pip install requests'.") from exc

from .config import DEFAULT_TIMEOUT
from .errors import DecodeError, ExportIOError, NetworkError, RemoteError

logger = logging.getLogger(__name__)


@dataclass
class TagItem:
    id: str
    title: str


@dataclass
class TagPage:
    items: List[TagItem]
    has_more: bool


@dataclass
class NoteResponse:
    id: str
    raw: bytes


@dataclass
class ResourceResponse:
    id: str
    title: str = ""
    mime: str = ""
    filename: str = ""
    file_extension: str = ""
    size: int = 0


def _field(data: Dict[str, Any], key: str, what: str, kind: type = str) -> Any:
    value = data.get(key)
    if not isinstance(value, kind) or isinstance(value, bool):
        raise DecodeError(f"Joplin {what} response: expected '{key}' to be {kind.__name__}, got {value!r}")
    return value


class JoplinClient:
    def __init__(
        self
        ,host: str
        ,token: str
        ,timeout: float = DEFAULT_TIMEOUT
        ,session: Optional[requests.Session] = None
    ) -> None:
        """Initialize a session that talks to the local Joplin Web Clipper service."""

        self.host = host.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, what: str, *, params: Optional[Dict] = None, **kwargs) -> requests.Response:
        url = f"{self.host}{path}"
        query = {"token": self.token}
        query.update(params or {})

        try:
            response = self.session.request(method, url, params=query, timeout=self.timeout, **kwargs)
        except requests.RequestException as err:
            logger.error("Joplin %s request to %s failed: %s", what, path, err)
            raise NetworkError(f"Joplin {what} request failed: {err}") from err

        try:
            response.raise_for_status()
        except requests.HTTPError as err:
            print(f"[error] Joplin {what} failed: {response.text}")
            logger.error("Joplin %s failed with HTTP %s: %s", what, response.status_code, response.text)
            raise RemoteError(
                f"Joplin {what} failed"
                ,status_code=response.status_code
                ,body=response.text
            ) from err
        return response

    @staticmethod
    def _json(response: requests.Response, what: str) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as err:
            raise DecodeError(f"Joplin {what} response is not valid JSON: {response.text[:200]}") from err
        if not isinstance(data, dict):
            raise DecodeError(f"Joplin {what} response: expected an object, got {type(data).__name__}")
        return data

    def get_tags_page(self, page: int) -> TagPage:
        """Fetch one page of existing tags."""

        response = self._request("GET", "/tags", "list tags", params={"page": page})
        data = self._json(response, "list tags")
        raw_items = data.get("items")
        if not isinstance(raw_items, list):
            raise DecodeError(f"Joplin list tags response: expected 'items' list on page {page}")

        items = []
        for raw in raw_items:
            if not isinstance(raw, dict):
                raise DecodeError(f"Joplin list tags response: malformed item {raw!r}")
            items.append(TagItem(id=_field(raw, "id", "list tags"), title=_field(raw, "title", "list tags")))
        has_more = data.get("has_more", False)
        if not isinstance(has_more, bool):
            raise DecodeError(f"Joplin list tags response: expected 'has_more' to be bool, got {has_more!r}")
        return TagPage(items=items, has_more=has_more)

    def create_tag(self, title: str) -> str:
        """Create a tag and return its Joplin id."""

        response = self._request(
            "POST", "/tags", "create tag"
            ,data=json.dumps({"title": title})
            ,headers={"Content-Type": "application/json"}
        )
        return _field(self._json(response, "create tag"), "id", "create tag")

    def create_note(self, payload: Dict[str, Any]) -> NoteResponse:
        """Create a note and return its id together with the raw response body."""

        response = self._request(
            "POST", "/notes", "create note"
            ,data=json.dumps(payload)
            ,headers={"Content-Type": "application/json"}
        )
        note_id = _field(self._json(response, "create note"), "id", "create note")
        return NoteResponse(id=note_id, raw=response.content)

    def link_note_to_tag(self, tag_id: str, note: NoteResponse) -> None:
        """Attach a note to a tag; Joplin reads the note id from the posted note body."""

        self._request(
            "POST", f"/tags/{tag_id}/notes", "link note to tag"
            ,data=note.raw
            ,headers={"Content-Type": "application/json"}
        )

    def create_resource(self, path: Path) -> ResourceResponse:
        """Upload a file as a Joplin resource (multipart: 'data' file plus empty 'props')."""

        mime = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        try:
            handle = path.open("rb")
        except OSError as err:
            raise ExportIOError(f"Cannot open asset {path}: {err}") from err

        with handle:
            response = self._request(
                "POST", "/resources", "create resource"
                ,files={"data": (path.name, handle, mime)}
                ,data={"props": "{}"}
            )

        data = self._json(response, "create resource")
        size = data.get("size", 0)
        return ResourceResponse(
            id=_field(data, "id", "create resource")
            ,title=str(data.get("title") or "")
            ,mime=str(data.get("mime") or "")
            ,filename=str(data.get("filename") or "")
            ,file_extension=str(data.get("file_extension") or "")
            ,size=int(size) if isinstance(size, (int, float)) and not isinstance(size, bool) else 0
        )
