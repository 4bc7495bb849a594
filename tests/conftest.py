import json
import pathlib
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

import pytest
import requests

from dayone_to_joplin.config import ImportConfig
from dayone_to_joplin.joplin_client import JoplinClient
from dayone_to_joplin.tags import TagDirectory

HOST = "http://joplin.test"
TOKEN = "secret-token"


def make_response(status: int, payload: Any) -> requests.Response:
    """Build a real requests.Response carrying a JSON (or raw bytes) body."""
    response = requests.Response()
    response.status_code = status
    response._content = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
    response.encoding = "utf-8"
    response.url = HOST
    return response


@dataclass
class Call:
    method: str
    path: str
    params: Dict[str, Any]
    timeout: Optional[float]
    data: Any = None
    files: Any = None


class FakeJoplinSession:
    """In-memory stand-in for the Joplin Web Clipper API, used in place of requests.Session."""

    def __init__(self, tags: Optional[List[Dict[str, str]]] = None, page_size: int = 2) -> None:
        self.tags: List[Dict[str, str]] = list(tags or [])
        self.page_size = page_size
        self.notes: Dict[str, Dict[str, Any]] = {}
        self.links: List[tuple] = []
        self.resources: List[Dict[str, Any]] = []
        self.calls: List[Call] = []
        self.failures: Dict[tuple, tuple] = {}
        self.errors: Dict[tuple, Exception] = {}
        self._counter = 0

    def _new_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}{self._counter:04d}"

    def calls_to(self, method: str, path: str) -> List[Call]:
        return [call for call in self.calls if call.method == method and call.path == path]

    def request(self, method, url, params=None, timeout=None, data=None, files=None, headers=None):
        path = urlsplit(url).path
        self.calls.append(Call(method, path, dict(params or {}), timeout, data, files))

        key = (method, path)
        if key in self.errors:
            raise self.errors[key]
        if key in self.failures:
            status, body = self.failures[key]
            return make_response(status, body)

        if key == ("GET", "/tags"):
            page = int(params["page"])
            start = (page - 1) * self.page_size
            items = self.tags[start : start + self.page_size]
            return make_response(200, {"items": items, "has_more": start + self.page_size < len(self.tags)})

        if key == ("POST", "/tags"):
            tag = {"id": self._new_id("tag"), "title": json.loads(data)["title"]}
            self.tags.append(tag)
            return make_response(200, tag)

        if key == ("POST", "/notes"):
            note = json.loads(data)
            note["id"] = self._new_id("note")
            self.notes[note["id"]] = note
            return make_response(200, note)

        if method == "POST" and path.startswith("/tags/") and path.endswith("/notes"):
            tag_id = path.split("/")[2]
            self.links.append((tag_id, json.loads(data)["id"]))
            return make_response(200, {})

        if key == ("POST", "/resources"):
            name, handle, mime = files["data"]
            content = handle.read()
            resource = {
                "id": self._new_id("res"),
                "title": name,
                "mime": mime,
                "filename": "",
                "file_extension": name.rsplit(".", 1)[-1],
                "size": len(content),
                "props": data["props"],
            }
            self.resources.append(resource)
            return make_response(200, {k: v for k, v in resource.items() if k != "props"})

        return make_response(404, {"error": f"Not found: {method} {path}"})


@pytest.fixture
def session():
    return FakeJoplinSession()


@pytest.fixture
def client(session):
    return JoplinClient(HOST, TOKEN, timeout=30, session=session)


@pytest.fixture
def tag_directory(client):
    return TagDirectory.load(client)


@pytest.fixture
def journal_folder(tmp_path):
    (tmp_path / "photos").mkdir()
    return tmp_path


@pytest.fixture
def config(journal_folder):
    return ImportConfig(journal_folder=journal_folder, token=TOKEN, host=HOST, notebook="nb-1")


def entry_dict(uuid="E1", text="# Title\nbody", creation_date="2023-03-05T10:20:30Z", **extra):
    data = {"uuid": uuid, "text": text, "creationDate": creation_date}
    data.update(extra)
    return data


def photo_dict(identifier, md5=None, type="jpeg"):
    return {
        "identifier": identifier,
        "md5": md5 or f"{identifier.lower()}md5",
        "type": type,
        "width": 640,
        "height": 480,
        "orderInEntry": 0,
    }


def write_export(folder: pathlib.Path, entries, version="1.0"):
    document = {"metadata": {"version": version}, "entries": entries}
    (folder / "AllEntries.json").write_text(json.dumps(document), encoding="utf-8")
    for entry in entries:
        for photo in entry.get("photos", []):
            asset = folder / "photos" / f"{photo['md5']}.{photo['type']}"
            asset.write_bytes(b"\xff\xd8fake-image-" + photo["identifier"].encode())
    return folder
