from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .config import ImportConfig
from .errors import DecodeError, JournalImportError
from .joplin_client import JoplinClient
from .parser import NO_LOCATION, JournalEntry, JournalExport
from .resources import upload_entry_photos
from .tags import TagDirectory

logger = logging.getLogger(__name__)

HEADING_RE = re.compile(r"^#{1,6}\s+")
PLACEHOLDER_RE = re.compile(r"!\[\]\(dayone-moment://([^)\s]+)\)")


def split_title_and_body(text: str) -> Tuple[str, str]:
    """Return the first line (heading marker removed) and the remaining lines."""

    lines = text.split("\n")
    title = HEADING_RE.sub("", lines[0], count=1)
    return title, "\n".join(lines[1:])


def placeholder_token(identifier: str) -> str:
    return f"![](dayone-moment://{identifier})"


def resource_link(resource_id: str) -> str:
    return f"![](:/{resource_id})"


def replace_photo_placeholders(body: str, resource_ids: Mapping[str, str]) -> str:
    """Swap each dayone-moment photo token for a Joplin resource link, matching identifiers exactly."""

    for identifier, resource_id in resource_ids.items():
        pattern = re.compile(re.escape(placeholder_token(identifier)))
        body = pattern.sub(lambda _match: resource_link(resource_id), body)
    return body


def unresolved_placeholders(body: str) -> List[str]:
    return PLACEHOLDER_RE.findall(body)


def date_prefixed_title(title: str, created: datetime) -> str:
    """Prefix YYYY-MM-DD so journal notes sort by date next to other dated notes."""

    return f"{created.year:04d}-{created.month:02d}-{created.day:02d} {title}"


def to_epoch_millis(moment: datetime) -> int:
    # Joplin reads user_*_time as milliseconds; whole seconds only, as the export carries.
    return math.floor(moment.timestamp()) * 1000


@dataclass(frozen=True)
class Note:
    parent_id: str
    title: str
    body: str
    user_created_time: int
    user_updated_time: int
    latitude: float
    longitude: float

    def to_payload(self) -> Dict:
        return {
            "parent_id": self.parent_id
            ,"title": self.title
            ,"body": self.body
            ,"user_created_time": self.user_created_time
            ,"user_updated_time": self.user_updated_time
            ,"latitude": self.latitude
            ,"longitude": self.longitude
        }


def build_note(entry: JournalEntry, resource_ids: Mapping[str, str], notebook: str) -> Note:
    """Derive the Joplin note for an entry whose photos have already been uploaded."""

    title, body = split_title_and_body(entry.text)

    photo_ids = [photo.identifier for photo in entry.photos]
    missing = [ident for ident in photo_ids if ident not in resource_ids]
    if missing:
        raise DecodeError(f"entry {entry.uuid}: no uploaded resource for photos {', '.join(missing)}")

    body = replace_photo_placeholders(body, resource_ids)
    leftover = [ident for ident in unresolved_placeholders(body) if ident in photo_ids]
    if leftover:
        raise DecodeError(f"entry {entry.uuid}: unresolved photo placeholders {', '.join(leftover)}")

    location = entry.location or NO_LOCATION
    created = to_epoch_millis(entry.creation_date)

    return Note(
        parent_id=notebook
        ,title=date_prefixed_title(title, entry.creation_date)
        ,body=body
        ,user_created_time=created
        ,user_updated_time=created
        ,latitude=location.region.center.latitude
        ,longitude=location.region.center.longitude
    )


@dataclass
class EntryResult:
    entry: JournalEntry
    title: str = ""
    note_id: Optional[str] = None
    resource_ids: Dict[str, str] = field(default_factory=dict)
    linked_tags: List[str] = field(default_factory=list)
    error: Optional[JournalImportError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def orphaned(self) -> bool:
        """The note exists in Joplin but not every tag could be attached."""

        return self.error is not None and self.note_id is not None


@dataclass
class ImportReport:
    results: List[EntryResult] = field(default_factory=list)
    created_tags: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> List[EntryResult]:
        return [result for result in self.results if result.ok]

    @property
    def failed(self) -> List[EntryResult]:
        return [result for result in self.results if not result.ok]

    @property
    def orphaned(self) -> List[EntryResult]:
        return [result for result in self.results if result.orphaned]

    @property
    def ok(self) -> bool:
        return not self.failed


def publish_note(
    client: JoplinClient
    ,tags: TagDirectory
    ,note: Note
    ,tag_titles: Sequence[str]
    ,result: EntryResult
    ,*
    ,debug_logger: Optional[logging.Logger] = None
) -> str:
    """Create the note, then resolve and link each tag in order. Returns the note id."""

    payload = note.to_payload()
    if debug_logger:
        debug_logger.info("Sending note payload for %s:\n%s", result.entry.uuid, json.dumps(payload, indent=2))

    response = client.create_note(payload)
    result.note_id = response.id
    logger.info("Created note %s for entry %s", response.id, result.entry.uuid)
    if debug_logger:
        debug_logger.info("Response for %s:\n%s", result.entry.uuid, response.raw.decode("utf-8", "replace"))

    for tag in tag_titles:
        print(f"  tag: {tag.lower()}")
        tag_id = tags.resolve_or_create(tag)
        client.link_note_to_tag(tag_id, response)
        result.linked_tags.append(tag.lower())
        logger.info("Linked note %s to tag %s (%s)", response.id, tag.lower(), tag_id)

    return response.id


def export_entry(
    client: JoplinClient
    ,config: ImportConfig
    ,tags: TagDirectory
    ,entry: JournalEntry
    ,*
    ,debug_logger: Optional[logging.Logger] = None
) -> EntryResult:
    """Upload photos, build and publish one entry's note, recording how far it got."""

    title, _ = split_title_and_body(entry.text)
    result = EntryResult(entry=entry, title=title)
    print(f"Journal Entry: {title}")

    try:
        result.resource_ids = upload_entry_photos(client, config, entry)
        note = build_note(entry, result.resource_ids, config.notebook)
        result.title = note.title
        publish_note(client, tags, note, entry.tags, result, debug_logger=debug_logger)
    except JournalImportError as exc:
        result.error = exc
        logger.error("Entry %s failed: %s", entry.uuid, exc.describe())
        if result.orphaned:
            logger.warning(
                "Note %s for entry %s was created but only linked to: %s"
                ,result.note_id
                ,entry.uuid
                ,", ".join(result.linked_tags) or "no tags"
            )
        if config.fail_fast:
            raise
    return result


def import_journal(
    client: JoplinClient
    ,config: ImportConfig
    ,export: JournalExport
    ,tags: TagDirectory
    ,*
    ,debug_logger: Optional[logging.Logger] = None
) -> ImportReport:
    """Import entries one at a time in export order and aggregate per-entry results."""

    report = ImportReport()
    logger.info("Importing %d entries (export version %s)", len(export.entries), export.version or "unknown")
    try:
        for entry in export.entries:
            report.results.append(export_entry(client, config, tags, entry, debug_logger=debug_logger))
    finally:
        report.created_tags = list(tags.created)
    return report
