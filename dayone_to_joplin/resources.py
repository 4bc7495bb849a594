from __future__ import annotations

import logging
from typing import Dict

from .config import ImportConfig
from .errors import ExportIOError
from .joplin_client import JoplinClient, ResourceResponse
from .parser import JournalEntry, Photo

logger = logging.getLogger(__name__)


def upload_photo(client: JoplinClient, config: ImportConfig, photo: Photo) -> ResourceResponse:
    """Upload photos/<md5>.<type> from the export folder and return the created resource."""

    path = config.photo_path(photo)
    if not path.is_file():
        raise ExportIOError(f"Photo {photo.identifier} not found at {path}")

    # unreadable files raise ExportIOError from create_resource
    resource = client.create_resource(path)
    logger.info("Uploaded %s as resource %s (%s, %d bytes)", path.name, resource.id, resource.mime, resource.size)
    return resource


def upload_entry_photos(client: JoplinClient, config: ImportConfig, entry: JournalEntry) -> Dict[str, str]:
    """Upload an entry's photos in list order; returns photo identifier -> resource id."""

    resource_ids: Dict[str, str] = {}
    for photo in entry.photos:
        resource_ids[photo.identifier] = upload_photo(client, config, photo).id
    return resource_ids
