from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from .joplin_client import JoplinClient, TagItem

logger = logging.getLogger(__name__)


def fetch_all_tags(client: JoplinClient) -> List[TagItem]:
    """Collect every existing tag, following has_more from page 1 onwards.

    A failure on any page propagates; items gathered from earlier pages are
    dropped with it, so callers see either the full list or an error.
    """

    items: List[TagItem] = []
    page = 0
    while True:
        page += 1
        tag_page = client.get_tags_page(page)
        items.extend(tag_page.items)
        logger.info("Fetched tag page %d (%d items)", page, len(tag_page.items))
        if not tag_page.has_more:
            break
    return items


class TagDirectory:
    """Run-scoped lowercase title -> id snapshot of Joplin tags.

    Loaded once before entries are processed and only appended to as tags are
    created. Not safe for concurrent use: two workers resolving the same new
    title would both create it.
    """

    def __init__(self, client: JoplinClient, items: Iterable[TagItem] = ()) -> None:
        self.client = client
        self._ids: Dict[str, str] = {}
        self.created: List[str] = []
        for item in items:
            # first id wins when Joplin already holds duplicate titles
            self._ids.setdefault(item.title.lower(), item.id)

    @classmethod
    def load(cls, client: JoplinClient) -> "TagDirectory":
        directory = cls(client, fetch_all_tags(client))
        logger.info("Loaded %d existing tags", len(directory))
        return directory

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, title: object) -> bool:
        return isinstance(title, str) and title.lower() in self._ids

    def get(self, title: str) -> str:
        return self._ids.get(title.lower(), "")

    def resolve_or_create(self, title: str) -> str:
        key = title.lower()
        tag_id = self._ids.get(key)
        if tag_id:
            logger.info("Tag '%s' matched existing id %s", key, tag_id)
            return tag_id

        tag_id = self.client.create_tag(key)
        self._ids[key] = tag_id
        self.created.append(key)
        print(f"  created tag: {key} ({tag_id})")
        logger.info("Created tag '%s' with id %s", key, tag_id)
        return tag_id
