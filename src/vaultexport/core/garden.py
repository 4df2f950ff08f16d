import logging
from pathlib import Path
from typing import Any, Dict, List

from .exporter import CollectionExporter, Item, group_key
from .output import META_KEYS
from .schema import DIGITAL_GARDEN
from ..utils.markdown import MarkdownDocument
from ..utils.normalize import slugify, sort_by_date, title_from_path

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"


class DigitalGardenExporter(CollectionExporter):
    """
    Exports Digital Garden notes, body included, grouped by topic (Thema).

    Topics are sorted alphabetically, notes inside a topic by last edit,
    most recent first.
    """
    spec = DIGITAL_GARDEN

    def build_item(self, path: Path, doc: MarkdownDocument) -> Item:
        item = super().build_item(path, doc)
        item["title"] = title_from_path(path)
        item["slug"] = slugify(path.name)
        item["content"] = doc.body.strip()
        return item

    def group(self, items: List[Item]) -> Dict[str, Any]:
        by_thema: Dict[str, List[Item]] = {}
        for item in items:
            by_thema.setdefault(topic_key(item.get("thema")), []).append(item)

        return {
            thema: sort_by_date(by_thema[thema], self.spec.sort_field)
            for thema in sorted(by_thema, key=lambda t: (t.casefold(), t))
        }


def topic_key(thema: Any) -> str:
    """
    Output key for a topic.

    Topics named like a document meta key (``count``, ``lastUpdated``) get a
    `` (Thema)`` suffix so they cannot replace the meta field.
    """
    key = group_key(thema, UNCATEGORIZED)
    if key in META_KEYS:
        renamed = f"{key} (Thema)"
        logger.warning(f"Topic '{key}' clashes with a document field, exported as '{renamed}'")
        return renamed
    return key
