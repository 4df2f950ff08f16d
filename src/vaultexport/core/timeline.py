from typing import Any, Dict, List

from .exporter import CollectionExporter, Item, group_key
from .schema import TIMELINE
from ..utils.normalize import sort_by_date


class TimelineExporter(CollectionExporter):
    """
    Exports timeline entries to timeline.json.

    ``entries`` is the whole timeline in chronological order (oldest first);
    ``byType`` holds the same entries split by their type, keeping that order.
    """
    spec = TIMELINE

    def group(self, items: List[Item]) -> Dict[str, Any]:
        entries = sort_by_date(items, self.spec.sort_field, descending=False)

        by_type: Dict[str, List[Item]] = {}
        for entry in entries:
            by_type.setdefault(group_key(entry.get("type"), "unknown"), []).append(entry)

        return {
            "entries": entries,
            "byType": by_type,
        }

    def bucket_counts(self, grouped: Dict[str, Any]) -> Dict[str, int]:
        return {entry_type: len(entries) for entry_type, entries in grouped["byType"].items()}
