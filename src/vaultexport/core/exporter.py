"""
Collection exporter pipeline

scan → filter → map fields → coerce → group → sort → write

Subclasses bind a ``CollectionSpec`` and implement ``group``; everything
else is shared. Per-note failures become ``Skipped`` results and never
abort the run.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from tqdm import tqdm

from .output import build_document, load_document, write_output
from .schema import (
    CollectionSpec,
    STATUS_ACTIVE,
    STATUS_COMPLETED,
    STATUS_PAUSED,
    STATUS_WATCHLIST,
)
from ..config import Settings
from ..errors import ParseError
from ..utils.markdown import MarkdownBatchProcessor, MarkdownDocument, read_markdown_file
from ..utils.normalize import (
    belongs_to,
    ensure_list,
    extract_year,
    is_empty,
    normalize_date,
    normalize_to_array,
    parse_float,
    parse_int,
    sort_by_date,
    translate_fields,
)

logger = logging.getLogger(__name__)

Item = Dict[str, Any]


@dataclass
class Exported:
    path: Path
    item: Item


@dataclass
class Skipped:
    path: Path
    reason: str


ItemResult = Union[Exported, Skipped]


@dataclass
class ExportReport:
    """Outcome of one exporter run."""
    name: str
    output_path: Path
    count: int
    last_updated: str
    changed: bool
    buckets: Dict[str, int] = field(default_factory=dict)
    skipped: List[Skipped] = field(default_factory=list)


def apply_coercions(item: Item, spec: CollectionSpec) -> Item:
    """
    Type-specific clean-up of a translated item, in place.

    Only fields that are present and non-empty are touched.
    """
    for name in spec.array_fields:
        if not is_empty(item.get(name)):
            item[name] = ensure_list(item[name])
    for name in spec.int_fields:
        if not is_empty(item.get(name)):
            item[name] = parse_int(item[name])
    for name in spec.float_fields:
        if not is_empty(item.get(name)):
            item[name] = parse_float(item[name])
    for name in spec.date_fields:
        if not is_empty(item.get(name)):
            item[name] = normalize_date(item[name])
    return item


def group_key(value: Any, default: str) -> str:
    """Bucket key for a free-text field; lists use their first entry."""
    if isinstance(value, list):
        value = next((v for v in value if not is_empty(v)), None)
    if is_empty(value):
        return default
    return str(value)


class CollectionExporter:
    spec: CollectionSpec

    def __init__(self, settings: Settings, progress: bool = True):
        self.settings = settings
        self.progress = progress
        self.processor = MarkdownBatchProcessor(settings.vault_root, settings.template_marker)

    @property
    def output_path(self) -> Path:
        return self.settings.output_dir / self.spec.output_file

    # ------------------------------------------------------------------
    # Per-note processing
    # ------------------------------------------------------------------

    def process_path(self, path: Path) -> Optional[ItemResult]:
        """
        Turn one note into an item.

        Returns:
            Exported, Skipped (malformed note or failed coercion), or None when
            the note is not part of this collection
        """
        try:
            doc = read_markdown_file(path)
        except ParseError as e:
            logger.warning(f"Skipping unparseable note: {e}")
            return Skipped(path, str(e))
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Skipping unreadable note {path}: {e}")
            return Skipped(path, str(e))

        if not belongs_to(doc.metadata, self.spec.category):
            return None

        try:
            item = self.build_item(path, doc)
        except Exception as e:
            logger.error(f"Error processing {path}: {e}")
            return Skipped(path, str(e))
        return Exported(path, item)

    def build_item(self, path: Path, doc: MarkdownDocument) -> Item:
        item = translate_fields(doc.metadata, self.spec.key_map)
        if self.spec.status_key:
            item["status"] = normalize_to_array(doc.metadata.get(self.spec.status_key))
        return apply_coercions(item, self.spec)

    def collect(self) -> Tuple[List[Item], List[Skipped]]:
        """Run every note of the vault through ``process_path``."""
        items: List[Item] = []
        skipped: List[Skipped] = []

        paths = list(self.processor.iter_paths())
        for path in tqdm(paths, desc=f"Exporting {self.spec.name}", disable=not self.progress):
            result = self.process_path(path)
            if isinstance(result, Exported):
                items.append(result.item)
            elif isinstance(result, Skipped):
                skipped.append(result)
        return items, skipped

    # ------------------------------------------------------------------
    # Grouping and output
    # ------------------------------------------------------------------

    def group(self, items: List[Item]) -> Dict[str, Any]:
        raise NotImplementedError

    def bucket_counts(self, grouped: Dict[str, Any]) -> Dict[str, int]:
        return {key: len(value) for key, value in grouped.items()}

    def export(self) -> ExportReport:
        print(f"Exporting {self.spec.name}...")

        previous_timestamp = load_document(self.output_path).get("lastUpdated")

        items, skipped = self.collect()
        grouped = self.group(items)
        document = build_document(self.output_path, grouped, len(items))
        write_output(self.output_path, document)

        report = ExportReport(
            name=self.spec.name,
            output_path=self.output_path,
            count=len(items),
            last_updated=document["lastUpdated"],
            changed=document["lastUpdated"] != previous_timestamp,
            buckets=self.bucket_counts(grouped),
            skipped=skipped,
        )
        self.print_report(report)
        return report

    def print_report(self, report: ExportReport):
        print(f"  Exported {report.count} {report.name} to {report.output_path}")
        for bucket, count in report.buckets.items():
            print(f"    - {bucket}: {count}")
        if report.skipped:
            print(f"  Skipped {len(report.skipped)} notes with errors")


class StatusGroupedExporter(CollectionExporter):
    """
    Grouping for status-bearing collections (books, series).

    Three flat lists for the open states and a year → list map for
    completed items, keyed by the year of ``finished``.
    """

    def group(self, items: List[Item]) -> Dict[str, Any]:
        aktiv: List[Item] = []
        merkliste: List[Item] = []
        pausiert: List[Item] = []
        abgeschlossen: Dict[str, List[Item]] = {}

        for item in items:
            status = item.get("status") or []
            first = str(status[0]) if status else ""

            if first == STATUS_ACTIVE:
                aktiv.append(item)
            elif first == STATUS_WATCHLIST:
                merkliste.append(item)
            elif first == STATUS_PAUSED:
                pausiert.append(item)
            elif first == STATUS_COMPLETED:
                year = extract_year(item.get("finished"))
                abgeschlossen.setdefault(year, []).append(item)

        sort_field = self.spec.sort_field or "finished"
        return {
            "aktiv": sort_by_date(aktiv, sort_field),
            "merkliste": sort_by_date(merkliste, sort_field),
            "pausiert": sort_by_date(pausiert, sort_field),
            "abgeschlossen": {
                year: sort_by_date(abgeschlossen[year], sort_field)
                for year in sorted(abgeschlossen, reverse=True)
            },
        }

    def bucket_counts(self, grouped: Dict[str, Any]) -> Dict[str, int]:
        return {
            "Aktiv": len(grouped["aktiv"]),
            "Merkliste": len(grouped["merkliste"]),
            "Pausiert": len(grouped["pausiert"]),
            "Abgeschlossen": sum(len(v) for v in grouped["abgeschlossen"].values()),
        }
