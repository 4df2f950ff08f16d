import logging
import shutil
from pathlib import Path
from typing import Optional

from .exporter import Item, StatusGroupedExporter
from .schema import BOOKS
from ..utils.markdown import MarkdownDocument
from ..utils.normalize import is_empty

logger = logging.getLogger(__name__)


class BooksExporter(StatusGroupedExporter):
    """
    Exports book notes to books.json.

    Local cover files are copied to the publish directory and referenced by
    their public URL; ``coverLocal`` never reaches the output.
    """
    spec = BOOKS

    def build_item(self, path: Path, doc: MarkdownDocument) -> Item:
        item = super().build_item(path, doc)
        cover_local = item.pop("coverLocal", None)

        if not is_empty(cover_local):
            item["cover"] = self.publish_cover(str(cover_local), item.get("title"))
        elif is_empty(item.get("cover")):
            item["cover"] = None
        # otherwise an external URL that was never downloaded stays as is
        return item

    def publish_cover(self, cover_local: str, title=None) -> Optional[str]:
        """
        Copy a vault cover into the publish directory.

        Returns:
            Public URL of the copy, or None when the file is missing or the
            copy fails
        """
        source = self.settings.vault_root / cover_local
        if not source.is_file():
            logger.warning(f"Cover file not found: {source}")
            return None

        target_dir = self.settings.publish_covers_dir
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target_dir / source.name)
        except OSError as e:
            logger.error(f"Error copying cover for {title}: {e}")
            return None

        return f"{self.settings.publish_base_url.rstrip('/')}/{source.name}"
