"""
Book cover maintenance

Three independent passes keep a book note's cover fields and the file on
disk in step:

- acquire: download the URL in ``Cover``, shrink it, store it under its
  canonical name and point ``Cover (lokal)`` at it. ``Cover`` is emptied but
  kept, so pasting a new URL later replaces the file.
- rename: move existing cover files to the canonical name for the note's
  current title and author.
- repair: clear ``Cover (lokal)`` when its file is gone and make sure both
  cover keys exist.

Every pass handles one note at a time; a failing note is reported and the
pass moves on.
"""
import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import List, Optional

from .schema import BOOKS, COVER_LOCAL_KEY, COVER_URL_KEY
from ..client.covers import CoverClient
from ..config import Settings
from ..errors import FetchError, ParseError, RenameConflictError, SizeError
from ..utils.fs import move_file, sanitize_filename, vault_relative
from ..utils.image import optimize_cover
from ..utils.markdown import (
    MarkdownBatchProcessor,
    read_markdown_file,
    update_metadata,
    write_markdown_file,
)
from ..utils.normalize import MetaValue, belongs_to, is_empty

logger = logging.getLogger(__name__)

RULE = "=" * 60
THIN_RULE = "-" * 60


@dataclass
class BookNote:
    path: Path
    title: str
    author: MetaValue
    cover_url: str = ""
    cover_local: str = ""

    @property
    def label(self) -> str:
        author = self.author
        if isinstance(author, list):
            author = ", ".join(str(a) for a in author)
        return f"{self.title} - {author}"


# =============================================================================
# Pass results
# =============================================================================

@dataclass
class DownloadPlan:
    to_download: List[BookNote] = field(default_factory=list)
    already_local: List[BookNote] = field(default_factory=list)
    missing_url: List[BookNote] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.to_download) + len(self.already_local) + len(self.missing_url)


@dataclass
class DownloadResult:
    destination: Path
    size: int
    original_size: int
    optimized: bool


@dataclass
class Failure:
    book: BookNote
    error: str


@dataclass
class AcquireReport:
    plan: DownloadPlan
    dry_run: bool = False
    downloaded: List[DownloadResult] = field(default_factory=list)
    failed: List[Failure] = field(default_factory=list)


@dataclass
class RenameReport:
    total: int = 0
    renamed: int = 0
    already_correct: int = 0
    conflicts: List[Failure] = field(default_factory=list)
    issues: List[Failure] = field(default_factory=list)


@dataclass
class RepairReport:
    total: int = 0
    changed: int = 0
    with_local_cover: int = 0
    without_local_cover: int = 0
    cleared_missing: int = 0
    failed: List[Failure] = field(default_factory=list)


# =============================================================================
# Manager
# =============================================================================

class CoverManager:
    """
    Runs the cover passes over one vault.

    Without an injected client a ``CoverClient`` is created on first download
    and closed by ``close()``; use the manager as a context manager.
    """

    def __init__(self, settings: Settings, client: Optional[CoverClient] = None):
        self.settings = settings
        self._client = client
        self._owns_client = client is None
        self.processor = MarkdownBatchProcessor(settings.vault_root, settings.template_marker)

    @property
    def client(self) -> CoverClient:
        if self._client is None:
            self._client = CoverClient(
                user_agent=self.settings.user_agent,
                max_bytes=self.settings.max_download_bytes,
            )
        return self._client

    def close(self):
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # -------------------------------------------------------------------------
    # Discovery
    # -------------------------------------------------------------------------

    def find_books(self) -> List[BookNote]:
        """All book notes of the vault; malformed notes are logged and left out."""
        books = []
        for path, doc in self.processor.iter_notes():
            if isinstance(doc, ParseError):
                logger.warning(f"Skipping unparseable note: {doc}")
                continue
            data = doc.metadata
            if not belongs_to(data, BOOKS.category):
                continue
            books.append(BookNote(
                path=path,
                title=str(data.get("Titel") or "Unknown"),
                author=data.get("Autor") or "Unknown",
                cover_url=_text(data.get(COVER_URL_KEY)),
                cover_local=_text(data.get(COVER_LOCAL_KEY)),
            ))
        return books

    def local_cover_exists(self, book: BookNote) -> bool:
        return bool(book.cover_local) and (self.settings.vault_root / book.cover_local).is_file()

    # -------------------------------------------------------------------------
    # Acquire
    # -------------------------------------------------------------------------

    def plan_downloads(self, books: List[BookNote]) -> DownloadPlan:
        """
        Sort books into download candidates, already local, and no URL.

        A URL always wins over an existing local file: the note is a
        download candidate and the file will be replaced.
        """
        plan = DownloadPlan()
        for book in books:
            if book.cover_url:
                plan.to_download.append(book)
            elif self.local_cover_exists(book):
                plan.already_local.append(book)
            else:
                plan.missing_url.append(book)
        return plan

    def download_cover(self, book: BookNote) -> DownloadResult:
        """
        Fetch, optimize and store one cover, then update the note.

        Raises:
            FetchError, SizeError: download rejected
            ParseError, OSError: the note could not be updated
        """
        data = self.client.fetch_image(book.cover_url)
        if len(data) > self.settings.max_download_bytes:
            raise SizeError(f"Image too large ({len(data) / (1024 * 1024):.2f}MB)")

        result = optimize_cover(
            data,
            threshold_bytes=self.settings.optimize_threshold_bytes,
            max_width=self.settings.max_width,
            max_height=self.settings.max_height,
            quality=self.settings.jpeg_quality,
        )

        destination = self.settings.cover_path / sanitize_filename(book.title, book.author)
        destination.parent.mkdir(parents=True, exist_ok=True)
        if destination.exists():
            logger.info(f"Replacing existing cover {destination.name}")
            if self.settings.backup_on_replace:
                shutil.copy2(destination, destination.with_name(destination.name + ".bak"))
        destination.write_bytes(result.data)

        update_metadata(book.path, {
            COVER_LOCAL_KEY: vault_relative(destination, self.settings.vault_root),
            COVER_URL_KEY: "",
        })

        return DownloadResult(
            destination=destination,
            size=len(result.data),
            original_size=result.original_size,
            optimized=result.optimized,
        )

    def acquire(self, dry_run: bool = False, limit: Optional[int] = None) -> AcquireReport:
        mode = "DRY RUN" if dry_run else "TEST" if limit else "FULL DOWNLOAD"
        print(f"Book Cover Download - {mode} MODE")
        print(RULE)

        books = self.find_books()
        plan = self.plan_downloads(books)
        report = AcquireReport(plan=plan, dry_run=dry_run)
        self._print_plan(plan)

        if dry_run:
            if plan.to_download:
                print("Books that would be downloaded:")
                print(THIN_RULE)
                for book in plan.to_download[:10]:
                    print(f"  • {book.label}")
                    print(f"    ├─ URL: {book.cover_url}")
                    print(f"    └─ Save as: {sanitize_filename(book.title, book.author)}")
                if len(plan.to_download) > 10:
                    print(f"  ... and {len(plan.to_download) - 10} more books")
                print()
            print("This was a DRY RUN - no files were downloaded or modified")
            print(RULE)
            return report

        download_list = plan.to_download[:limit] if limit else plan.to_download
        print(f"Downloading {len(download_list)} book covers...")
        print(THIN_RULE)

        for i, book in enumerate(download_list, start=1):
            prefix = f"[{i}/{len(download_list)}] {book.title}..."
            try:
                result = self.download_cover(book)
            except (FetchError, SizeError, ParseError, OSError) as e:
                logger.error(f"Cover download failed for {book.label}: {e}")
                print(f"{prefix} failed: {e}")
                report.failed.append(Failure(book, str(e)))
                continue

            report.downloaded.append(result)
            size_mb = result.size / (1024 * 1024)
            if result.optimized:
                saved_kb = (result.original_size - result.size) / 1024
                print(f"{prefix} {size_mb:.2f}MB (optimized, saved {saved_kb:.0f}KB) + frontmatter updated")
            else:
                print(f"{prefix} {size_mb:.2f}MB + frontmatter updated")

        print()
        if report.failed:
            print("Failed downloads:")
            print(THIN_RULE)
            for failure in report.failed:
                print(f"  • {failure.book.label}")
                print(f"    └─ Error: {failure.error}")
            print()

        print(RULE)
        print("Download Summary:")
        print(f"  Processed:                 {len(download_list)}")
        print(f"  Successfully downloaded:   {len(report.downloaded)}")
        print(f"  Failed:                    {len(report.failed)}")
        print(f"  Saved to:                  {self.settings.cover_path}")
        print(RULE)
        return report

    def _print_plan(self, plan: DownloadPlan):
        print("Analysis Results:")
        print(THIN_RULE)
        print(f"Total books:                {plan.total}")
        print(f"Already have local file:    {len(plan.already_local)}")
        print(f"Missing Cover URL:          {len(plan.missing_url)}")
        print(f"Need to download:           {len(plan.to_download)}")
        print()
        if plan.missing_url:
            print("Books without Cover URL (will be skipped):")
            print(THIN_RULE)
            for book in plan.missing_url:
                print(f"  • {book.label}")
            print()

    # -------------------------------------------------------------------------
    # Rename
    # -------------------------------------------------------------------------

    def rename_cover(self, book: BookNote) -> bool:
        """
        Move a book's cover to its canonical name.

        Returns:
            False when the filename is already canonical (nothing written),
            True after a move and frontmatter update

        Raises:
            FileNotFoundError: the referenced cover file does not exist
            RenameConflictError: another file already has the canonical name
        """
        expected = sanitize_filename(book.title, book.author)
        current_name = PurePosixPath(book.cover_local).name
        if current_name == expected:
            return False

        source = self.settings.vault_root / book.cover_local
        target = self.settings.cover_path / expected
        move_file(source, target, temp_dir=self.settings.cover_path)

        try:
            update_metadata(book.path, {
                COVER_LOCAL_KEY: vault_relative(target, self.settings.vault_root),
            })
        except (ParseError, OSError):
            logger.error(f"Note update failed, moving {expected} back to {current_name}")
            move_file(target, source, temp_dir=self.settings.cover_path)
            raise
        logger.info(f"Renamed cover {current_name} -> {expected}")
        return True

    def rename_all(self) -> RenameReport:
        print("Book Cover Rename")
        print(RULE)

        books = [book for book in self.find_books() if book.cover_local]
        report = RenameReport(total=len(books))
        print(f"Found {len(books)} books with local covers")
        print(THIN_RULE)

        for i, book in enumerate(books, start=1):
            prefix = f"[{i}/{len(books)}] {book.title}..."
            try:
                renamed = self.rename_cover(book)
            except RenameConflictError as e:
                logger.warning(f"Rename conflict for {book.label}: {e}")
                print(f"{prefix} {e}")
                report.conflicts.append(Failure(book, str(e)))
                continue
            except FileNotFoundError as e:
                logger.warning(f"{book.label}: {e}")
                print(f"{prefix} file not found")
                report.issues.append(Failure(book, "file not found"))
                continue
            except (ParseError, OSError) as e:
                logger.error(f"Rename failed for {book.label}: {e}")
                print(f"{prefix} error: {e}")
                report.issues.append(Failure(book, str(e)))
                continue

            if renamed:
                report.renamed += 1
                print(f"{prefix} renamed to {sanitize_filename(book.title, book.author)}")
            else:
                report.already_correct += 1
                print(f"{prefix} already correct")

        print()
        problems = report.conflicts + report.issues
        if problems:
            print("Issues encountered (resolve manually):")
            print(THIN_RULE)
            for failure in problems:
                print(f"  • {failure.book.label}")
                print(f"    └─ {failure.error}")
            print()

        print(RULE)
        print("Rename Summary:")
        print(f"  Total books with covers:   {report.total}")
        print(f"  Renamed:                   {report.renamed}")
        print(f"  Already correct:           {report.already_correct}")
        print(f"  Conflicts/Skipped:         {len(problems)}")
        print(RULE)
        return report

    # -------------------------------------------------------------------------
    # Repair
    # -------------------------------------------------------------------------

    def repair_note(self, book: BookNote) -> bool:
        """
        Bring one note into the two-field cover shape.

        ``Cover (lokal)`` keeps its value only while the file exists and is
        emptied otherwise; both keys are added when missing. A pending URL
        in ``Cover`` is left alone.

        Returns:
            True if the note was rewritten
        """
        doc = read_markdown_file(book.path)
        data = doc.metadata
        updates = {}

        if COVER_LOCAL_KEY not in data or is_empty(data[COVER_LOCAL_KEY]):
            if data.get(COVER_LOCAL_KEY) != "":
                updates[COVER_LOCAL_KEY] = ""
        elif not (self.settings.vault_root / str(data[COVER_LOCAL_KEY])).is_file():
            logger.info(f"Cover file missing for {book.label}: {data[COVER_LOCAL_KEY]}")
            updates[COVER_LOCAL_KEY] = ""

        if data.get(COVER_URL_KEY) is None:
            updates[COVER_URL_KEY] = ""

        if not updates:
            return False

        data.update(updates)
        write_markdown_file(book.path, doc, create_parents=False)
        return True

    def repair_all(self) -> RepairReport:
        print("Book Cover Frontmatter Cleanup")
        print(RULE)

        books = self.find_books()
        report = RepairReport(total=len(books))
        print(f"Found {len(books)} book notes")
        print(THIN_RULE)

        for i, book in enumerate(books, start=1):
            prefix = f"[{i}/{len(books)}] {book.title}..."
            had_local = bool(book.cover_local)
            try:
                changed = self.repair_note(book)
            except (ParseError, OSError) as e:
                logger.error(f"Cleanup failed for {book.label}: {e}")
                print(f"{prefix} error: {e}")
                report.failed.append(Failure(book, str(e)))
                continue

            if changed:
                report.changed += 1
            if self.local_cover_exists(book):
                report.with_local_cover += 1
                print(f"{prefix} has local cover")
            else:
                report.without_local_cover += 1
                if had_local:
                    report.cleared_missing += 1
                print(f"{prefix} no local cover")

        print()
        print(RULE)
        print("Cleanup Summary:")
        print(f"  Total books processed:     {report.total}")
        print(f"  Books with local covers:   {report.with_local_cover}")
        print(f"  Books without covers:      {report.without_local_cover}")
        print(f"  Missing files cleared:     {report.cleared_missing}")
        print(f"  Frontmatter updated:       {report.changed}")
        print(f"  Failed:                    {len(report.failed)}")
        print(RULE)
        return report


def _text(value: MetaValue) -> str:
    """Frontmatter value as a stripped string, '' for empty."""
    if is_empty(value):
        return ""
    return str(value).strip()
