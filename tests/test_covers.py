"""
Tests for core/covers.py - acquire, rename and repair passes
"""
import io
from dataclasses import replace

import pytest
from PIL import Image

from vaultexport.core.covers import CoverManager
from vaultexport.errors import FetchError
from vaultexport.utils.markdown import read_markdown_file

COVER_DIR = "Attachments/Book Cover"


class FakeClient:
    """Stands in for CoverClient; maps URL → bytes or exception."""

    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    def fetch_image(self, url):
        self.calls.append(url)
        response = self.responses[url]
        if isinstance(response, Exception):
            raise response
        return response


def jpeg_bytes(width, height, noisy=False):
    im = Image.new("RGB", (width, height), (200, 30, 30))
    if noisy:
        im = Image.effect_noise((width, height), 100).convert("RGB")
    buf = io.BytesIO()
    im.save(buf, format="JPEG", quality=100)
    return buf.getvalue()


def book_note(title="Dune", author="Frank Herbert", cover="", local=None):
    lines = [
        "---",
        f"Titel: {title}",
        f"Autor: '[[{author}]]'",
        "Kategorie: '[[Bücher]]'",
        f"Cover: '{cover}'",
    ]
    if local is not None:
        lines.append(f"Cover (lokal): '{local}'")
    lines += ["---", "", f"# {title}", ""]
    return "\n".join(lines)


def mtimes(vault):
    return {p: p.stat().st_mtime_ns for p in vault.rglob("*") if p.is_file()}


class TestAcquire:
    """acquire: download, optimize, link"""

    def test_download_small_cover(self, settings, vault, write_note):
        note = write_note("Books/Dune.md", book_note(cover="https://img.example/dune.jpg"))
        data = jpeg_bytes(60, 90)
        client = FakeClient({"https://img.example/dune.jpg": data})

        report = CoverManager(settings, client=client).acquire()

        target = vault / COVER_DIR / "dune-frank-herbert.jpg"
        assert target.read_bytes() == data
        assert len(report.downloaded) == 1
        assert report.downloaded[0].optimized is False

        doc = read_markdown_file(note)
        assert doc.metadata["Cover (lokal)"] == f"{COVER_DIR}/dune-frank-herbert.jpg"
        assert doc.metadata["Cover"] == ""
        assert doc.body == "\n# Dune\n"

    def test_large_cover_is_resized(self, settings, vault, write_note):
        write_note("Dune.md", book_note(cover="https://img.example/big.jpg"))
        data = jpeg_bytes(1200, 1800, noisy=True)
        assert len(data) > settings.optimize_threshold_bytes
        client = FakeClient({"https://img.example/big.jpg": data})

        report = CoverManager(settings, client=client).acquire()

        assert report.downloaded[0].optimized is True
        with Image.open(vault / COVER_DIR / "dune-frank-herbert.jpg") as im:
            assert im.size == (600, 900)

    def test_fetch_error_is_reported_and_note_untouched(self, settings, write_note):
        note = write_note("Dune.md", book_note(cover="https://img.example/404.jpg"))
        before = note.read_text(encoding="utf-8")
        client = FakeClient({"https://img.example/404.jpg": FetchError("HTTP 404: Not Found")})

        report = CoverManager(settings, client=client).acquire()

        assert report.downloaded == []
        assert [f.error for f in report.failed] == ["HTTP 404: Not Found"]
        assert note.read_text(encoding="utf-8") == before

    def test_one_failure_does_not_stop_others(self, settings, vault, write_note):
        write_note("A.md", book_note(title="A", cover="https://img.example/a.jpg"))
        write_note("B.md", book_note(title="B", cover="https://img.example/b.jpg"))
        client = FakeClient({
            "https://img.example/a.jpg": FetchError("Not an image (Content-Type: text/html)"),
            "https://img.example/b.jpg": jpeg_bytes(10, 10),
        })

        report = CoverManager(settings, client=client).acquire()

        assert len(report.failed) == 1
        assert len(report.downloaded) == 1
        assert (vault / COVER_DIR / "b-frank-herbert.jpg").exists()

    def test_new_url_replaces_existing_file(self, settings, vault, write_note):
        existing = vault / COVER_DIR / "dune-frank-herbert.jpg"
        existing.parent.mkdir(parents=True)
        existing.write_bytes(b"old cover")
        write_note("Dune.md", book_note(
            cover="https://img.example/new.jpg",
            local=f"{COVER_DIR}/dune-frank-herbert.jpg",
        ))
        new = jpeg_bytes(20, 30)
        client = FakeClient({"https://img.example/new.jpg": new})

        CoverManager(settings, client=client).acquire()

        assert existing.read_bytes() == new
        assert not existing.with_name(existing.name + ".bak").exists()

    def test_backup_on_replace(self, settings, vault, write_note):
        existing = vault / COVER_DIR / "dune-frank-herbert.jpg"
        existing.parent.mkdir(parents=True)
        existing.write_bytes(b"old cover")
        write_note("Dune.md", book_note(cover="https://img.example/new.jpg"))
        client = FakeClient({"https://img.example/new.jpg": jpeg_bytes(20, 30)})

        CoverManager(replace(settings, backup_on_replace=True), client=client).acquire()

        assert existing.with_name(existing.name + ".bak").read_bytes() == b"old cover"

    def test_dry_run_writes_nothing(self, settings, vault, write_note):
        write_note("Dune.md", book_note(cover="https://img.example/dune.jpg"))
        before = mtimes(vault)
        client = FakeClient({})

        report = CoverManager(settings, client=client).acquire(dry_run=True)

        assert len(report.plan.to_download) == 1
        assert client.calls == []
        assert mtimes(vault) == before

    def test_limit(self, settings, write_note):
        for title in ("A", "B", "C"):
            write_note(f"{title}.md", book_note(title=title, cover=f"https://img.example/{title}.jpg"))
        client = FakeClient({f"https://img.example/{t}.jpg": jpeg_bytes(5, 5) for t in "ABC"})

        report = CoverManager(settings, client=client).acquire(limit=2)

        assert len(client.calls) == 2
        assert len(report.downloaded) == 2

    def test_plan_categories(self, settings, vault, write_note):
        (vault / COVER_DIR).mkdir(parents=True)
        (vault / COVER_DIR / "a.jpg").write_bytes(b"x")
        write_note("A.md", book_note(title="A", local=f"{COVER_DIR}/a.jpg"))
        write_note("B.md", book_note(title="B"))
        write_note("C.md", book_note(title="C", cover="https://img.example/c.jpg"))
        write_note("D.md", "---\nKategorie: Serien\nCover: https://img.example/d.jpg\n---\n")

        manager = CoverManager(settings, client=FakeClient({}))
        plan = manager.plan_downloads(manager.find_books())

        assert [b.title for b in plan.already_local] == ["A"]
        assert [b.title for b in plan.missing_url] == ["B"]
        assert [b.title for b in plan.to_download] == ["C"]


class TestRename:
    """rename_all: canonical names, case-only moves, conflicts"""

    def test_rename_to_canonical(self, settings, vault, write_note):
        old = vault / COVER_DIR / "IMG_1234.jpg"
        old.parent.mkdir(parents=True)
        old.write_bytes(b"img")
        note = write_note("Dune.md", book_note(local=f"{COVER_DIR}/IMG_1234.jpg"))

        report = CoverManager(settings, client=FakeClient({})).rename_all()

        assert report.renamed == 1
        assert not old.exists()
        assert (vault / COVER_DIR / "dune-frank-herbert.jpg").read_bytes() == b"img"
        assert read_markdown_file(note).metadata["Cover (lokal)"] == f"{COVER_DIR}/dune-frank-herbert.jpg"

    def test_second_run_writes_nothing(self, settings, vault, write_note):
        old = vault / COVER_DIR / "IMG_1234.jpg"
        old.parent.mkdir(parents=True)
        old.write_bytes(b"img")
        write_note("Dune.md", book_note(local=f"{COVER_DIR}/IMG_1234.jpg"))
        manager = CoverManager(settings, client=FakeClient({}))

        manager.rename_all()
        before = mtimes(vault)
        report = manager.rename_all()

        assert report.renamed == 0
        assert report.already_correct == 1
        assert mtimes(vault) == before

    def test_case_only_rename(self, settings, vault, write_note):
        old = vault / COVER_DIR / "Dune-Frank-Herbert.jpg"
        old.parent.mkdir(parents=True)
        old.write_bytes(b"img")
        write_note("Dune.md", book_note(local=f"{COVER_DIR}/Dune-Frank-Herbert.jpg"))

        report = CoverManager(settings, client=FakeClient({})).rename_all()

        assert report.renamed == 1
        assert [p.name for p in (vault / COVER_DIR).iterdir()] == ["dune-frank-herbert.jpg"]

    def test_conflict_leaves_everything_untouched(self, settings, vault, write_note):
        cover_dir = vault / COVER_DIR
        cover_dir.mkdir(parents=True)
        (cover_dir / "IMG_1.jpg").write_bytes(b"mine")
        (cover_dir / "dune-frank-herbert.jpg").write_bytes(b"someone else")
        note = write_note("Dune.md", book_note(local=f"{COVER_DIR}/IMG_1.jpg"))
        before = note.read_text(encoding="utf-8")

        report = CoverManager(settings, client=FakeClient({})).rename_all()

        assert report.renamed == 0
        assert len(report.conflicts) == 1
        assert (cover_dir / "IMG_1.jpg").read_bytes() == b"mine"
        assert (cover_dir / "dune-frank-herbert.jpg").read_bytes() == b"someone else"
        assert note.read_text(encoding="utf-8") == before

    def test_missing_file_reported(self, settings, write_note):
        write_note("Dune.md", book_note(local=f"{COVER_DIR}/gone.jpg"))

        report = CoverManager(settings, client=FakeClient({})).rename_all()

        assert [f.error for f in report.issues] == ["file not found"]

    def test_failed_note_update_moves_file_back(self, settings, vault, write_note, monkeypatch):
        old = vault / COVER_DIR / "IMG_1234.jpg"
        old.parent.mkdir(parents=True)
        old.write_bytes(b"img")
        note = write_note("Dune.md", book_note(local=f"{COVER_DIR}/IMG_1234.jpg"))
        before = note.read_text(encoding="utf-8")

        def failing_update(*args, **kwargs):
            raise OSError("read-only file system")

        monkeypatch.setattr("vaultexport.core.covers.update_metadata", failing_update)
        report = CoverManager(settings, client=FakeClient({})).rename_all()

        assert report.renamed == 0
        assert [f.error for f in report.issues] == ["read-only file system"]
        assert old.read_bytes() == b"img"
        assert not (vault / COVER_DIR / "dune-frank-herbert.jpg").exists()
        assert note.read_text(encoding="utf-8") == before


class TestRepair:
    """repair_all: consistent two-field shape"""

    def test_missing_file_cleared_and_keys_added(self, settings, write_note):
        note = write_note("Dune.md", "---\nTitel: Dune\nKategorie: Bücher\nCover (lokal): Attachments/gone.jpg\n---\nBody\n")

        report = CoverManager(settings, client=FakeClient({})).repair_all()

        doc = read_markdown_file(note)
        assert doc.metadata["Cover (lokal)"] == ""
        assert doc.metadata["Cover"] == ""
        assert doc.body == "Body\n"
        assert report.changed == 1
        assert report.cleared_missing == 1

    def test_existing_file_kept(self, settings, vault, write_note):
        (vault / COVER_DIR).mkdir(parents=True)
        (vault / COVER_DIR / "dune.jpg").write_bytes(b"x")
        note = write_note("Dune.md", book_note(local=f"{COVER_DIR}/dune.jpg"))

        report = CoverManager(settings, client=FakeClient({})).repair_all()

        assert read_markdown_file(note).metadata["Cover (lokal)"] == f"{COVER_DIR}/dune.jpg"
        assert report.with_local_cover == 1
        assert report.changed == 0

    def test_pending_url_is_kept(self, settings, write_note):
        note = write_note("Dune.md", book_note(cover="https://img.example/dune.jpg"))

        CoverManager(settings, client=FakeClient({})).repair_all()

        doc = read_markdown_file(note)
        assert doc.metadata["Cover"] == "https://img.example/dune.jpg"
        assert doc.metadata["Cover (lokal)"] == ""

    def test_consistent_note_not_written(self, settings, vault, write_note):
        write_note("Dune.md", book_note(local=""))
        before = mtimes(vault)

        report = CoverManager(settings, client=FakeClient({})).repair_all()

        assert report.changed == 0
        assert mtimes(vault) == before

    def test_second_run_is_noop(self, settings, vault, write_note):
        write_note("Dune.md", "---\nTitel: Dune\nKategorie: Bücher\n---\n")
        manager = CoverManager(settings, client=FakeClient({}))

        assert manager.repair_all().changed == 1
        before = mtimes(vault)
        assert manager.repair_all().changed == 0
        assert mtimes(vault) == before

    def test_broken_note_does_not_abort(self, settings, write_note):
        write_note("A.md", "---\nTitel: [x\n---\n")
        write_note("B.md", "---\nTitel: B\nKategorie: Bücher\n---\n")

        report = CoverManager(settings, client=FakeClient({})).repair_all()

        assert report.total == 1
        assert report.changed == 1


@pytest.mark.parametrize("title,author,expected", [
    ("Dune", "Frank Herbert", "dune-frank-herbert.jpg"),
    ("1984", "George Orwell", "1984-george-orwell.jpg"),
])
def test_acquire_uses_canonical_name(settings, vault, write_note, title, author, expected):
    write_note("Note.md", book_note(title=title, author=author, cover="https://img.example/x.jpg"))
    client = FakeClient({"https://img.example/x.jpg": jpeg_bytes(4, 4)})

    CoverManager(settings, client=client).acquire()

    assert (vault / COVER_DIR / expected).exists()


class TestClientLifecycle:
    """CoverManager owns and closes only the client it creates"""

    def test_own_client_created_lazily_and_closed(self, settings, write_note):
        write_note("Dune.md", book_note())
        with CoverManager(settings) as manager:
            manager.repair_all()
            assert manager._client is None
            client = manager.client
            closed = []
            client.session.close = lambda: closed.append(True)
        assert closed == [True]
        assert manager._client is None

    def test_injected_client_left_open(self, settings):
        class ClosableFake(FakeClient):
            closed = False

            def close(self):
                self.closed = True

        fake = ClosableFake({})
        with CoverManager(settings, client=fake):
            pass
        assert fake.closed is False
