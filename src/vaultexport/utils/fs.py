import logging
import os
import shutil
import time
from pathlib import Path
from typing import Optional

from .normalize import MetaValue
from .patterns import HYPHEN_RUN_PATTERN, NON_FILENAME_CHAR_PATTERN
from ..errors import RenameConflictError

logger = logging.getLogger(__name__)

COVER_EXTENSION = ".jpg"
MAX_STEM_LENGTH = 100


def primary_author(author: MetaValue, default: str = "Unknown") -> str:
    """First entry of an author list, the scalar itself, or ``default``."""
    if isinstance(author, list):
        author = author[0] if author else None
    if author is None or author == "":
        return default
    return str(author)


def sanitize_filename(title: MetaValue, author: MetaValue) -> str:
    """
    Canonical cover filename for a book.

    "<title>-<first author>" lowercased, every character outside [a-z0-9-]
    replaced by a hyphen, hyphen runs collapsed, trimmed and cut to 100
    characters.

    >>> sanitize_filename("The Pillars of the Earth", ["Ken Follett"])
    'the-pillars-of-the-earth-ken-follett.jpg'
    """
    stem = f"{title}-{primary_author(author)}".lower()
    stem = NON_FILENAME_CHAR_PATTERN.sub("-", stem)
    stem = HYPHEN_RUN_PATTERN.sub("-", stem).strip("-")
    return f"{stem[:MAX_STEM_LENGTH]}{COVER_EXTENSION}"


def vault_relative(path: Path, vault_root: Path) -> str:
    """POSIX path relative to the vault root, as stored in frontmatter."""
    try:
        return path.relative_to(vault_root).as_posix()
    except ValueError:
        return Path(os.path.relpath(path, vault_root)).as_posix()


def same_file(a: Path, b: Path) -> bool:
    try:
        return os.path.samefile(a, b)
    except OSError:
        return False


def move_file(source: Path, target: Path, temp_dir: Optional[Path] = None) -> None:
    """
    Move ``source`` to ``target``.

    Names differing only by letter case go through a uniquely named temporary
    file, so the move also takes effect on case-insensitive file systems.

    Raises:
        FileNotFoundError: source is missing
        RenameConflictError: target is occupied by a different file
    """
    if not source.exists():
        raise FileNotFoundError(f"Cover file not found: {source}")

    if target.exists() and not same_file(source, target):
        raise RenameConflictError(source, target)

    target.parent.mkdir(parents=True, exist_ok=True)

    if source.name.lower() == target.name.lower():
        temp_dir = temp_dir or target.parent
        temp_path = temp_dir / f"temp-{time.time_ns()}-{target.name}"
        logger.debug(f"Case-only rename via {temp_path.name}")
        shutil.move(str(source), str(temp_path))
        shutil.move(str(temp_path), str(target))
    else:
        shutil.move(str(source), str(target))
