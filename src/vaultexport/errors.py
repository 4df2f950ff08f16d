"""
Exceptions raised by the exporters and cover passes.

Per-note errors are caught by the batch loops and turned into logged skips;
only failures of a whole pass reach the CLI.
"""
from pathlib import Path
from typing import Optional


class VaultExportError(Exception):
    """Base class for all vault-export errors."""


class ParseError(VaultExportError):
    """A note's frontmatter block is malformed."""

    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        if path is not None:
            message = f"{path}: {message}"
        super().__init__(message)


class FetchError(VaultExportError):
    """A cover download failed or did not return an image."""


class SizeError(VaultExportError):
    """A downloaded cover exceeds the size limit."""


class RenameConflictError(VaultExportError):
    """The canonical cover filename is already taken by another file."""

    def __init__(self, current: Path, target: Path):
        self.current = current
        self.target = target
        super().__init__(f"target exists: {target.name} (current: {current.name})")
