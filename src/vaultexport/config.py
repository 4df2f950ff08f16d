"""
vault-export: shared configuration

Paths and image bounds are resolved once into a ``Settings`` object that is
passed to every exporter and cover pass. Values come from (in order) explicit
arguments, environment variables (a ``.env`` file is loaded if present), and
the defaults below.
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def get_project_root() -> Path:
    """
    Determine the project root directory.

    Priority:
    1. Environment variable VAULT_EXPORT_ROOT
    2. Three levels above this file (src/vaultexport/config.py)
    """
    env_root = os.environ.get("VAULT_EXPORT_ROOT")
    if env_root:
        return Path(env_root).resolve()
    return Path(__file__).parent.parent.parent.resolve()


# Base paths
PROJECT_ROOT = get_project_root()
DEFAULT_VAULT_DIR = PROJECT_ROOT / "Vault"
DEFAULT_OUTPUT_DIR = PROJECT_ROOT / "output"

# Vault-relative directory holding downloaded cover art
DEFAULT_COVER_DIR = "Attachments/Book Cover"

# Public location of the published cover files
DEFAULT_PUBLISH_BASE_URL = (
    "https://raw.githubusercontent.com/iam-robin/obsidian-personal-website-data/main/output/book-covers"
)
PUBLISH_COVERS_SUBDIR = "book-covers"

# Notes below a path segment containing this marker are never exported
TEMPLATE_MARKER = "Template"

# Cover image bounds
COVER_MAX_WIDTH = 600
COVER_MAX_HEIGHT = 900
COVER_JPEG_QUALITY = 85
OPTIMIZE_THRESHOLD_BYTES = 100 * 1024
MAX_DOWNLOAD_BYTES = 10 * 1024 * 1024

# User Agent
USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7)"


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Resolved locations and limits for one run."""
    vault_root: Path = DEFAULT_VAULT_DIR
    output_dir: Path = DEFAULT_OUTPUT_DIR
    publish_base_url: str = DEFAULT_PUBLISH_BASE_URL
    cover_dir: str = DEFAULT_COVER_DIR
    template_marker: str = TEMPLATE_MARKER
    max_width: int = COVER_MAX_WIDTH
    max_height: int = COVER_MAX_HEIGHT
    jpeg_quality: int = COVER_JPEG_QUALITY
    optimize_threshold_bytes: int = OPTIMIZE_THRESHOLD_BYTES
    max_download_bytes: int = MAX_DOWNLOAD_BYTES
    user_agent: str = USER_AGENT
    backup_on_replace: bool = False

    @property
    def cover_path(self) -> Path:
        """Absolute directory holding the vault's cover files."""
        return self.vault_root / self.cover_dir

    @property
    def publish_covers_dir(self) -> Path:
        return self.output_dir / PUBLISH_COVERS_SUBDIR

    @classmethod
    def from_env(
        cls,
        vault_root: Optional[Path] = None,
        output_dir: Optional[Path] = None,
    ) -> "Settings":
        """
        Build settings from the environment.

        Args:
            vault_root: Overrides VAULT_EXPORT_VAULT when given.
            output_dir: Overrides VAULT_EXPORT_OUTPUT when given.
        """
        load_dotenv()

        settings = cls()
        env_vault = os.environ.get("VAULT_EXPORT_VAULT")
        env_output = os.environ.get("VAULT_EXPORT_OUTPUT")
        env_url = os.environ.get("VAULT_EXPORT_PUBLISH_URL")
        env_cover_dir = os.environ.get("VAULT_EXPORT_COVER_DIR")

        if env_vault:
            settings = replace(settings, vault_root=Path(env_vault).expanduser())
        if env_output:
            settings = replace(settings, output_dir=Path(env_output).expanduser())
        if env_url:
            settings = replace(settings, publish_base_url=env_url.rstrip("/"))
        if env_cover_dir:
            settings = replace(settings, cover_dir=env_cover_dir)
        if _env_flag("VAULT_EXPORT_BACKUP"):
            settings = replace(settings, backup_on_replace=True)

        if vault_root is not None:
            settings = replace(settings, vault_root=vault_root)
        if output_dir is not None:
            settings = replace(settings, output_dir=output_dir)
        return settings
