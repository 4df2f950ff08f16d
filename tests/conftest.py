import textwrap
from pathlib import Path

import pytest

from vaultexport.config import Settings


@pytest.fixture
def vault(tmp_path) -> Path:
    root = tmp_path / "Vault"
    root.mkdir()
    return root


@pytest.fixture
def settings(tmp_path, vault) -> Settings:
    return Settings(
        vault_root=vault,
        output_dir=tmp_path / "output",
        publish_base_url="https://example.org/covers",
    )


@pytest.fixture
def write_note(vault):
    """Write a note below the vault; content is dedented."""
    def _write(relative: str, content: str) -> Path:
        path = vault / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")
        return path
    return _write
