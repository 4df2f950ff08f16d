"""
vault-export: Markdown/YAML frontmatter utilities

Central read/write access to Obsidian-style markdown notes with a YAML
frontmatter block.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple, Union

import yaml

from ..errors import ParseError

logger = logging.getLogger(__name__)

# Opening delimiter, YAML block, closing delimiter on its own line
FRONTMATTER_PATTERN = re.compile(
    r'\A---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)',
    re.DOTALL | re.MULTILINE,
)
OPENING_PATTERN = re.compile(r'\A---[ \t]*\r?\n')


@dataclass
class MarkdownDocument:
    """Markdown document with YAML frontmatter"""
    metadata: Dict[str, Any] = field(default_factory=dict)
    body: str = ""

    def to_string(self) -> str:
        """Render back to markdown file content."""
        return serialize_frontmatter(self.metadata, self.body)


def parse_frontmatter(content: str, path: Optional[Path] = None) -> MarkdownDocument:
    """
    Parse markdown with a YAML frontmatter block.

    Content that does not start with a ``---`` line has no frontmatter and
    yields empty metadata with the whole content as body.

    Args:
        content: File content
        path: Used only in error messages

    Returns:
        MarkdownDocument

    Raises:
        ParseError: the block is not closed, is not valid YAML, or is not a mapping

    Examples:
        >>> doc = parse_frontmatter('---\\nid: test\\n---\\n# Title')
        >>> doc.metadata['id']
        'test'
        >>> doc.body
        '# Title'
    """
    if not OPENING_PATTERN.match(content):
        return MarkdownDocument(metadata={}, body=content)

    match = FRONTMATTER_PATTERN.match(content)
    if match is None:
        raise ParseError("frontmatter block is not closed", path)

    yaml_str = match.group(1)
    body = content[match.end():]

    try:
        metadata = yaml.safe_load(yaml_str)
    except yaml.YAMLError as e:
        raise ParseError(f"invalid YAML: {e}", path) from e

    if metadata is None:
        metadata = {}
    if not isinstance(metadata, dict):
        raise ParseError(f"frontmatter is a {type(metadata).__name__}, not a mapping", path)

    return MarkdownDocument(metadata=metadata, body=body)


def serialize_frontmatter(metadata: Dict[str, Any], body: str) -> str:
    """
    Join YAML metadata and body into markdown file content.

    Key order is kept as given.

    Examples:
        >>> print(serialize_frontmatter({'id': 'test'}, '# Title'))
        ---
        id: test
        ---
        # Title
    """
    if not metadata:
        return f"---\n---\n{body}"
    yaml_str = yaml.dump(
        metadata,
        allow_unicode=True,
        default_flow_style=False,
        sort_keys=False,
        width=4096,
    ).rstrip()
    return f"---\n{yaml_str}\n---\n{body}"


def read_markdown_file(file_path: Path) -> MarkdownDocument:
    """
    Read and parse a markdown file.

    Raises:
        ParseError: malformed frontmatter
        OSError: the file cannot be read
    """
    content = file_path.read_text(encoding='utf-8')
    return parse_frontmatter(content, file_path)


def write_markdown_file(
    file_path: Path,
    doc: MarkdownDocument,
    create_parents: bool = True
) -> None:
    """Write a MarkdownDocument to disk."""
    if create_parents:
        file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(doc.to_string(), encoding='utf-8')


def update_metadata(
    file_path: Path,
    updates: Dict[str, Any],
    dry_run: bool = False
) -> bool:
    """
    Update frontmatter fields of a file in place.

    Args:
        file_path: Target note
        updates: Fields to set
        dry_run: Do not write

    Returns:
        True if anything changed (and, unless dry_run, was written)
    """
    doc = read_markdown_file(file_path)

    changed = any(
        key not in doc.metadata or doc.metadata[key] != value
        for key, value in updates.items()
    )
    if not changed:
        return False

    doc.metadata.update(updates)
    if not dry_run:
        write_markdown_file(file_path, doc, create_parents=False)
    return True


def is_template_path(file_path: Path, marker: str) -> bool:
    """True when any path segment contains the template marker."""
    return marker in str(file_path)


def is_hidden_path(file_path: Path) -> bool:
    """True when any path segment starts with a dot (.trash, .obsidian, ...)."""
    return any(part.startswith(".") for part in file_path.parts)


NoteResult = Tuple[Path, Union[MarkdownDocument, ParseError]]


class MarkdownBatchProcessor:
    """
    Iterate over every note of a vault.

    Usage:
        processor = MarkdownBatchProcessor(vault_root, template_marker="Template")
        for path, doc in processor.iter_notes():
            ...
    """

    def __init__(self, base_dir: Path, template_marker: str = "Template"):
        self.base_dir = base_dir
        self.template_marker = template_marker

    def iter_paths(self, pattern: str = "**/*.md") -> Iterator[Path]:
        """Yield matching note paths in sorted order, hidden and template notes excluded."""
        if not self.base_dir.is_dir():
            raise FileNotFoundError(f"Vault not found: {self.base_dir}")
        for file_path in sorted(self.base_dir.glob(pattern)):
            if not file_path.is_file():
                continue
            relative = file_path.relative_to(self.base_dir)
            if is_hidden_path(relative):
                continue
            if is_template_path(relative, self.template_marker):
                logger.debug(f"Skipping template: {relative}")
                continue
            yield file_path

    def iter_notes(self, pattern: str = "**/*.md") -> Iterator[NoteResult]:
        """
        Read notes one by one.

        Yields:
            (Path, MarkdownDocument) or (Path, ParseError) when the note is malformed
        """
        for file_path in self.iter_paths(pattern):
            try:
                yield file_path, read_markdown_file(file_path)
            except ParseError as e:
                yield file_path, e
            except (OSError, UnicodeDecodeError) as e:
                yield file_path, ParseError(f"unreadable: {e}", file_path)
