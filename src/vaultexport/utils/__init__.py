"""
vault-export utility modules
"""

from .markdown import (
    MarkdownDocument,
    parse_frontmatter,
    serialize_frontmatter,
    read_markdown_file,
    write_markdown_file,
    update_metadata,
    is_template_path,
    is_hidden_path,
    MarkdownBatchProcessor,
)
from .normalize import (
    clean_links,
    normalize_to_array,
    ensure_list,
    translate_fields,
    belongs_to,
    parse_int,
    parse_float,
    normalize_date,
    extract_year,
    sort_by_date,
    slugify,
    title_from_path,
)
from .fs import (
    sanitize_filename,
    move_file,
    vault_relative,
)

__all__ = [
    # markdown
    'MarkdownDocument',
    'parse_frontmatter',
    'serialize_frontmatter',
    'read_markdown_file',
    'write_markdown_file',
    'update_metadata',
    'is_template_path',
    'is_hidden_path',
    'MarkdownBatchProcessor',
    # normalize
    'clean_links',
    'normalize_to_array',
    'ensure_list',
    'translate_fields',
    'belongs_to',
    'parse_int',
    'parse_float',
    'normalize_date',
    'extract_year',
    'sort_by_date',
    'slugify',
    'title_from_path',
    # fs
    'sanitize_filename',
    'move_file',
    'vault_relative',
]
