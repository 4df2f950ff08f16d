"""
Field translation and value normalization shared by all exporters.

Frontmatter values arrive as whatever PyYAML produced: strings, numbers,
dates, datetimes, or lists of those. Everything here is total: a value that
cannot be coerced is returned unchanged rather than raising.
"""
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Union

from .patterns import (
    HYPHEN_RUN_PATTERN,
    ISO_YEAR_PATTERN,
    LEADING_FLOAT_PATTERN,
    LEADING_INT_PATTERN,
    NON_ALNUM_RUN_PATTERN,
    PLAIN_DATE_PATTERN,
    strip_wikilinks,
)

MetaValue = Union[str, int, float, bool, date, datetime, None, List["MetaValue"]]
Metadata = Mapping[str, MetaValue]

CATEGORY_KEY = "Kategorie"
MIDNIGHT_UTC_SUFFIX = "T00:00:00.000Z"


def is_empty(value: Any) -> bool:
    """None, empty string and empty list count as absent."""
    return value is None or value == "" or value == []


# =============================================================================
# Wikilinks and field dictionaries
# =============================================================================

def clean_links(value: MetaValue) -> MetaValue:
    """
    Strip wikilink brackets from a value.

    Strings are cleaned, lists element-wise (order kept), anything else is
    returned as is.

    >>> clean_links(["[[A]]", "B"])
    ['A', 'B']
    """
    if isinstance(value, list):
        return [clean_links(v) for v in value]
    if isinstance(value, str):
        return strip_wikilinks(value)
    return value


def normalize_to_array(value: MetaValue) -> List[MetaValue]:
    """Scalar → one-element list, list → cleaned list, empty → []."""
    if is_empty(value):
        return []
    if isinstance(value, list):
        return [clean_links(v) for v in value]
    return [clean_links(value)]


def ensure_list(value: MetaValue) -> MetaValue:
    """Wrap a non-empty scalar in a list; lists and empty values pass through."""
    if is_empty(value) or isinstance(value, list):
        return value
    return [value]


def translate_fields(metadata: Metadata, key_map: Mapping[str, str]) -> Dict[str, MetaValue]:
    """
    Translate source-keyed metadata into output keys.

    Only keys listed in ``key_map`` are copied; a key missing from the
    metadata is not emitted. Values are link-cleaned.
    """
    result: Dict[str, MetaValue] = {}
    for source_key, target_key in key_map.items():
        if source_key in metadata:
            result[target_key] = clean_links(metadata[source_key])
    return result


def belongs_to(metadata: Metadata, term: str, key: str = CATEGORY_KEY) -> bool:
    """
    Category membership test.

    The category value may be a string or a list; a note matches when any
    element contains ``term`` after wikilink stripping.
    """
    categories = metadata.get(key)
    if is_empty(categories):
        return False
    if not isinstance(categories, list):
        categories = [categories]
    return any(
        term in str(clean_links(category))
        for category in categories
        if category is not None
    )


# =============================================================================
# Numbers
# =============================================================================

def parse_int(value: MetaValue) -> MetaValue:
    """
    Parse a leading integer ("312", "312 Seiten" → 312).

    Unparseable values are returned unchanged.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        match = LEADING_INT_PATTERN.match(value)
        if match:
            return int(match.group(1))
    return value


def parse_float(value: MetaValue) -> MetaValue:
    """Parse a leading decimal number; unparseable values are returned unchanged."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = LEADING_FLOAT_PATTERN.match(value)
        if match:
            return float(match.group(1))
    return value


# =============================================================================
# Dates
# =============================================================================

def format_timestamp(moment: datetime) -> str:
    """
    ISO-8601 UTC timestamp with milliseconds: 2024-01-10T08:30:00.000Z

    Naive datetimes are taken as UTC. Years are zero-padded to four digits
    so very old dates keep the fixed-width shape.
    """
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
        f".{moment.microsecond // 1000:03d}Z"
    )


def now_timestamp() -> str:
    return format_timestamp(datetime.now(timezone.utc))


def normalize_date(value: MetaValue) -> MetaValue:
    """
    Bring a date-like value into timestamp form.

    date      → YYYY-MM-DDT00:00:00.000Z
    datetime  → UTC timestamp with milliseconds
    "-0500-01-01" (fixed-width date string, signed year allowed)
              → "-0500-01-01T00:00:00.000Z"

    Any other value is returned unchanged.
    """
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, date):
        return f"{value.year:04d}-{value.month:02d}-{value.day:02d}{MIDNIGHT_UTC_SUFFIX}"
    if isinstance(value, str):
        stripped = value.strip()
        if PLAIN_DATE_PATTERN.match(stripped):
            return stripped + MIDNIGHT_UTC_SUFFIX
    return value


def extract_year(value: MetaValue, default: str = "unknown") -> str:
    """Year of a (normalized) date value as a string, or ``default``."""
    if isinstance(value, date):
        return str(value.year)
    if isinstance(value, str):
        match = ISO_YEAR_PATTERN.match(value.strip())
        if match:
            return str(int(match.group(1)))
    return default


def sort_by_date(
    items: List[Dict[str, Any]],
    field: str,
    descending: bool = True,
) -> List[Dict[str, Any]]:
    """
    Stable sort on a date field compared as strings.

    Items without the field always come last, whatever the direction.
    """
    dated = [item for item in items if not is_empty(item.get(field))]
    undated = [item for item in items if is_empty(item.get(field))]
    dated.sort(key=lambda item: str(item[field]), reverse=descending)
    return dated + undated


# =============================================================================
# Titles and slugs
# =============================================================================

def title_from_path(file_path: Path) -> str:
    """Display title of a note: its filename without the .md extension."""
    name = file_path.name
    return name[:-3] if name.endswith(".md") else name


def slugify(filename: str) -> str:
    """
    URL-safe slug from a note filename.

    >>> slugify("Was ist ein Digital Garden?.md")
    'was-ist-ein-digital-garden'
    """
    if filename.endswith(".md"):
        filename = filename[:-3]
    slug = NON_ALNUM_RUN_PATTERN.sub("-", filename.lower())
    return HYPHEN_RUN_PATTERN.sub("-", slug).strip("-")
