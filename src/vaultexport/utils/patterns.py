"""
Shared regular expressions.

Patterns and thin helpers only, no business logic, so both the exporters
and the cover passes can import them safely.
"""

import re

# ==============================================================================
# WikiLink patterns
# ==============================================================================

# Display text of a wikilink
# [[path|label]] → label, [[label]] → label
# group 1: display text
WIKILINK_DISPLAY_PATTERN = re.compile(r'\[\[(?:[^\]|]+\|)?([^\]]+)\]\]')


def strip_wikilinks(text: str) -> str:
    """
    Replace wikilinks with their display text.

    [[Ken Follett]] → Ken Follett
    [[Personen/Ken Follett|Follett]] → Follett
    """
    return WIKILINK_DISPLAY_PATTERN.sub(r'\1', text)


# ==============================================================================
# Dates
# ==============================================================================

# Plain calendar date, optionally with a signed or extended year
# -0500-01-01, 2023-05-01, +012023-05-01
# group 1: year
PLAIN_DATE_PATTERN = re.compile(r'^([+-]?\d{4,6})-\d{2}-\d{2}$')

# Leading year of an ISO-like timestamp
ISO_YEAR_PATTERN = re.compile(r'^([+-]?\d{4,6})-\d{2}-\d{2}(?:T|$)')


# ==============================================================================
# Numbers (leading-prefix parsing, trailing text ignored)
# ==============================================================================

LEADING_INT_PATTERN = re.compile(r'^\s*([+-]?\d+)')
LEADING_FLOAT_PATTERN = re.compile(r'^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)')


# ==============================================================================
# Slugs and filenames
# ==============================================================================

NON_ALNUM_RUN_PATTERN = re.compile(r'[^a-z0-9]+')
NON_FILENAME_CHAR_PATTERN = re.compile(r'[^a-z0-9-]')
HYPHEN_RUN_PATTERN = re.compile(r'-+')
