"""
Output document persistence

Every collection is written as one pretty-printed JSON document with a
``lastUpdated`` timestamp and an item ``count`` in front of its grouped data.
``lastUpdated`` only moves when the grouped data differs from what is
already on disk, so the website can use it for change detection.
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict

from ..utils.normalize import now_timestamp

logger = logging.getLogger(__name__)

META_KEYS = ("lastUpdated", "count")


def _content_only(document: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in document.items() if key not in META_KEYS}


def _as_json_value(data: Any) -> Any:
    """Round-trip through JSON so new data compares like data read from disk."""
    return json.loads(json.dumps(data, ensure_ascii=False, default=str))


def load_document(output_path: Path) -> Dict[str, Any]:
    """
    Read a previously written document.

    Returns an empty dict when the file is missing, unreadable or not a JSON
    object.
    """
    try:
        with open(output_path, "r", encoding="utf-8") as f:
            existing = json.load(f)
    except FileNotFoundError:
        return {}
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable output file {output_path}: {e}")
        return {}
    return existing if isinstance(existing, dict) else {}


def get_last_updated(output_path: Path, new_data: Dict[str, Any]) -> str:
    """
    Timestamp for a new document.

    Keeps the existing ``lastUpdated`` when the grouped data (everything but
    ``lastUpdated`` and ``count``) is deeply equal to the persisted document;
    otherwise returns the current time.
    """
    existing = load_document(output_path)
    previous_timestamp = existing.get("lastUpdated")

    if isinstance(previous_timestamp, str):
        if _content_only(existing) == _as_json_value(_content_only(new_data)):
            logger.debug(f"Data unchanged, keeping timestamp of {output_path.name}")
            return previous_timestamp

    return now_timestamp()


def build_document(output_path: Path, grouped: Dict[str, Any], count: int) -> Dict[str, Any]:
    """Assemble ``{lastUpdated, count, **grouped}`` for ``output_path``."""
    return {
        "lastUpdated": get_last_updated(output_path, grouped),
        "count": count,
        **grouped,
    }


def write_output(output_path: Path, data: Dict[str, Any]) -> Path:
    """Write a document as indented UTF-8 JSON, creating the directory."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2, default=str)
        f.write("\n")
    return output_path
