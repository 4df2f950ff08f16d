"""
Field dictionaries per exported collection

Each collection declares which frontmatter keys it reads (German vault keys
on the left, JSON keys on the right), the category it is filtered on, and
how individual output fields are coerced. Adding a collection means adding a
``CollectionSpec`` here and wiring it to an exporter class; the shared
pipeline in ``exporter.py`` reads everything else from it.
"""
from dataclasses import dataclass
from typing import Dict, Optional, Tuple


# Status labels used in the vault, in bucket order
STATUS_ACTIVE = "Aktiv"
STATUS_WATCHLIST = "Merkliste"
STATUS_PAUSED = "Pausiert"
STATUS_COMPLETED = "Abgeschlossen"

STATUS_KEY = "Status"
COVER_URL_KEY = "Cover"
COVER_LOCAL_KEY = "Cover (lokal)"


@dataclass(frozen=True)
class CollectionSpec:
    """Declarative description of one exported collection."""
    name: str
    category: str
    output_file: str
    key_map: Dict[str, str]
    status_key: Optional[str] = None
    array_fields: Tuple[str, ...] = ()
    int_fields: Tuple[str, ...] = ()
    float_fields: Tuple[str, ...] = ()
    date_fields: Tuple[str, ...] = ()
    sort_field: Optional[str] = None


BOOKS = CollectionSpec(
    name="books",
    category="Bücher",
    output_file="books.json",
    key_map={
        "Titel": "title",
        "Autor": "author",
        "Seiten": "pages",
        "Erschienen": "published",
        COVER_URL_KEY: "cover",
        COVER_LOCAL_KEY: "coverLocal",
        "isbn": "isbn",
        "Verlag": "publisher",
        "Genre": "genre",
        "Beendet": "finished",
        "Bewertung": "rating",
        "Hinzugefügt": "added",
    },
    status_key=STATUS_KEY,
    array_fields=("author", "genre"),
    int_fields=("pages",),
    float_fields=("rating",),
    date_fields=("published", "finished", "added"),
    sort_field="finished",
)

SERIES = CollectionSpec(
    name="series",
    category="Serien",
    output_file="series.json",
    key_map={
        "Titel": "title",
        "Staffel": "season",
        "Genre": "genre",
        "Regisseur": "director",
        "Bewertung": "rating",
        "scoreImdb": "imdbScore",
        "cast": "cast",
        "Cover": "cover",
        "Erschienen": "released",
        "Beendet": "finished",
        "Hinzugefügt": "added",
        "Favorit": "favorite",
    },
    status_key=STATUS_KEY,
    array_fields=("genre", "cast"),
    int_fields=("season",),
    float_fields=("rating", "imdbScore"),
    date_fields=("released", "finished", "added"),
    sort_field="finished",
)

TIMELINE = CollectionSpec(
    name="timeline",
    category="Timeline",
    output_file="timeline.json",
    key_map={
        "Titel": "title",
        "Typ": "type",
        "Beginn": "start",
        "Ende": "end",
        "Bereich": "domain",
        "Schlagwörter": "tags",
        "Hinzugefügt": "added",
    },
    array_fields=("tags",),
    date_fields=("start", "end", "added"),
    sort_field="start",
)

DIGITAL_GARDEN = CollectionSpec(
    name="digital-garden",
    category="Digital Garden",
    output_file="digital-garden.json",
    key_map={
        "Thema": "thema",
        "description": "description",
        "created": "created",
        "edited": "edited",
    },
    date_fields=("created", "edited"),
    sort_field="edited",
)
