from .books import BooksExporter
from .garden import DigitalGardenExporter
from .series import SeriesExporter
from .timeline import TimelineExporter

# Run order of export-all
EXPORTERS = {
    "books": BooksExporter,
    "series": SeriesExporter,
    "timeline": TimelineExporter,
    "digital-garden": DigitalGardenExporter,
}

__all__ = [
    "BooksExporter",
    "SeriesExporter",
    "TimelineExporter",
    "DigitalGardenExporter",
    "EXPORTERS",
]
