from .exporter import StatusGroupedExporter
from .schema import SERIES


class SeriesExporter(StatusGroupedExporter):
    """Exports TV series notes to series.json."""
    spec = SERIES
