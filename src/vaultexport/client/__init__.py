from .base import BaseClient
from .covers import CoverClient

__all__ = ["BaseClient", "CoverClient"]
