"""
Ingestor data models.
"""

from services.ingestor.models.base import ImportReport, IngestStats, TableLoadResult
from services.ingestor.models.general import Category, Chain, Destination, MasterHotel

__all__ = [
    "ImportReport",
    "IngestStats",
    "TableLoadResult",
    "Category",
    "Chain",
    "Destination",
    "MasterHotel",
]
