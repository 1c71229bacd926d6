"""Data-retrieval back ends"""

from .base import CapabilityCatalog, DataSource
from .ranking import fetch_ranked_subjects, parse_cost_datapoints

__all__ = [
    "CapabilityCatalog",
    "DataSource",
    "fetch_ranked_subjects",
    "parse_cost_datapoints",
]
