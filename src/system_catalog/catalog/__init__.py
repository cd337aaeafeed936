"""Record operations and dashboard summaries."""

from .operations import SUPPORTED_METHODS, CatalogOperations
from .summary import build_summary

__all__ = ["SUPPORTED_METHODS", "CatalogOperations", "build_summary"]
