"""System Catalog API: spreadsheet-backed CRUD service for systems and requirements."""

__version__ = "1.0.0"
