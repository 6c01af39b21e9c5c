"""
contactbook: local contact manager core.

Validated contact CRUD, search, sorting, pagination and CSV import/export
over a SQLite store.
"""

__version__ = "0.1.0"
