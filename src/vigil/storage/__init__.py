"""Vigil storage: unified SQLite/PostgreSQL connection wrapper."""

from vigil.storage.db import DbConnection, connect

__all__ = ["DbConnection", "connect"]
