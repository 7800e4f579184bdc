"""Schema migrations for the database-backed resource groups configuration store."""

__version__ = "0.1.0"
