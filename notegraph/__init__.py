"""SQLite note storage, a SQLite migration driver and note tool handlers."""

__version__ = "0.1.0"