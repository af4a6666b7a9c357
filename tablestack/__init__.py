"""Stack per-site NEON portal downloads into one table per table name."""

__version__ = "0.1.0"
