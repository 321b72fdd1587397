"""pressroom: ingest, moderate, rewrite, illustrate and distribute news content."""

__version__ = "0.1.0"
