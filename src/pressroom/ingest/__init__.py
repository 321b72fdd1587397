"""Ingestion: source adapters, deduplication, and item creation."""
