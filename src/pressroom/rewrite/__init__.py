"""Rewrite/translate engine."""

from pressroom.rewrite.engine import RewriteEngine, RewriteMode, RewriteResult

__all__ = ["RewriteEngine", "RewriteMode", "RewriteResult"]
