"""Pre-moderation gate."""

from pressroom.moderation.gate import ModerationGate, ModerationResult

__all__ = ["ModerationGate", "ModerationResult"]
