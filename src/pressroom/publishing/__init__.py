"""Publication scheduling and the human-approval channel."""

from pressroom.publishing.channel import TelegramChannel
from pressroom.publishing.scheduler import PublicationScheduler

__all__ = ["PublicationScheduler", "TelegramChannel"]
