"""Comment sync, sentiment classification and human-confirmed replies."""

from pressroom.comments.reply import CommentReplier, ReplyRequest
from pressroom.comments.sync import CommentSync

__all__ = ["CommentReplier", "CommentSync", "ReplyRequest"]
