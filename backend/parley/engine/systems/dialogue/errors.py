"""
Dialogue error hierarchy.

Every error carries two messages: the exception text (detailed, for logs)
and ``user_message`` (short, safe to show to a player).
"""


class DialogueError(Exception):
    """Base class for all dialogue failures."""

    default_user_message = "Something went wrong with that conversation."

    def __init__(self, message: str, *, user_message: str | None = None) -> None:
        super().__init__(message)
        self.user_message = user_message or self.default_user_message


class ConfigurationError(DialogueError):
    """A dialogue tree or content file is malformed."""

    default_user_message = "That conversation is not available right now."


class NotFoundError(DialogueError):
    """Unknown tree, provider, conversation, or an NPC no provider can handle."""

    default_user_message = "There is no such conversation."


class OwnershipError(DialogueError):
    """The conversation belongs to a different player."""

    default_user_message = "That conversation is not yours."


class CapacityError(DialogueError):
    """The player already has the maximum number of open conversations."""

    default_user_message = "You are already in too many conversations."


class ConversationTimeoutError(DialogueError):
    """The conversation sat idle past the configured limit and was closed."""

    default_user_message = "That conversation has timed out."
