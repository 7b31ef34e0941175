class LfgBotError(Exception):
    """Base exception for the group-finder bot."""


class ConfigurationError(LfgBotError):
    """Raised when the provided configuration is invalid."""


class DiscordOperationError(LfgBotError):
    """Raised when an operation against Discord or a webhook fails."""


class AuthenticationError(DiscordOperationError):
    """Raised when Discord rejects the bot token."""


class PersistenceError(LfgBotError):
    """Raised when the group store cannot read or write a record."""


class SelectionRejected(LfgBotError):
    """Raised when an interaction fails a precondition.

    The message is shown privately to the acting user.
    """


class StaleReservation(SelectionRejected):
    """Raised when a reserved slot was filled by someone else before commit."""
