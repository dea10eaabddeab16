"""
Service Layer Exceptions

Custom exceptions for the bot's dispatch and rendering logic. Content defects
in fault packs are never raised; they are rendered as in-chat warnings.
"""


class UnknownManufacturerError(ValueError):
    """Raised when a pack key does not name a known manufacturer."""
    pass


class CallbackDataTooLongError(ValueError):
    """Raised when a button token exceeds Telegram's 64-byte callback_data limit."""
    pass
