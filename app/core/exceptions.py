"""Run-level exceptions raised by the sync engine."""


class TelegramSyncError(Exception):
    """Base class for errors that abort a whole sync run."""


class SyncConfigurationError(TelegramSyncError):
    """Required Telegram credentials are missing or malformed."""


class SourceConnectionError(TelegramSyncError):
    """The Telegram connection could not be established or is not authorized."""
