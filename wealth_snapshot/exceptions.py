"""
Exception hierarchy for Wealth Snapshot.

Storage and remote-channel errors are recoverable: callers log them and
keep operating from memory. Precondition errors mean the caller asked for
something impossible (settling against an account that does not exist)
and the mutation is rejected without any partial change.
"""


class WealthSnapshotError(Exception):
    """Base exception for the package."""
    pass


class StorageError(WealthSnapshotError):
    """Local durable storage could not be read or written."""
    pass


class CorruptStateError(StorageError):
    """A persisted record exists but is not a valid application state."""
    pass


class RemoteChannelError(WealthSnapshotError):
    """The remote store rejected a write or could not be reached."""
    pass


class ChannelNotReadyError(RemoteChannelError):
    """The remote channel did not become ready in time."""
    pass


class BackupError(WealthSnapshotError):
    """The secondary backup sink failed."""
    pass


class PreconditionError(WealthSnapshotError):
    """A mutation was requested with arguments that do not resolve."""
    pass


class UnknownAccountError(PreconditionError):
    """No account with the given id."""

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account not found: {account_id}")


class UnknownDepositError(PreconditionError):
    """No deposit with the given id."""

    def __init__(self, deposit_id: str):
        self.deposit_id = deposit_id
        super().__init__(f"Deposit not found: {deposit_id}")


class InvalidAmountError(PreconditionError):
    """An amount argument is outside its allowed range."""
    pass


class ExtractionError(WealthSnapshotError):
    """Statement scanning failed to produce usable data."""
    pass
