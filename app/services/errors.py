class LedgerError(Exception):
    """A payment or verification action that was refused without writing anything."""

    status_code = 409

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RecordNotFound(LedgerError):
    status_code = 404


class TransitionNotAllowed(LedgerError):
    status_code = 409


class RefundWindowClosed(LedgerError):
    status_code = 422


class NotesRequired(LedgerError):
    status_code = 422


class StaleRecord(LedgerError):
    """The record changed between read and write; the caller should reload."""

    status_code = 409


class InvalidCallback(LedgerError):
    status_code = 400


class InvalidSignature(LedgerError):
    status_code = 401
