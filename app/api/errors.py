from fastapi import HTTPException

from app.services.errors import LedgerError


def http_error(e: LedgerError) -> HTTPException:
    """Map a refused ledger/verification action onto an HTTP error, nothing written."""
    return HTTPException(status_code=e.status_code, detail=e.message)
