from fastapi import HTTPException


class LedgerError(HTTPException):
    """Base for errors raised by the ledger services.

    Subclasses carry their HTTP status so services can raise them directly
    and FastAPI turns them into responses without extra handlers.
    """

    status_code = 400

    def __init__(self, detail: str):
        super().__init__(status_code=self.status_code, detail=detail)


class NotFound(LedgerError):
    status_code = 404


class Forbidden(LedgerError):
    status_code = 403


class InvalidState(LedgerError):
    status_code = 400


class ValidationError(LedgerError):
    status_code = 422


class Conflict(LedgerError):
    status_code = 409
