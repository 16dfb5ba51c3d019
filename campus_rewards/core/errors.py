from fastapi import status


class LedgerError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationFailed(LedgerError):
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthorized(LedgerError):
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(LedgerError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(LedgerError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(LedgerError):
    status_code = status.HTTP_409_CONFLICT


class ChainGatewayError(LedgerError):
    """The token contract call failed or reverted."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
