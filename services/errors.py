"""Domain errors raised by the wallet workflows.

Every business-rule error is raised inside the atomic unit, so the unit rolls
back and the caller sees a clean failure with nothing applied.
"""


class WalletError(Exception):
    code = "wallet_error"
    http_status = 400

    def __init__(self, message=None, **context):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__
        self.context = context

    def to_response(self):
        payload = {"error": self.code, "message": self.message}
        if self.context:
            payload["context"] = self.context
        return payload


class NotFoundError(WalletError):
    """Requested record does not exist."""
    code = "not_found"
    http_status = 404


class ExperienceNotJoinableError(WalletError):
    """Experience is not open for this operation."""
    code = "experience_not_joinable"
    http_status = 409


class AlreadyJoinedError(WalletError):
    """User already holds a ticket for this experience."""
    code = "already_joined"
    http_status = 409


class NoSeatsError(WalletError):
    """No seats left."""
    code = "no_seats"
    http_status = 409


class InsufficientBalanceError(WalletError):
    """Insufficient balance."""
    code = "insufficient_balance"
    http_status = 402


class EscrowReleasedError(WalletError):
    """Escrow has already been released."""
    code = "escrow_released"
    http_status = 409


class StorageTransactionError(WalletError):
    """Storage transaction conflicted or timed out. Safe to retry."""
    code = "storage_conflict"
    http_status = 503
