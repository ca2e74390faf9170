from decimal import Decimal


class LedgerError(ValueError):
    pass


class ValidationError(LedgerError):
    pass


class NotFoundError(LedgerError):
    pass


class AuthorizationError(LedgerError):
    pass


class ConflictError(LedgerError):
    pass


class InsufficientBalanceError(LedgerError):
    def __init__(self, available: Decimal, requested: Decimal) -> None:
        self.Available = available
        self.Requested = requested
        self.Shortfall = requested - available
        super().__init__(
            f"Insufficient points available: requested {requested}, "
            f"available {available}, short by {self.Shortfall}"
        )
