class BolaoError(Exception):
    """Base error for the bolão core. Carries the HTTP status the API layer reports."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message}


class ValidationError(BolaoError):
    status_code = 422

    def __init__(self, message: str, errors=None):
        super().__init__(message)
        self.errors = list(errors or [message])

    def to_dict(self) -> dict:
        return {"detail": self.message, "errors": self.errors}


class NotFoundError(BolaoError):
    status_code = 404


class InsufficientFundsError(BolaoError):
    def __init__(self, message: str, total_funds: float, shortfall: float):
        super().__init__(message)
        self.total_funds = total_funds
        self.shortfall = shortfall

    def to_dict(self) -> dict:
        return {"detail": self.message, "total_funds": self.total_funds, "shortfall": self.shortfall}


class IntegrityError(BolaoError):
    """Stored data is incomplete. Usually recovered where it is raised."""

    status_code = 500


class ConcurrencyError(BolaoError):
    status_code = 409
