"""Application error taxonomy."""


class PlatewiseError(Exception):
    """Base error that carries a user-facing message and optional details."""

    status_code = 500

    def __init__(
        self,
        message: str,
        details: object | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code

    def with_status(self, status_code: int) -> "PlatewiseError":
        """Return a copy of this error reported under another HTTP status."""
        return type(self)(self.message, self.details, status_code=status_code)


class InvalidRequestError(PlatewiseError):
    """The request payload is missing data or malformed."""

    status_code = 400


class UnauthorizedError(PlatewiseError):
    """The caller has no valid bearer token."""

    status_code = 401


class NotFoundError(PlatewiseError):
    """A plan, customer or subscription record could not be found."""

    status_code = 404


class UpstreamError(PlatewiseError):
    """A storage, model, database or payment-provider call failed."""

    status_code = 502
