"""Exceptions raised by the BounceBan client and dispatcher."""

from typing import Any, Optional


class BounceBanError(Exception):
    """Base class for every error raised by this package."""


class CredentialsError(BounceBanError):
    """No usable API key was supplied."""


class BounceBanApiError(BounceBanError):
    """The BounceBan API could not be reached or answered with an error."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Any = None,
        attempts: int = 1,
    ):
        self.status_code = status_code
        self.body = body
        self.attempts = attempts
        super().__init__(message)

    @property
    def is_timeout(self) -> bool:
        return self.status_code == 408


class NodeOperationError(BounceBanError):
    """A record (or the whole invocation) could not be processed."""

    def __init__(
        self,
        message: str,
        description: Optional[str] = None,
        item_index: Optional[int] = None,
    ):
        self.description = description
        self.item_index = item_index
        super().__init__(message)

    def __str__(self) -> str:
        base = super().__str__()
        if self.item_index is None:
            return base
        return f"{base} [item {self.item_index}]"
