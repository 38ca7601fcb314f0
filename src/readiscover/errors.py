from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from readiscover.types import ResourceRequest


class ReadiscoverError(RuntimeError):
    pass


class InputError(ReadiscoverError, ValueError):
    pass


class EmptyInputError(InputError):
    pass


class QueryEmptyError(InputError):
    pass


class ServiceCallError(ReadiscoverError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransientTransportError(ServiceCallError):
    """5xx, 429 or a connection fault that outlived every retry."""


class RequestRejectedError(ServiceCallError):
    """Non-retryable HTTP status (4xx other than 429)."""


class ApplicationError(ReadiscoverError):
    """The endpoint answered but its body reports ``status == "error"``."""


class RewriteFailedError(ApplicationError):
    pass


class SearchFailedError(ApplicationError):
    pass


class AllFailedError(ReadiscoverError):
    def __init__(self, message: str, *, failures: list[tuple[ResourceRequest, str]]) -> None:
        super().__init__(message)
        self.failures = failures


class SupersededError(ReadiscoverError):
    def __init__(self, generation: int, current: int) -> None:
        super().__init__(f"submission {generation} superseded by {current}")
        self.generation = generation
        self.current = current


class InvalidTransition(RuntimeError):
    pass
