"""
Classified completion errors.

Adapters translate every transport/HTTP fault into one of the request-path
classifications below before it leaves the adapter:

- RateLimited: backend signalled quota/overload (HTTP 429)
- AuthInvalid: credential rejected or expired (HTTP 401/403)
- TransientFailure: any other non-2xx, transport error or timeout
- MalformedResponse: 2xx without the expected completion text (a TransientFailure)

The remaining classes describe terminal orchestration outcomes and
configuration errors; they never carry a backend response.
"""
from typing import Optional


class CompletionError(Exception):
    """Base class for all classified completion failures."""

    def __init__(
        self,
        message: str,
        backend: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.backend = backend
        self.status_code = status_code

    @property
    def kind(self) -> str:
        return type(self).__name__


class RateLimited(CompletionError):
    """Backend signalled quota exhaustion or overload."""


class AuthInvalid(CompletionError):
    """Credential rejected by the backend."""


class TransientFailure(CompletionError):
    """Non-2xx response, transport error or timeout."""


class MalformedResponse(TransientFailure):
    """2xx response whose body lacks the expected completion text."""


class UnknownBackend(CompletionError):
    """Backend identifier is not part of the registry."""


class AllBackendsExhausted(CompletionError):
    """Automatic mode ran out of candidates."""


class ExplicitBackendUnavailable(CompletionError):
    """Pinned backend is disabled or has no credential."""
