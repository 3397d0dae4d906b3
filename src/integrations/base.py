"""Provider adapter contract for website teardown.

Every external system a site is provisioned on is wrapped by one adapter
exposing ``delete(identifier)``. Adapters return ``DELETED`` or
``NOT_FOUND`` and raise a ``ProviderError`` subclass for anything else;
the orchestrator turns raised errors into ``FAILED`` outcomes.
"""

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx


class ProviderError(Exception):
    """Provider call failed (non-2xx response, malformed body, ...)."""

    pass


class ProviderNotConfiguredError(ProviderError):
    """Credential or identifier missing or malformed; no call was made."""

    pass


class ProviderAuthError(ProviderError):
    """Provider rejected the credential (401/403)."""

    pass


class OutcomeStatus(str, enum.Enum):
    """Result of one teardown step."""

    DELETED = "deleted"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class ProviderOutcome:
    """Outcome of one adapter call.

    ``NOT_FOUND`` counts as success: deleting an already-deleted
    resource is what a retried teardown does.
    """

    status: OutcomeStatus
    reason: str | None = None

    @classmethod
    def deleted(cls) -> "ProviderOutcome":
        return cls(OutcomeStatus.DELETED)

    @classmethod
    def not_found(cls) -> "ProviderOutcome":
        return cls(OutcomeStatus.NOT_FOUND)

    @classmethod
    def failed(cls, reason: str) -> "ProviderOutcome":
        return cls(OutcomeStatus.FAILED, reason)

    @property
    def succeeded(self) -> bool:
        return self.status is not OutcomeStatus.FAILED


def require_credentials(provider: str, **values: str | None) -> None:
    """Fail fast when any credential for ``provider`` is empty.

    Keyword names are reported as their environment variable spelling.

    Raises:
        ProviderNotConfiguredError: naming every missing variable
    """
    missing = [name.upper() for name, value in values.items() if not value]
    if missing:
        raise ProviderNotConfiguredError(
            f"{provider} credentials not configured (missing {', '.join(missing)})"
        )


def response_detail(response: httpx.Response) -> str:
    """Response body for error messages, or the reason phrase if empty."""
    return response.text or response.reason_phrase


class DeletionAdapter(ABC):
    """Base class for provider adapters.

    Subclasses set ``display_name`` (used to prefix recorded errors) and
    implement ``delete``. HTTP adapters share one timeout and an optional
    transport so tests can substitute ``httpx.MockTransport``.
    """

    display_name: str = "Provider"

    def __init__(
        self,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    @abstractmethod
    async def delete(self, identifier: str) -> ProviderOutcome:
        """Delete the resource named by ``identifier``.

        Returns:
            ``ProviderOutcome.deleted()`` or ``ProviderOutcome.not_found()``

        Raises:
            ProviderError: on any failure
        """
