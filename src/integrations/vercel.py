"""Hosting project teardown via the Vercel REST API."""

from urllib.parse import quote

import httpx

from src.integrations.base import (
    DeletionAdapter,
    ProviderError,
    ProviderOutcome,
    require_credentials,
    response_detail,
)
from src.logging_config import get_logger

logger = get_logger(__name__)


class VercelProjectAdapter(DeletionAdapter):
    """Deletes a hosting project by name or id."""

    display_name = "Vercel"

    def __init__(
        self,
        token: str,
        team_id: str = "",
        api_url: str = "https://api.vercel.com",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(timeout=timeout, transport=transport)
        self._token = token
        self._team_id = team_id
        self._api_url = api_url.rstrip("/")

    async def delete(self, identifier: str) -> ProviderOutcome:
        require_credentials(self.display_name, vercel_token=self._token)

        params = {"teamId": self._team_id} if self._team_id else None
        async with self._client() as client:
            response = await client.delete(
                f"{self._api_url}/v13/projects/{quote(identifier, safe='')}",
                headers={
                    "Authorization": f"Bearer {self._token}",
                    "Content-Type": "application/json",
                },
                params=params,
            )

        if response.status_code == 404:
            logger.info("Vercel project already absent", project=identifier)
            return ProviderOutcome.not_found()

        if not response.is_success:
            raise ProviderError(
                f"Vercel API error {response.status_code}: {response_detail(response)}"
            )

        logger.info("Vercel project deleted", project=identifier)
        return ProviderOutcome.deleted()
