"""Analytics property teardown via the Google Analytics Admin API."""

from urllib.parse import quote

import httpx

from src.integrations.base import (
    DeletionAdapter,
    ProviderAuthError,
    ProviderError,
    ProviderNotConfiguredError,
    ProviderOutcome,
    require_credentials,
    response_detail,
)
from src.integrations.google_oauth import (
    TOKEN_URL,
    load_service_account_key,
    mint_access_token,
)
from src.logging_config import get_logger

logger = get_logger(__name__)

ADMIN_API_URL = "https://analyticsadmin.googleapis.com/v1beta"
ANALYTICS_EDIT_SCOPE = "https://www.googleapis.com/auth/analytics.edit"


class GoogleAnalyticsPropertyAdapter(DeletionAdapter):
    """Deletes a GA4 property using a service account.

    The service account must be granted edit access on the property.
    """

    display_name = "Google Analytics"

    def __init__(
        self,
        service_account_key: str,
        api_url: str = ADMIN_API_URL,
        token_url: str = TOKEN_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(timeout=timeout, transport=transport)
        self._service_account_key = service_account_key
        self._api_url = api_url.rstrip("/")
        self._token_url = token_url

    async def delete(self, identifier: str) -> ProviderOutcome:
        require_credentials(
            self.display_name,
            google_service_account_key=self._service_account_key,
        )
        property_id = identifier.removeprefix("properties/")
        if not property_id:
            raise ProviderNotConfiguredError("Property ID is required")

        service_account = load_service_account_key(self._service_account_key)

        async with self._client() as client:
            access_token = await mint_access_token(
                client,
                service_account,
                ANALYTICS_EDIT_SCOPE,
                token_url=self._token_url,
            )
            response = await client.delete(
                f"{self._api_url}/properties/{quote(property_id, safe='')}",
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Content-Type": "application/json",
                },
            )

        if response.status_code == 404:
            logger.info("Analytics property already absent", property_id=property_id)
            return ProviderOutcome.not_found()

        if response.status_code in (401, 403):
            raise ProviderAuthError(
                f"GA4 API authentication failed ({response.status_code}). Service "
                "account may not have 'analytics.edit' permission or token may be "
                "invalid."
            )

        if not response.is_success:
            raise ProviderError(
                f"GA4 Admin API error {response.status_code}: {response_detail(response)}"
            )

        logger.info("Analytics property deleted", property_id=property_id)
        return ProviderOutcome.deleted()
