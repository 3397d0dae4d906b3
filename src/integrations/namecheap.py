"""Subdomain DNS teardown via the Namecheap XML API.

Removes every host record of ``label`` (and ``label.*``) under the parent
domain by resubmitting the complement of the current record set.
"""

import httpx

from src.integrations.base import (
    DeletionAdapter,
    ProviderError,
    ProviderNotConfiguredError,
    ProviderOutcome,
    require_credentials,
)
from src.integrations.namecheap_hosts import (
    api_errors,
    api_status,
    build_set_hosts_params,
    count_host_tags,
    parse_host_records,
    parse_subdomain,
    partition_records,
)
from src.logging_config import get_logger

logger = get_logger(__name__)

PRODUCTION_URL = "https://api.namecheap.com/xml.response"
SANDBOX_URL = "https://api.sandbox.namecheap.com/xml.response"


class NamecheapSubdomainAdapter(DeletionAdapter):
    """Deletes the DNS host records of one subdomain."""

    display_name = "Namecheap"

    def __init__(
        self,
        api_user: str,
        api_key: str,
        username: str,
        client_ip: str = "127.0.0.1",
        sandbox: bool = False,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(timeout=timeout, transport=transport)
        self._api_user = api_user
        self._api_key = api_key
        self._username = username
        self._client_ip = client_ip or "127.0.0.1"
        self._url = SANDBOX_URL if sandbox else PRODUCTION_URL

    def _params(self, command: str, sld: str, tld: str) -> dict[str, str]:
        return {
            "ApiUser": self._api_user,
            "ApiKey": self._api_key,
            "UserName": self._username,
            "Command": command,
            "SLD": sld,
            "TLD": tld,
            "ClientIp": self._client_ip,
        }

    @staticmethod
    def _raise_for_api_errors(xml: str, command: str) -> None:
        if api_status(xml) == "ERROR":
            errors = api_errors(xml) or ["unknown error"]
            raise ProviderError(
                f"Namecheap {command} returned errors: {'; '.join(errors)}"
            )

    async def delete(self, identifier: str) -> ProviderOutcome:
        require_credentials(
            self.display_name,
            namecheap_api_user=self._api_user,
            namecheap_api_key=self._api_key,
            namecheap_username=self._username,
        )
        try:
            label, sld, tld = parse_subdomain(identifier)
        except ValueError as e:
            raise ProviderNotConfiguredError(str(e)) from e

        async with self._client() as client:
            response = await client.get(
                self._url,
                params=self._params("namecheap.domains.dns.getHosts", sld, tld),
            )
            if not response.is_success:
                raise ProviderError(
                    f"Namecheap API error {response.status_code}: "
                    f"{response.reason_phrase}"
                )
            self._raise_for_api_errors(response.text, "getHosts")

            records = parse_host_records(response.text)
            unparsed = count_host_tags(response.text) - len(records)
            matching, remaining = partition_records(records, label)
            logger.info(
                "Namecheap host records fetched",
                domain=f"{sld}.{tld}",
                total=len(records),
                matching=len(matching),
            )

            # setHosts replaces the whole set; an unreadable record would be lost
            if unparsed:
                raise ProviderError(
                    f"Namecheap getHosts returned {unparsed} host record(s) that "
                    "could not be parsed; refusing to rewrite the record set"
                )

            if not matching:
                logger.info("Namecheap subdomain already absent", subdomain=identifier)
                return ProviderOutcome.not_found()

            params = self._params("namecheap.domains.dns.setHosts", sld, tld)
            params.update(build_set_hosts_params(remaining))
            response = await client.post(self._url, params=params)

        if not response.is_success:
            raise ProviderError(
                f"Namecheap setHosts failed {response.status_code}: {response.text}"
            )
        self._raise_for_api_errors(response.text, "setHosts")

        if api_status(response.text) != "OK":
            raise ProviderError(
                f"Namecheap setHosts returned an unexpected response: "
                f"{response.text[:500]}"
            )

        logger.info(
            "Namecheap subdomain records deleted",
            subdomain=identifier,
            removed=len(matching),
            kept=len(remaining),
        )
        return ProviderOutcome.deleted()
