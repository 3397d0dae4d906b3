"""Source repository teardown via the GitHub REST API."""

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
from src.logging_config import get_logger

logger = get_logger(__name__)

API_VERSION = "2022-11-28"
USER_AGENT = "site-teardown/1.0"

# Classic PATs are 40 chars, fine-grained ones far longer; anything under
# this is a truncated or placeholder value.
_MIN_TOKEN_LENGTH = 20


def split_repository(identifier: str) -> tuple[str, str]:
    """Split ``owner/repo`` into its parts.

    Raises:
        ProviderNotConfiguredError: if either part is missing
    """
    owner, _, repo = identifier.partition("/")
    if not owner or not repo or "/" in repo:
        raise ProviderNotConfiguredError(
            f"Invalid GitHub repository: {identifier!r} (expected owner/repo)"
        )
    return owner, repo


class GitHubRepositoryAdapter(DeletionAdapter):
    """Deletes ``owner/repo``. Requires a token with the delete_repo scope."""

    display_name = "GitHub"

    def __init__(
        self,
        token: str,
        api_url: str = "https://api.github.com",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(timeout=timeout, transport=transport)
        self._token = token.strip()
        self._api_url = api_url.rstrip("/")

    def _check_token(self) -> None:
        require_credentials(self.display_name, github_token=self._token)
        if len(self._token) < _MIN_TOKEN_LENGTH:
            raise ProviderNotConfiguredError(
                f"GitHub token appears invalid (too short): {len(self._token)} "
                "characters. Make sure GITHUB_TOKEN is set correctly."
            )

    async def delete(self, identifier: str) -> ProviderOutcome:
        self._check_token()
        owner, repo = split_repository(identifier)

        async with self._client() as client:
            response = await client.delete(
                f"{self._api_url}/repos/{quote(owner, safe='')}/{quote(repo, safe='')}",
                headers={
                    "Authorization": f"token {self._token}",
                    "X-GitHub-Api-Version": API_VERSION,
                    "Accept": "application/vnd.github+json",
                    "User-Agent": USER_AGENT,
                },
            )

        if response.status_code == 404:
            logger.info("GitHub repository already absent", repository=identifier)
            return ProviderOutcome.not_found()

        if response.status_code == 401:
            try:
                detail = response.json().get("message", "Bad credentials")
            except ValueError:
                detail = "Bad credentials"
            raise ProviderAuthError(
                "GitHub authentication failed (401 Unauthorized). Token may be "
                "invalid, expired, or lack required permissions (delete_repo, "
                f"admin:repo_hook). Error: {detail}"
            )

        if not response.is_success:
            raise ProviderError(
                f"GitHub API error {response.status_code}: {response_detail(response)}"
            )

        logger.info("GitHub repository deleted", repository=identifier)
        return ProviderOutcome.deleted()
