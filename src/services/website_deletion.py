"""Website teardown orchestrator.

Removes a site from every system it was provisioned on: hosting project,
source repository, analytics property, subdomain DNS records and tenant
database, then the control-plane site record.

Provider steps are independent. A failure in one is recorded and the
others still run; the site record deletion is always attempted, after
every provider step has finished. ``delete_website`` never raises: the
caller gets one aggregate ``DeletionResult`` with per-resource flags and
the list of errors.

Every step is idempotent (provider not-found counts as success), so a
partially failed teardown is retried by calling ``delete_website`` again
with the same request.
"""

import asyncio
import re
from collections.abc import Awaitable
from dataclasses import dataclass, field, fields

from src.config import Settings, settings
from src.database import get_session_maker
from src.integrations.base import DeletionAdapter, OutcomeStatus, ProviderOutcome
from src.integrations.github import GitHubRepositoryAdapter
from src.integrations.google_analytics import GoogleAnalyticsPropertyAdapter
from src.integrations.namecheap import NamecheapSubdomainAdapter
from src.integrations.vercel import VercelProjectAdapter
from src.logging_config import get_logger, site_id_ctx
from src.models.site import Site
from src.services.site_records import SiteRecordStore
from src.services.tenant_database import TenantDatabaseAdapter

logger = get_logger(__name__)

_GITHUB_REPO_URL = re.compile(r"github\.com[/:]([^/]+)/([^/?#]+)")


@dataclass(frozen=True)
class DeletionRequest:
    """Identifiers of everything provisioned for one site.

    Only ``site_id`` and ``owner_id`` are required; each optional
    identifier that is present triggers its provider step.
    """

    site_id: str
    owner_id: str
    hosting_project_name: str | None = None
    source_repo_owner: str | None = None
    source_repo_name: str | None = None
    tenant_db_name: str | None = None
    analytics_property_id: str | None = None
    subdomain: str | None = None


@dataclass
class DeletedResources:
    """Per-provider flags; True when the resource is gone (deleted or absent)."""

    hosting: bool = False
    source_repo: bool = False
    tenant_db: bool = False
    analytics: bool = False
    subdomain_dns: bool = False

    def any(self) -> bool:
        return any(getattr(self, f.name) for f in fields(self))


@dataclass
class DeletionResult:
    """Aggregate teardown result.

    ``overall_success`` is True when at least one resource (provider or
    site record) is gone. It is intentionally permissive; callers that
    need a stricter policy should inspect ``resources_deleted``,
    ``site_record_deleted`` or ``outcomes``.
    """

    overall_success: bool
    resources_deleted: DeletedResources
    errors: list[str] | None = None
    site_record_deleted: bool = False
    outcomes: dict[str, ProviderOutcome] = field(default_factory=dict)


@dataclass(frozen=True)
class _Step:
    key: str  # DeletedResources field
    adapter: DeletionAdapter
    identifier: str


class WebsiteDeletionService:
    """Stateless orchestrator; all collaborators are injected."""

    def __init__(
        self,
        hosting: DeletionAdapter,
        source_repo: DeletionAdapter,
        analytics: DeletionAdapter,
        subdomain_dns: DeletionAdapter,
        tenant_database: DeletionAdapter,
        site_records: SiteRecordStore,
        step_timeout: float = 30.0,
        max_concurrency: int = 1,
    ):
        self._hosting = hosting
        self._source_repo = source_repo
        self._analytics = analytics
        self._subdomain_dns = subdomain_dns
        self._tenant_database = tenant_database
        self._site_records = site_records
        self._step_timeout = step_timeout
        self._max_concurrency = max(1, max_concurrency)

    def _plan(self, request: DeletionRequest) -> list[_Step]:
        """Provider steps for the identifiers present, in canonical order."""
        steps = []
        if request.hosting_project_name:
            steps.append(_Step("hosting", self._hosting, request.hosting_project_name))
        if request.source_repo_owner and request.source_repo_name:
            steps.append(
                _Step(
                    "source_repo",
                    self._source_repo,
                    f"{request.source_repo_owner}/{request.source_repo_name}",
                )
            )
        if request.analytics_property_id:
            steps.append(
                _Step("analytics", self._analytics, request.analytics_property_id)
            )
        if request.subdomain:
            steps.append(_Step("subdomain_dns", self._subdomain_dns, request.subdomain))
        if request.tenant_db_name:
            steps.append(
                _Step("tenant_db", self._tenant_database, request.tenant_db_name)
            )
        return steps

    async def _run_step(
        self,
        name: str,
        identifier: str,
        call: Awaitable[ProviderOutcome],
    ) -> ProviderOutcome:
        """Await one step, converting every error into a FAILED outcome."""
        logger.info("Deleting resource", step=name, identifier=identifier)
        try:
            outcome = await asyncio.wait_for(call, timeout=self._step_timeout)
        except TimeoutError:
            reason = f"timed out after {self._step_timeout:g}s"
            logger.error(
                "Resource deletion timed out", step=name, identifier=identifier
            )
            return ProviderOutcome.failed(reason)
        except Exception as e:
            logger.error(
                "Resource deletion failed",
                step=name,
                identifier=identifier,
                error=str(e),
            )
            return ProviderOutcome.failed(str(e) or type(e).__name__)

        if outcome.status is OutcomeStatus.NOT_FOUND:
            logger.info("Resource already absent", step=name, identifier=identifier)
        else:
            logger.info("Resource deleted", step=name, identifier=identifier)
        return outcome

    async def _run_provider_steps(self, steps: list[_Step]) -> list[ProviderOutcome]:
        # Steps start in list order; the semaphore is FIFO, so a limit of
        # one runs them strictly one after another.
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def bounded(step: _Step) -> ProviderOutcome:
            async with semaphore:
                return await self._run_step(
                    step.adapter.display_name,
                    step.identifier,
                    step.adapter.delete(step.identifier),
                )

        return list(await asyncio.gather(*(bounded(step) for step in steps)))

    async def _delete_site_record(self, request: DeletionRequest) -> ProviderOutcome:
        await self._site_records.delete(request.site_id, request.owner_id)
        return ProviderOutcome.deleted()

    async def delete_website(self, request: DeletionRequest) -> DeletionResult:
        """Tear down every resource named in ``request``. Never raises."""
        resources = DeletedResources()
        errors: list[str] = []
        outcomes: dict[str, ProviderOutcome] = {}
        site_record_deleted = False
        token = site_id_ctx.set(request.site_id)

        try:
            steps = self._plan(request)
            logger.info(
                "Website deletion started",
                owner_id=request.owner_id,
                steps=[step.key for step in steps],
            )

            for step, outcome in zip(steps, await self._run_provider_steps(steps)):
                outcomes[step.key] = outcome
                if outcome.succeeded:
                    setattr(resources, step.key, True)
                else:
                    errors.append(
                        f"{step.adapter.display_name} deletion failed: {outcome.reason}"
                    )

            # Always last: the record is the authoritative "site exists" signal
            outcome = await self._run_step(
                self._site_records.display_name,
                request.site_id,
                self._delete_site_record(request),
            )
            outcomes["site_record"] = outcome
            site_record_deleted = outcome.succeeded
            if not site_record_deleted:
                errors.append(f"Site record deletion failed: {outcome.reason}")

            success = resources.any() or site_record_deleted
            logger.info(
                "Website deletion completed",
                success=success,
                error_count=len(errors),
            )
            return DeletionResult(
                overall_success=success,
                resources_deleted=resources,
                errors=errors or None,
                site_record_deleted=site_record_deleted,
                outcomes=outcomes,
            )
        except Exception as e:
            logger.exception("Website deletion failed")
            return DeletionResult(
                overall_success=False,
                resources_deleted=resources,
                errors=[*errors, str(e) or "Unknown error"],
                site_record_deleted=site_record_deleted,
                outcomes=outcomes,
            )
        finally:
            site_id_ctx.reset(token)


def project_name_for(website_name: str) -> str:
    """Hosting project slug: lowercase, every other character becomes ``-``.

    Matches how projects are named when the site is created.
    """
    return re.sub(r"[^a-z0-9]", "-", website_name.lower())


def parse_repo_url(repo_url: str | None) -> tuple[str | None, str | None]:
    """Extract ``(owner, repo)`` from a GitHub URL; ``.git`` is stripped."""
    match = _GITHUB_REPO_URL.search(repo_url or "")
    if not match:
        return None, None
    return match.group(1), match.group(2).removesuffix(".git")


def deletion_request_for_site(
    site: Site, default_repo_owner: str | None = None
) -> DeletionRequest:
    """Build the teardown request from a stored site.

    The repository owner falls back to ``default_repo_owner`` when the
    URL does not name one; without a repo name the repository step is
    skipped.
    """
    repo_owner, repo_name = parse_repo_url(site.repo_url)
    return DeletionRequest(
        site_id=site.id,
        owner_id=site.owner_id,
        hosting_project_name=project_name_for(site.website_name or "") or None,
        source_repo_owner=repo_owner or default_repo_owner or None,
        source_repo_name=repo_name,
        tenant_db_name=site.db_name or None,
        analytics_property_id=site.analytics_property_id or None,
        subdomain=site.domain or None,
    )


def build_deletion_service(config: Settings = settings) -> WebsiteDeletionService:
    """Wire the production adapters from configuration."""
    timeout = config.deletion_step_timeout_seconds
    return WebsiteDeletionService(
        hosting=VercelProjectAdapter(
            config.vercel_token,
            team_id=config.vercel_team_id,
            api_url=config.vercel_api_url,
            timeout=timeout,
        ),
        source_repo=GitHubRepositoryAdapter(
            config.github_token,
            api_url=config.github_api_url,
            timeout=timeout,
        ),
        analytics=GoogleAnalyticsPropertyAdapter(
            config.google_service_account_key,
            timeout=timeout,
        ),
        subdomain_dns=NamecheapSubdomainAdapter(
            config.namecheap_api_user,
            config.namecheap_api_key,
            config.namecheap_username,
            client_ip=config.namecheap_client_ip,
            sandbox=config.namecheap_sandbox,
            timeout=timeout,
        ),
        tenant_database=TenantDatabaseAdapter(
            config.resolved_tenant_admin_url(),
            force=config.tenant_drop_force,
        ),
        site_records=SiteRecordStore(get_session_maker()),
        step_timeout=timeout,
        max_concurrency=config.deletion_max_concurrency,
    )


def get_deletion_service() -> WebsiteDeletionService:
    """FastAPI dependency returning a service wired from settings."""
    return build_deletion_service(settings)
