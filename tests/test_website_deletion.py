"""Tests for the website teardown orchestrator."""

import asyncio
from unittest.mock import patch

import pytest

from src.config import Settings
from src.integrations.base import (
    DeletionAdapter,
    OutcomeStatus,
    ProviderError,
    ProviderNotConfiguredError,
    ProviderOutcome,
)
from src.integrations.github import GitHubRepositoryAdapter
from src.integrations.namecheap import NamecheapSubdomainAdapter
from src.integrations.vercel import VercelProjectAdapter
from src.logging_config import site_id_ctx
from src.models.site import Site
from src.services.site_records import SiteRecordNotFoundError
from src.services.tenant_database import TenantDatabaseAdapter
from src.services.website_deletion import (
    DeletedResources,
    DeletionRequest,
    WebsiteDeletionService,
    build_deletion_service,
    deletion_request_for_site,
    parse_repo_url,
    project_name_for,
)


class FakeAdapter(DeletionAdapter):
    """Adapter that deletes from an in-memory set of existing resources."""

    def __init__(self, display_name, calls, existing=(), error=None, delay=0.0):
        super().__init__()
        self.display_name = display_name
        self.calls = calls
        self.existing = set(existing)
        self.error = error
        self.delay = delay

    async def delete(self, identifier: str) -> ProviderOutcome:
        self.calls.append((self.display_name, identifier))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if identifier in self.existing:
            self.existing.discard(identifier)
            return ProviderOutcome.deleted()
        return ProviderOutcome.not_found()


class FakeSiteRecords:
    display_name = "Site record"

    def __init__(self, calls, rows=(("s1", "u1"),)):
        self.calls = calls
        self.rows = set(rows)
        self.seen_site_id = None

    async def delete(self, site_id: str, owner_id: str) -> None:
        self.calls.append((self.display_name, site_id))
        self.seen_site_id = site_id_ctx.get()
        if (site_id, owner_id) not in self.rows:
            raise SiteRecordNotFoundError(
                "Site not found or owner not authorized to delete this site"
            )
        self.rows.discard((site_id, owner_id))


FULL_REQUEST = DeletionRequest(
    site_id="s1",
    owner_id="u1",
    hosting_project_name="proj-s1",
    source_repo_owner="acme",
    source_repo_name="site-s1",
    tenant_db_name="site_s1",
    analytics_property_id="123456",
    subdomain="s1.onjuzbuild.com",
)


def _service(calls, errors=None, delays=None, **kwargs):
    errors = errors or {}
    delays = delays or {}
    existing = {
        "Vercel": ["proj-s1"],
        "GitHub": ["acme/site-s1"],
        "Google Analytics": ["123456"],
        "Namecheap": ["s1.onjuzbuild.com"],
        "Custom database": ["site_s1"],
    }
    adapters = {
        name: FakeAdapter(
            name,
            calls,
            existing=ids,
            error=errors.get(name),
            delay=delays.get(name, 0.0),
        )
        for name, ids in existing.items()
    }
    site_records = kwargs.pop("site_records", None) or FakeSiteRecords(calls)
    return WebsiteDeletionService(
        hosting=adapters["Vercel"],
        source_repo=adapters["GitHub"],
        analytics=adapters["Google Analytics"],
        subdomain_dns=adapters["Namecheap"],
        tenant_database=adapters["Custom database"],
        site_records=site_records,
        **kwargs,
    )


class TestDeleteWebsite:
    @pytest.mark.asyncio
    async def test_full_teardown(self):
        calls = []
        service = _service(calls)

        result = await service.delete_website(FULL_REQUEST)

        assert result.overall_success is True
        assert result.errors is None
        assert result.site_record_deleted is True
        assert result.resources_deleted == DeletedResources(
            hosting=True,
            source_repo=True,
            tenant_db=True,
            analytics=True,
            subdomain_dns=True,
        )
        assert all(
            outcome.status is OutcomeStatus.DELETED
            for outcome in result.outcomes.values()
        )

    @pytest.mark.asyncio
    async def test_steps_run_in_canonical_order_with_site_record_last(self):
        calls = []
        service = _service(calls)

        await service.delete_website(FULL_REQUEST)

        assert calls == [
            ("Vercel", "proj-s1"),
            ("GitHub", "acme/site-s1"),
            ("Google Analytics", "123456"),
            ("Namecheap", "s1.onjuzbuild.com"),
            ("Custom database", "site_s1"),
            ("Site record", "s1"),
        ]

    @pytest.mark.asyncio
    async def test_only_present_identifiers_are_attempted(self):
        calls = []
        service = _service(calls)
        request = DeletionRequest(
            site_id="s1",
            owner_id="u1",
            hosting_project_name="proj-s1",
            subdomain="s1.onjuzbuild.com",
        )

        result = await service.delete_website(request)

        assert result.overall_success is True
        assert result.errors is None
        assert result.resources_deleted == DeletedResources(
            hosting=True, subdomain_dns=True
        )
        assert [name for name, _ in calls] == ["Vercel", "Namecheap", "Site record"]
        assert set(result.outcomes) == {"hosting", "subdomain_dns", "site_record"}

    @pytest.mark.asyncio
    async def test_repository_needs_owner_and_name(self):
        calls = []
        service = _service(calls)
        request = DeletionRequest(site_id="s1", owner_id="u1", source_repo_name="x")

        result = await service.delete_website(request)

        assert result.resources_deleted.source_repo is False
        assert [name for name, _ in calls] == ["Site record"]

    @pytest.mark.asyncio
    async def test_retry_is_idempotent(self):
        calls = []
        service = _service(calls)

        first = await service.delete_website(FULL_REQUEST)
        second = await service.delete_website(FULL_REQUEST)

        assert second.resources_deleted == first.resources_deleted
        assert all(
            second.outcomes[key].status is OutcomeStatus.NOT_FOUND
            for key in ("hosting", "source_repo", "analytics", "subdomain_dns", "tenant_db")
        )
        # The record is already gone, which is reported but not fatal
        assert second.overall_success is True
        assert second.site_record_deleted is False
        assert second.errors == [
            "Site record deletion failed: Site not found or owner not "
            "authorized to delete this site"
        ]

    @pytest.mark.asyncio
    async def test_one_failure_does_not_stop_the_others(self):
        calls = []
        service = _service(
            calls, errors={"Vercel": ProviderError("Vercel API error 500: boom")}
        )

        result = await service.delete_website(FULL_REQUEST)

        assert result.overall_success is True
        assert result.resources_deleted.hosting is False
        assert result.resources_deleted.source_repo is True
        assert result.resources_deleted.tenant_db is True
        assert result.site_record_deleted is True
        assert result.errors == ["Vercel deletion failed: Vercel API error 500: boom"]
        assert result.outcomes["hosting"].status is OutcomeStatus.FAILED
        assert len(calls) == 6

    @pytest.mark.asyncio
    async def test_missing_credentials_reported_as_errors(self):
        calls = []
        service = _service(
            calls,
            errors={
                "GitHub": ProviderNotConfiguredError(
                    "GitHub credentials not configured (missing GITHUB_TOKEN)"
                ),
                "Namecheap": ProviderNotConfiguredError(
                    "Namecheap credentials not configured (missing NAMECHEAP_API_KEY)"
                ),
            },
        )

        result = await service.delete_website(FULL_REQUEST)

        assert result.errors == [
            "GitHub deletion failed: GitHub credentials not configured "
            "(missing GITHUB_TOKEN)",
            "Namecheap deletion failed: Namecheap credentials not configured "
            "(missing NAMECHEAP_API_KEY)",
        ]
        assert result.resources_deleted.hosting is True

    @pytest.mark.asyncio
    async def test_wrong_owner_keeps_site_record(self):
        calls = []
        records = FakeSiteRecords(calls)
        service = _service(calls, site_records=records)
        request = DeletionRequest(site_id="s1", owner_id="intruder")

        result = await service.delete_website(request)

        assert result.overall_success is False
        assert result.site_record_deleted is False
        assert result.errors == [
            "Site record deletion failed: Site not found or owner not "
            "authorized to delete this site"
        ]
        assert records.rows == {("s1", "u1")}

    @pytest.mark.asyncio
    async def test_everything_failing(self):
        calls = []
        boom = ProviderError("boom")
        service = _service(
            calls,
            errors={
                name: boom
                for name in (
                    "Vercel",
                    "GitHub",
                    "Google Analytics",
                    "Namecheap",
                    "Custom database",
                )
            },
            site_records=FakeSiteRecords(calls, rows=()),
        )

        result = await service.delete_website(FULL_REQUEST)

        assert result.overall_success is False
        assert len(result.errors) == 6
        assert result.resources_deleted.any() is False

    @pytest.mark.asyncio
    async def test_slow_step_times_out(self):
        calls = []
        service = _service(calls, delays={"Google Analytics": 5.0}, step_timeout=0.05)

        result = await service.delete_website(FULL_REQUEST)

        assert result.resources_deleted.analytics is False
        assert result.outcomes["analytics"].status is OutcomeStatus.FAILED
        assert result.errors == [
            "Google Analytics deletion failed: timed out after 0.05s"
        ]
        assert result.resources_deleted.tenant_db is True
        assert result.site_record_deleted is True

    @pytest.mark.asyncio
    async def test_error_without_message_uses_type_name(self):
        calls = []
        service = _service(calls, errors={"Custom database": RuntimeError()})

        result = await service.delete_website(FULL_REQUEST)

        assert result.errors == ["Custom database deletion failed: RuntimeError"]

    @pytest.mark.asyncio
    async def test_concurrent_steps_give_same_result(self):
        sequential = await _service([]).delete_website(FULL_REQUEST)
        calls = []
        service = _service(
            calls,
            errors={"GitHub": ProviderError("GitHub API error 403: forbidden")},
            delays={"Vercel": 0.02},
            max_concurrency=5,
        )

        concurrent = await service.delete_website(FULL_REQUEST)

        assert concurrent.resources_deleted == DeletedResources(
            hosting=True,
            source_repo=False,
            tenant_db=True,
            analytics=True,
            subdomain_dns=True,
        )
        assert concurrent.errors == [
            "GitHub deletion failed: GitHub API error 403: forbidden"
        ]
        assert sequential.resources_deleted.source_repo is True
        assert calls[-1] == ("Site record", "s1")

    @pytest.mark.asyncio
    async def test_site_id_bound_to_logging_context(self):
        calls = []
        records = FakeSiteRecords(calls)
        service = _service(calls, site_records=records)

        await service.delete_website(FULL_REQUEST)

        assert records.seen_site_id == "s1"
        assert site_id_ctx.get() is None

    @pytest.mark.asyncio
    async def test_unexpected_bug_returns_failed_result(self):
        service = _service([])

        with patch.object(service, "_plan", side_effect=RuntimeError("planner bug")):
            result = await service.delete_website(FULL_REQUEST)

        assert result.overall_success is False
        assert result.errors == ["planner bug"]
        assert result.site_record_deleted is False


class TestProjectNameFor:
    @pytest.mark.parametrize(
        ("name", "slug"),
        [
            ("Bakery", "bakery"),
            ("Joe's Bakery & Café", "joe-s-bakery---caf-"),
            ("site_2024", "site-2024"),
        ],
    )
    def test_slug(self, name, slug):
        assert project_name_for(name) == slug


class TestParseRepoUrl:
    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("https://github.com/acme/site-s1", ("acme", "site-s1")),
            ("https://github.com/acme/site-s1.git", ("acme", "site-s1")),
            ("git@github.com:acme/site-s1.git", ("acme", "site-s1")),
            ("https://github.com/acme/site-s1/tree/main", ("acme", "site-s1")),
            ("https://gitlab.com/acme/site-s1", (None, None)),
            (None, (None, None)),
        ],
    )
    def test_parse(self, url, expected):
        assert parse_repo_url(url) == expected


class TestDeletionRequestForSite:
    def test_maps_every_identifier(self):
        site = Site(
            id="s1",
            owner_id="u1",
            website_name="Joe's Bakery",
            domain="joes.onjuzbuild.com",
            repo_url="https://github.com/acme/joes-bakery",
            db_name="site_s1",
            analytics_property_id="123456",
        )

        request = deletion_request_for_site(site)

        assert request == DeletionRequest(
            site_id="s1",
            owner_id="u1",
            hosting_project_name="joe-s-bakery",
            source_repo_owner="acme",
            source_repo_name="joes-bakery",
            tenant_db_name="site_s1",
            analytics_property_id="123456",
            subdomain="joes.onjuzbuild.com",
        )

    def test_missing_identifiers_are_none(self):
        site = Site(id="s1", owner_id="u1", website_name="Bakery")

        request = deletion_request_for_site(site, default_repo_owner="builder-bot")

        assert request.hosting_project_name == "bakery"
        assert request.source_repo_owner == "builder-bot"
        assert request.source_repo_name is None
        assert request.tenant_db_name is None
        assert request.analytics_property_id is None
        assert request.subdomain is None


class TestBuildDeletionService:
    def test_wires_adapters_from_settings(self):
        config = Settings(
            _env_file=None,
            vercel_token="vercel-token",
            vercel_team_id="team_abc",
            github_token="ghp_" + "a" * 36,
            namecheap_sandbox=True,
            deletion_step_timeout_seconds=12.5,
            deletion_max_concurrency=3,
        )

        service = build_deletion_service(config)

        assert isinstance(service._hosting, VercelProjectAdapter)
        assert service._hosting._team_id == "team_abc"
        assert isinstance(service._source_repo, GitHubRepositoryAdapter)
        assert isinstance(service._subdomain_dns, NamecheapSubdomainAdapter)
        assert isinstance(service._tenant_database, TenantDatabaseAdapter)
        assert service._tenant_database._admin_database_url.endswith("/postgres")
        assert service._step_timeout == 12.5
        assert service._max_concurrency == 3
