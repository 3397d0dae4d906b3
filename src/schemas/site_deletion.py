"""Site deletion response schemas."""

from pydantic import BaseModel, Field

from src.integrations.base import OutcomeStatus
from src.services.website_deletion import DeletionResult


class DeletedResourcesResponse(BaseModel):
    """Per-provider deletion flags."""

    hosting: bool = False
    source_repo: bool = False
    tenant_db: bool = False
    analytics: bool = False
    subdomain_dns: bool = False


class StepOutcomeResponse(BaseModel):
    """Outcome of one teardown step."""

    status: OutcomeStatus
    reason: str | None = None


class DeletionResultResponse(BaseModel):
    """Aggregate teardown result."""

    overall_success: bool
    resources_deleted: DeletedResourcesResponse
    site_record_deleted: bool
    errors: list[str] | None = None
    outcomes: dict[str, StepOutcomeResponse] = Field(default_factory=dict)

    @classmethod
    def from_result(cls, result: DeletionResult) -> "DeletionResultResponse":
        resources = result.resources_deleted
        return cls(
            overall_success=result.overall_success,
            resources_deleted=DeletedResourcesResponse(
                hosting=resources.hosting,
                source_repo=resources.source_repo,
                tenant_db=resources.tenant_db,
                analytics=resources.analytics,
                subdomain_dns=resources.subdomain_dns,
            ),
            site_record_deleted=result.site_record_deleted,
            errors=result.errors,
            outcomes={
                key: StepOutcomeResponse(status=o.status, reason=o.reason)
                for key, o in result.outcomes.items()
            },
        )


class SiteDeletionResponse(BaseModel):
    """Response body for DELETE /api/sites/{site_id}."""

    success: bool
    message: str
    result: DeletionResultResponse
