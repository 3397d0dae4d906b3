"""Site teardown endpoint."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.core.auth import CurrentOwner
from src.database import get_db
from src.logging_config import get_logger
from src.schemas.site_deletion import DeletionResultResponse, SiteDeletionResponse
from src.services.site_records import get_owned_site
from src.services.website_deletion import (
    WebsiteDeletionService,
    deletion_request_for_site,
    get_deletion_service,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/sites", tags=["Sites"])


@router.delete(
    "/{site_id}",
    response_model=SiteDeletionResponse,
    responses={
        401: {"description": "Authentication required"},
        404: {"description": "Site not found or access denied"},
    },
)
async def delete_site(
    site_id: str,
    owner: CurrentOwner,
    db: AsyncSession = Depends(get_db),
    service: WebsiteDeletionService = Depends(get_deletion_service),
) -> SiteDeletionResponse:
    """Delete a website and every resource provisioned for it.

    Partial failures are returned in the body, not as an error status:
    the response lists which resources are gone and what failed, and the
    call can be repeated safely to retry the failed steps.
    """
    site = await get_owned_site(db, site_id, owner.owner_id)
    if site is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Site not found or access denied",
        )

    request = deletion_request_for_site(site, settings.github_username)
    website_name = site.website_name
    # Release the read session before the long-running teardown
    await db.close()

    logger.info("Starting website deletion", site_id=site_id, website=website_name)
    result = await service.delete_website(request)

    if result.overall_success:
        message = f'Website "{website_name}" has been deleted'
        if result.errors:
            message += f" with {len(result.errors)} error(s)"
    else:
        message = f'Failed to delete website "{website_name}"'

    return SiteDeletionResponse(
        success=result.overall_success,
        message=message,
        result=DeletionResultResponse.from_result(result),
    )
