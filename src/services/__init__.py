# Business Logic Services
from src.services.site_records import (
    SiteRecordNotFoundError,
    SiteRecordStore,
    get_owned_site,
)
from src.services.tenant_database import TenantDatabaseAdapter
from src.services.website_deletion import (
    DeletedResources,
    DeletionRequest,
    DeletionResult,
    WebsiteDeletionService,
    build_deletion_service,
    deletion_request_for_site,
)

__all__ = [
    "DeletedResources",
    "DeletionRequest",
    "DeletionResult",
    "SiteRecordNotFoundError",
    "SiteRecordStore",
    "TenantDatabaseAdapter",
    "WebsiteDeletionService",
    "build_deletion_service",
    "deletion_request_for_site",
    "get_owned_site",
]
