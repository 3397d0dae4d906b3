"""Control-plane site records.

The site row is deleted last in a teardown and only when both the site
id and the owner id match, so a caller can never remove another owner's
site by guessing its id.
"""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.logging_config import get_logger
from src.models.site import Site

logger = get_logger(__name__)


class SiteRecordNotFoundError(Exception):
    """No row matched both the site id and the owner id.

    Deliberately ambiguous between "already deleted" and "wrong owner";
    unlike provider not-found, this is reported as a failure.
    """

    pass


class SiteRecordStore:
    """Deletes site rows, one session per call."""

    display_name = "Site record"

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def delete(self, site_id: str, owner_id: str) -> None:
        """Delete the site row owned by ``owner_id``.

        Raises:
            SiteRecordNotFoundError: if no row matched both ids
        """
        async with self._session_maker() as session:
            try:
                result = await session.execute(
                    delete(Site).where(Site.id == site_id, Site.owner_id == owner_id)
                )
                await session.commit()
            except Exception:
                await session.rollback()
                raise

        if result.rowcount == 0:
            raise SiteRecordNotFoundError(
                "Site not found or owner not authorized to delete this site"
            )

        logger.info("Site record deleted", site_id=site_id)


async def get_owned_site(db: AsyncSession, site_id: str, owner_id: str) -> Site | None:
    """Load a site only if it belongs to ``owner_id``."""
    result = await db.execute(
        select(Site).where(Site.id == site_id, Site.owner_id == owner_id)
    )
    return result.scalar_one_or_none()
