"""Per-tenant database teardown.

Each site gets its own database on the shared server. Dropping it needs
a connection to a different database (the maintenance DB) outside any
transaction, so every call opens its own AUTOCOMMIT engine and disposes
it before returning.
"""

import re

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from src.integrations.base import (
    DeletionAdapter,
    ProviderError,
    ProviderNotConfiguredError,
    ProviderOutcome,
    require_credentials,
)
from src.logging_config import get_logger

logger = get_logger(__name__)

# Identifiers are interpolated into DROP DATABASE, so only allow a safe subset
_DB_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_\-]{0,62}$")

# invalid_catalog_name; asyncpg raises InvalidCatalogNameError for it
_MISSING_DATABASE_SQLSTATE = "3D000"


def _is_missing_database(error: DBAPIError) -> bool:
    return getattr(error.orig, "sqlstate", None) == _MISSING_DATABASE_SQLSTATE


class TenantDatabaseAdapter(DeletionAdapter):
    """Drops a tenant database by name."""

    display_name = "Custom database"

    def __init__(self, admin_database_url: str, force: bool = True):
        super().__init__()
        self._admin_database_url = admin_database_url
        self._force = force

    async def delete(self, identifier: str) -> ProviderOutcome:
        require_credentials(
            self.display_name,
            tenant_admin_database_url=self._admin_database_url,
        )
        if not _DB_NAME_PATTERN.match(identifier):
            raise ProviderNotConfiguredError(
                f"Invalid tenant database name: {identifier!r}"
            )

        statement = f'DROP DATABASE "{identifier}"'
        if self._force:
            statement += " WITH (FORCE)"

        engine = create_async_engine(
            self._admin_database_url,
            isolation_level="AUTOCOMMIT",
            poolclass=NullPool,
        )
        try:
            async with engine.connect() as conn:
                result = await conn.execute(
                    text("SELECT 1 FROM pg_database WHERE datname = :name"),
                    {"name": identifier},
                )
                if result.scalar() is None:
                    logger.info("Tenant database already absent", database=identifier)
                    return ProviderOutcome.not_found()

                try:
                    await conn.execute(text(statement))
                except DBAPIError as e:
                    # Dropped by someone else between the lookup and the DROP
                    if _is_missing_database(e):
                        logger.info(
                            "Tenant database already absent", database=identifier
                        )
                        return ProviderOutcome.not_found()
                    raise
        except DBAPIError as e:
            raise ProviderError(f"Failed to drop database {identifier}: {e}") from e
        finally:
            await engine.dispose()

        logger.info("Tenant database dropped", database=identifier)
        return ProviderOutcome.deleted()
