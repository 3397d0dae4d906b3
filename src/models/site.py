"""Control-plane site record.

One row per customer website. Its existence is the authoritative signal
that the site exists; the external resources it provisioned (hosting
project, repository, analytics property, DNS records, tenant database)
are referenced by the identifier columns below.
"""

import uuid

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, TimestampMixin


class Site(Base, TimestampMixin):
    """Website owned by one account.

    Attributes:
        id: Site identifier
        owner_id: Identifier of the owning account; every lookup and
            delete is scoped by it
        website_name: Display name, also the source of the hosting
            project slug
        domain: Subdomain the site is served from (``label.parent.tld``)
        repo_url: Source repository URL
        db_name: Per-tenant database name
        analytics_property_id: Analytics property id
        status: Lifecycle status reported to the dashboard
    """

    __tablename__ = "sites"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        default=lambda: uuid.uuid4().hex,
    )
    owner_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
    )
    website_name: Mapped[str] = mapped_column(String(255), nullable=False)
    domain: Mapped[str | None] = mapped_column(String(255))
    repo_url: Mapped[str | None] = mapped_column(String(512))
    db_name: Mapped[str | None] = mapped_column(String(63))
    analytics_property_id: Mapped[str | None] = mapped_column(String(64))
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default="active",
    )

    def __repr__(self) -> str:
        return f"<Site(id={self.id}, owner_id={self.owner_id}, name={self.website_name})>"
