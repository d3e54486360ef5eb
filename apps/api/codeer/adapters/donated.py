from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from codeer.adapters.base import ZoneCredentials
from codeer.models import DonatedDomain, DonatedSubdomainReservation, Page


class SqlDonatedDomainRegistry:
    """Inventory of community-donated zones and the subdomains reserved on them."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_domain(self, domain_id: int) -> DonatedDomain | None:
        return await self.session.scalar(
            select(DonatedDomain).where(DonatedDomain.id == domain_id, DonatedDomain.is_active.is_(True))
        )

    async def check_availability(self, domain_id: int, subdomain: str) -> bool:
        domain = await self.get_domain(domain_id)
        if domain is None:
            return False

        reserved = await self.session.scalar(
            select(DonatedSubdomainReservation.id).where(
                DonatedSubdomainReservation.donated_domain_id == domain_id,
                DonatedSubdomainReservation.subdomain == subdomain,
            )
        )
        if reserved is not None:
            return False

        page_id = await self.session.scalar(
            select(Page.id).where(Page.subdomain == subdomain, Page.domain == domain.domain_name)
        )
        return page_id is None

    async def reserve_subdomain(self, domain_id: int, page_id: int, subdomain: str) -> bool:
        self.session.add(DonatedSubdomainReservation(donated_domain_id=domain_id, page_id=page_id, subdomain=subdomain))
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            return False
        return True

    async def release_reservation(self, domain_id: int, subdomain: str) -> None:
        await self.session.execute(
            delete(DonatedSubdomainReservation).where(
                DonatedSubdomainReservation.donated_domain_id == domain_id,
                DonatedSubdomainReservation.subdomain == subdomain,
            )
        )
        await self.session.commit()

    async def get_credentials(self, domain_id: int) -> ZoneCredentials | None:
        domain = await self.get_domain(domain_id)
        if domain is None or not domain.zone_id or not domain.api_token:
            return None
        return ZoneCredentials(zone_id=domain.zone_id, api_token=domain.api_token)
