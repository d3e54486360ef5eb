from __future__ import annotations

import httpx

from codeer.adapters.base import ZoneCredentials
from codeer.config import CloudflareSettings
from codeer.errors import UpstreamUnavailable, ValidationError
from codeer.observability import get_logger, log_event

logger = get_logger("codeer.adapters.cloudflare")


class CloudflareDns:
    """DNS provider for the platform zones and for donated zones."""

    def __init__(self, settings: CloudflareSettings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.settings = settings
        self._transport = transport

    def _client(self, api_token: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.settings.api_url,
            headers={"Authorization": f"Bearer {api_token}", "Content-Type": "application/json"},
            timeout=self.settings.timeout_seconds,
            transport=self._transport,
        )

    def _zone_for(self, domain: str) -> str:
        zone_id = self.settings.zone_ids.get(domain.lower())
        if not zone_id:
            raise ValidationError(f"No DNS zone configured for domain: {domain}")
        return zone_id

    async def subdomain_exists(self, subdomain: str, domain: str) -> bool:
        zone_id = self._zone_for(domain)
        fqdn = f"{subdomain}.{domain}"
        try:
            async with self._client(self.settings.api_token) as client:
                response = await client.get(f"/zones/{zone_id}/dns_records", params={"name": fqdn})
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(f"Could not verify availability of {fqdn}") from exc
        return bool(response.json().get("result"))

    async def create_subdomain(self, subdomain: str, domain: str, owner: str, repo_name: str) -> bool:
        credentials = ZoneCredentials(zone_id=self._zone_for(domain), api_token=self.settings.api_token)
        return await self._create_cname(
            credentials,
            name=f"{subdomain}.{domain}",
            target=f"{owner}.github.io",
            comment=f"Codeer page {owner}/{repo_name}",
        )

    async def create_donated_subdomain(
        self, subdomain: str, domain: str, target: str, credentials: ZoneCredentials
    ) -> bool:
        return await self._create_cname(
            credentials,
            name=f"{subdomain}.{domain}",
            target=target,
            comment="Codeer page on donated domain",
        )

    async def _create_cname(self, credentials: ZoneCredentials, *, name: str, target: str, comment: str) -> bool:
        payload = {
            "type": "CNAME",
            "name": name,
            "content": target,
            "ttl": 1,
            # GitHub Pages issues its own certificate, so the record must not be proxied.
            "proxied": False,
            "comment": comment,
        }
        try:
            async with self._client(credentials.api_token) as client:
                response = await client.post(f"/zones/{credentials.zone_id}/dns_records", json=payload)
        except httpx.HTTPError as exc:
            log_event(logger, "cloudflare.record_failed", name=name, error=str(exc))
            return False

        if response.is_error or not response.json().get("success", False):
            log_event(logger, "cloudflare.record_failed", name=name, status_code=response.status_code)
            return False

        log_event(logger, "cloudflare.record_created", name=name, target=target)
        return True
