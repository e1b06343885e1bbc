"""
RAC Dashboard — External Collaborators

Interfaces for the two things the session cache depends on but does not own:

    TokenProvider         — resolves the stored credential for a tenant
    AccountingDataSource  — fetches raw report rows from the accounting API

Credentials are passed explicitly to every fetch. There is no shared
"current tenant" on the client, so concurrent company loads cannot see each
other's tokens.

Default implementations:
    DatabaseTokenProvider  — reads the tenant_credentials table
    XeroAccountingClient   — calls the Xero Reports API over httpx
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import async_sessionmaker

from . import config, crud
from .exceptions import FetchFailed

logger = logging.getLogger("racdash.providers")


@dataclass(frozen=True)
class Credential:
    """Access token for one connected organisation."""
    tenant_id: str
    tenant_name: str
    access_token: str
    expires_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Abstract interfaces
# ---------------------------------------------------------------------------

class TokenProvider(ABC):
    """Resolves per-tenant credentials."""

    @abstractmethod
    async def get_credential(self, tenant_id: str) -> Optional[Credential]:
        """Return the tenant's credential, or None when none is stored."""
        ...


class AccountingDataSource(ABC):
    """Fetches report rows from the accounting system."""

    @abstractmethod
    async def fetch_balance_sheet(
        self, credential: Credential, tenant_id: str, as_of: Optional[date] = None
    ) -> list[dict]:
        """Balance sheet rows as of a date (today when omitted)."""
        ...

    @abstractmethod
    async def fetch_bank_summary(self, credential: Credential, tenant_id: str) -> list[dict]:
        """Bank summary rows (cash position per bank account)."""
        ...


# ---------------------------------------------------------------------------
# Database-backed token provider
# ---------------------------------------------------------------------------

class DatabaseTokenProvider(TokenProvider):
    """Reads credentials written by the OAuth flow into tenant_credentials."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def get_credential(self, tenant_id: str) -> Optional[Credential]:
        async with self.session_factory() as db:
            stored = await crud.get_tenant_credential(db, tenant_id)
        if stored is None:
            return None
        return Credential(
            tenant_id=stored.tenant_id,
            tenant_name=stored.tenant_name,
            access_token=stored.access_token,
            expires_at=stored.expires_at,
        )


# ---------------------------------------------------------------------------
# Xero Reports API client
# ---------------------------------------------------------------------------

def normalize_rows(raw_rows: Optional[list]) -> list[dict]:
    """
    Convert Xero's PascalCase report rows into the normalized row shape:
    {"rowType", "title", "rows", "cells": [{"value"}]}.
    Already-normalized (camelCase) rows pass through unchanged.
    """
    normalized = []
    for raw in raw_rows or []:
        cells = raw.get("Cells", raw.get("cells")) or []
        normalized.append({
            "rowType": raw.get("RowType", raw.get("rowType")),
            "title": raw.get("Title", raw.get("title")),
            "rows": normalize_rows(raw.get("Rows", raw.get("rows"))),
            "cells": [
                {"value": cell.get("Value", cell.get("value"))} for cell in cells
            ],
        })
    return normalized


class XeroAccountingClient(AccountingDataSource):
    """
    Async client for the Xero accounting Reports endpoints.

    Each call opens a short-lived httpx.AsyncClient; the bearer token and
    tenant header are set per request from the supplied credential.
    """

    def __init__(self, base_url: str = config.XERO_API_BASE,
                 timeout: float = config.XERO_TIMEOUT_SECONDS,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def _get_report(self, credential: Credential, tenant_id: str,
                          report: str, params: Optional[dict] = None) -> list[dict]:
        url = f"{self.base_url}/Reports/{report}"
        logger.debug("Fetching %s report for tenant %s", report, tenant_id)
        headers = {
            "Authorization": f"Bearer {credential.access_token}",
            "xero-tenant-id": tenant_id,
            "Accept": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.get(url, params=params, headers=headers)
                resp.raise_for_status()
                body = resp.json()
        except httpx.HTTPStatusError as exc:
            raise FetchFailed(
                f"{report} request for tenant {tenant_id} returned "
                f"{exc.response.status_code}",
                context={"tenant_id": tenant_id, "report": report,
                         "status_code": exc.response.status_code},
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise FetchFailed(
                f"{report} request for tenant {tenant_id} failed: {exc}",
                context={"tenant_id": tenant_id, "report": report},
            ) from exc

        reports = body.get("Reports", body.get("reports")) or []
        if not reports:
            return []
        first = reports[0]
        return normalize_rows(first.get("Rows", first.get("rows")))

    async def fetch_balance_sheet(
        self, credential: Credential, tenant_id: str, as_of: Optional[date] = None
    ) -> list[dict]:
        report_date = (as_of or date.today()).isoformat()
        return await self._get_report(credential, tenant_id, "BalanceSheet",
                                      params={"date": report_date})

    async def fetch_bank_summary(self, credential: Credential, tenant_id: str) -> list[dict]:
        return await self._get_report(credential, tenant_id, "BankSummary")
