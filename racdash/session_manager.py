"""
RAC Dashboard — Session Data Manager

Owns the session cache lifecycle.

Expensive path (rare):
    load_session fans the session's tenants out to load_company in parallel.
    Each company fetches its balance sheet and bank summary concurrently,
    reduces them to a summary and writes exactly one row, tagged with the
    generation's shared expiry. One company failing never affects another.

Cheap path (every UI interaction):
    consolidate reads the live rows of the selected companies and reduces
    them to totals. No accounting API calls, no writes.

Generations:
    Every load_session call claims the session with a fresh generation
    token and deletes its rows in one transaction, writes a new set of rows
    tagged with that token, then records the token on the display selection
    unless a newer load has claimed the session meanwhile. Reads only see
    the recorded generation, so overlapping reloads of one session never
    produce a mixed view and the newest-started load wins.
"""

import asyncio
import logging
import uuid
from datetime import date, datetime, timedelta
from functools import lru_cache
from typing import Callable, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from . import config, crud
from .database import SessionLocal
from .engines.consolidation import consolidate_companies
from .engines.reports import ReportResult, summarize_balance_sheet, summarize_bank_summary
from .exceptions import NoCredential, NoLiveData, NoSelection, PersistFailed, SessionDataError
from .models import SessionCompanyData, utcnow
from .providers import (
    AccountingDataSource, Credential, DatabaseTokenProvider, TokenProvider, XeroAccountingClient
)
from .schemas import (
    CompanyDetail, CompanyLoadResult, ConsolidatedTotals, ConsolidatedView,
    ConsolidationFailure, ConsolidationSummary, LoadSessionResponse,
    SelectionResponse, SessionStatusResponse,
)

logger = logging.getLogger("racdash.session")

UNKNOWN_COMPANY = "Unknown Company"

ROW_FIELDS = [
    "tenant_id", "tenant_name", "total_assets", "total_liabilities", "total_equity",
    "total_cash", "total_revenue", "total_expenses", "net_profit",
    "is_balanced", "has_data", "load_error",
]


def _row_to_dict(row: SessionCompanyData) -> dict:
    return {field: getattr(row, field) for field in ROW_FIELDS}


class SessionDataManager:
    """
    Session cache over the accounting API.

    Args:
        session_factory: Source of AsyncSessions; one per unit of work
        token_provider: Resolves tenant credentials
        data_source: Fetches report rows
        ttl: Lifetime of one generation of session data
        clock: Returns the current naive UTC time
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        token_provider: TokenProvider,
        data_source: AccountingDataSource,
        ttl: timedelta = timedelta(minutes=config.SESSION_TTL_MINUTES),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.token_provider = token_provider
        self.data_source = data_source
        self.ttl = ttl
        self.clock = clock

    # -----------------------------------------------------------------------
    # Loading
    # -----------------------------------------------------------------------

    async def load_session(self, session_id: str, tenant_ids: list[str]) -> LoadSessionResponse:
        """
        Replace the session's cached data with a fresh load of every tenant.

        Partial success is normal and reported through the counts. Raises
        PersistFailed only when the leading delete or the selection write
        fails; a company whose row cannot be written is reported in its
        own outcome while its siblings complete.

        Duplicate ids are collapsed (first occurrence kept), so
        total_companies counts distinct companies and can be smaller than
        len(tenant_ids).
        """
        unique_ids = list(dict.fromkeys(tenant_ids))
        expires_at = self.clock() + self.ttl
        generation = uuid.uuid4().hex

        logger.info("Loading session %s: %d companies", session_id, len(unique_ids))

        async with self.session_factory() as db:
            try:
                deleted = await crud.begin_session_load(db, session_id, generation)
            except SQLAlchemyError as exc:
                raise PersistFailed(
                    f"Could not clear session data: {exc}",
                    context={"session_id": session_id},
                ) from exc
        logger.debug("Cleared %d rows of session %s", deleted, session_id)

        outcomes = await asyncio.gather(
            *(self.load_company(session_id, tid, expires_at, generation) for tid in unique_ids),
            return_exceptions=True,
        )

        results = []
        for tenant_id, outcome in zip(unique_ids, outcomes):
            if isinstance(outcome, PersistFailed):
                logger.error("Could not record result for tenant %s: %s", tenant_id, outcome.message)
                results.append(CompanyLoadResult(
                    tenant_id=tenant_id, success=False,
                    error=outcome.message, error_code=outcome.error_code,
                ))
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                results.append(outcome)

        recorded = await self._complete_load(session_id, unique_ids, generation)
        if not recorded:
            logger.info("Session %s load %s was superseded by a newer load", session_id, generation)

        successful = sum(1 for r in results if r.success)
        logger.info(
            "Session %s loaded: %d/%d companies successful",
            session_id, successful, len(unique_ids),
        )
        return LoadSessionResponse(
            session_id=session_id,
            total_companies=len(unique_ids),
            successful_companies=successful,
            expires_at=expires_at,
            companies=results,
        )

    async def load_company(
        self,
        session_id: str,
        tenant_id: str,
        expires_at: datetime,
        generation: Optional[str] = None,
        as_of: Optional[date] = None,
    ) -> CompanyLoadResult:
        """
        Fetch, summarize and store one company. Writes exactly one row.

        Credential and fetch problems are recorded as an error row and
        returned as success=False. PersistFailed propagates.
        """
        try:
            credential = await self.token_provider.get_credential(tenant_id)
            if credential is None:
                raise NoCredential(
                    f"No token found for tenant {tenant_id}",
                    context={"tenant_id": tenant_id},
                )

            balance, cash = await asyncio.gather(
                self._fetch_report(
                    "balance sheet", tenant_id, summarize_balance_sheet,
                    self.data_source.fetch_balance_sheet(credential, tenant_id, as_of),
                ),
                self._fetch_report(
                    "bank summary", tenant_id, summarize_bank_summary,
                    self.data_source.fetch_bank_summary(credential, tenant_id),
                ),
            )
            values = self._summary_values(credential, balance, cash)
        except Exception as exc:
            message = exc.message if isinstance(exc, SessionDataError) else (str(exc) or type(exc).__name__)
            error_code = getattr(exc, "error_code", "LOAD_FAILED")
            logger.warning("Failed to load data for tenant %s: %s", tenant_id, message)
            await self._persist(session_id, tenant_id, expires_at, generation, {
                "tenant_name": UNKNOWN_COMPANY,
                "has_data": False,
                "load_error": message,
            })
            return CompanyLoadResult(
                tenant_id=tenant_id, success=False, tenant_name=UNKNOWN_COMPANY,
                error=message, error_code=error_code,
            )

        await self._persist(session_id, tenant_id, expires_at, generation, values)
        logger.info("Loaded data for %s", credential.tenant_name)
        return CompanyLoadResult(
            tenant_id=tenant_id, success=True,
            tenant_name=credential.tenant_name, has_data=values["has_data"],
        )

    async def _fetch_report(self, name: str, tenant_id: str, summarize, fetch) -> ReportResult:
        try:
            rows = await fetch
            return ReportResult.success(summarize(rows))
        except Exception as exc:
            logger.warning("Could not load %s for tenant %s: %s", name, tenant_id, exc)
            return ReportResult.failure(str(exc) or type(exc).__name__)

    @staticmethod
    def _summary_values(credential: Credential, balance: ReportResult, cash: ReportResult) -> dict:
        balance_data = balance.value if balance.ok else {}
        cash_data = cash.value if cash.ok else {}
        return {
            "tenant_name": credential.tenant_name,
            "total_assets": balance_data.get("total_assets", 0.0),
            "total_liabilities": abs(balance_data.get("total_liabilities", 0.0)),
            "total_equity": balance_data.get("total_equity", 0.0),
            "total_cash": cash_data.get("total_cash", 0.0),
            # Profit and loss figures are not loaded yet
            "total_revenue": 0.0,
            "total_expenses": 0.0,
            "net_profit": 0.0,
            "is_balanced": bool(balance_data.get("is_balanced", False)),
            "has_data": balance.ok or cash.ok,
            "load_error": None,
        }

    async def _persist(self, session_id: str, tenant_id: str, expires_at: datetime,
                       generation: Optional[str], values: dict) -> None:
        row = {
            "session_id": session_id,
            "tenant_id": tenant_id,
            "expires_at": expires_at,
            "generation": generation,
            **values,
        }
        async with self.session_factory() as db:
            try:
                await crud.create_session_company_data(db, row)
            except SQLAlchemyError as exc:
                raise PersistFailed(
                    f"Could not store data for tenant {tenant_id}: {exc}",
                    context={"session_id": session_id, "tenant_id": tenant_id},
                ) from exc

    # -----------------------------------------------------------------------
    # Consolidation
    # -----------------------------------------------------------------------

    async def consolidate(
        self, session_id: str, selected_tenant_ids: Optional[list[str]] = None
    ) -> Union[ConsolidatedView, ConsolidationFailure]:
        """
        Combine the live cached rows of the selected companies.

        Without an explicit selection the stored display selection is used.
        Returns a ConsolidationFailure (NO_SELECTION or NO_LIVE_DATA)
        instead of raising.
        """
        async with self.session_factory() as db:
            selection = await crud.get_display_selection(db, session_id)
            if selected_tenant_ids is None:
                selected = crud.selected_tenant_ids(selection) if selection else []
            else:
                selected = list(dict.fromkeys(selected_tenant_ids))

            if not selected:
                return self._failure(session_id, NoSelection("No companies selected"))

            generation = selection.generation if selection else None
            rows = await crud.list_live_company_data(
                db, session_id, selected, self.clock(), generation
            )

        if not rows:
            return self._failure(
                session_id, NoLiveData("No session data found or session expired")
            )

        position = {tid: i for i, tid in enumerate(selected)}
        rows.sort(key=lambda r: position.get(r.tenant_id, len(position)))
        data = consolidate_companies([_row_to_dict(r) for r in rows])

        return ConsolidatedView(
            session_id=session_id,
            selected_tenant_ids=selected,
            totals=ConsolidatedTotals(**data["totals"]),
            companies=[CompanyDetail(**c) for c in data["companies"]],
            summary=ConsolidationSummary(**data["summary"]),
        )

    @staticmethod
    def _failure(session_id: str, error: SessionDataError) -> ConsolidationFailure:
        return ConsolidationFailure(
            session_id=session_id, error=error.message, error_code=error.error_code
        )

    # -----------------------------------------------------------------------
    # Display selection
    # -----------------------------------------------------------------------

    async def set_selection(
        self, session_id: str, tenant_ids: list[str], current_view: str = config.DEFAULT_VIEW
    ) -> SelectionResponse:
        """Overwrite the session's selection and view. Idempotent."""
        await self._write_selection(session_id, tenant_ids, current_view)
        logger.info(
            "Display selection updated: %d companies for %s", len(tenant_ids), current_view
        )
        return await self.get_selection(session_id)

    async def get_selection(self, session_id: str) -> SelectionResponse:
        """Stored selection, or an empty overview selection if none was set."""
        async with self.session_factory() as db:
            selection = await crud.get_display_selection(db, session_id)
        if selection is None:
            return SelectionResponse(session_id=session_id)
        return SelectionResponse(
            session_id=session_id,
            selected_tenant_ids=crud.selected_tenant_ids(selection),
            current_view=selection.current_view,
            last_updated=selection.last_updated,
        )

    async def _write_selection(self, session_id: str, tenant_ids: list[str], current_view: str) -> None:
        async with self.session_factory() as db:
            try:
                await crud.upsert_display_selection(db, session_id, tenant_ids, current_view)
            except SQLAlchemyError as exc:
                raise PersistFailed(
                    f"Could not store display selection: {exc}",
                    context={"session_id": session_id},
                ) from exc

    async def _complete_load(self, session_id: str, tenant_ids: list[str], generation: str) -> bool:
        async with self.session_factory() as db:
            try:
                return await crud.complete_session_load(
                    db, session_id, tenant_ids, config.DEFAULT_VIEW, generation
                )
            except SQLAlchemyError as exc:
                raise PersistFailed(
                    f"Could not store display selection: {exc}",
                    context={"session_id": session_id},
                ) from exc

    # -----------------------------------------------------------------------
    # Freshness
    # -----------------------------------------------------------------------

    async def has_valid_data(self, session_id: str) -> SessionStatusResponse:
        """Whether the session has live rows, how many, and the earliest expiry."""
        async with self.session_factory() as db:
            selection = await crud.get_display_selection(db, session_id)
            generation = selection.generation if selection else None
            count, earliest = await crud.get_live_data_summary(
                db, session_id, self.clock(), generation
            )
        return SessionStatusResponse(
            session_id=session_id,
            has_data=count > 0,
            companies_count=count,
            expires_at=earliest,
        )


@lru_cache
def get_session_manager() -> SessionDataManager:
    """
    FastAPI dependency returning the process-wide manager, wired to the
    application database and the Xero client.
    """
    return SessionDataManager(
        session_factory=SessionLocal,
        token_provider=DatabaseTokenProvider(SessionLocal),
        data_source=XeroAccountingClient(),
    )
