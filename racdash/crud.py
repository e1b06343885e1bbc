"""
RAC Dashboard CRUD Operations

Database access functions for all tables. These functions encapsulate
all SQLAlchemy queries and are called by the session manager and providers.

Architecture:
    - Each function takes a db: AsyncSession parameter
    - Write functions commit their own unit of work
    - Get functions return None if not found
    - List functions return lists (empty list if none found)
    - "now" is always passed in by the caller, so expiry filtering is
      evaluated against one clock for a whole operation

Naming convention:
    - create_xxx: INSERT new record
    - get_xxx: SELECT single record
    - list_xxx: SELECT multiple records with filters
    - upsert_xxx: atomic INSERT ... ON CONFLICT DO UPDATE
    - delete_xxx: DELETE records
    - begin_/complete_session_load: claim a session for a load, then record
      the finished load if no newer one has claimed it since
"""

import json
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import SessionCompanyData, TenantCredential, UserDisplaySelection, utcnow


async def _dialect_upsert(
    db: AsyncSession,
    table: Any,
    values: dict[str, Any],
    index_elements: list[str],
    update_columns: list[str],
):
    """
    Single-statement upsert: PostgreSQL or SQLite ON CONFLICT DO UPDATE.

    Args:
        db: Active session
        table: ORM class to upsert into
        values: Column-value mapping for the inserted row
        index_elements: Columns of the unique constraint used for conflict detection
        update_columns: Columns overwritten when the row already exists
    """
    dialect_name = db.get_bind().dialect.name
    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert as _insert
    else:
        from sqlalchemy.dialects.sqlite import insert as _insert

    stmt = _insert(table).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=index_elements,
        set_={col: getattr(stmt.excluded, col) for col in update_columns},
    )
    return await db.execute(stmt)


def _live_filter(session_id: str, now: datetime, generation: Optional[str]):
    clauses = [
        SessionCompanyData.session_id == session_id,
        SessionCompanyData.expires_at > now,
    ]
    if generation is not None:
        clauses.append(SessionCompanyData.generation == generation)
    return clauses


# ---------------------------------------------------------------------------
# SESSION COMPANY DATA
# ---------------------------------------------------------------------------

async def begin_session_load(db: AsyncSession, session_id: str, generation: str) -> int:
    """
    Claim the session for a new load and delete every cached row of it,
    expired or not, in one transaction. Returns rows deleted.

    The claim records generation as the selection's pending_generation,
    creating the selection row if the session has none yet.
    """
    await _dialect_upsert(
        db, UserDisplaySelection,
        {"session_id": session_id, "pending_generation": generation},
        index_elements=["session_id"],
        update_columns=["pending_generation"],
    )
    result = await db.execute(
        delete(SessionCompanyData).where(SessionCompanyData.session_id == session_id)
    )
    await db.commit()
    return result.rowcount or 0


async def create_session_company_data(db: AsyncSession, values: dict) -> SessionCompanyData:
    """
    Insert one cached company row.

    Args:
        db: Database session
        values: Column values; financial fields not supplied default to 0

    Returns:
        The created SessionCompanyData instance
    """
    row = SessionCompanyData(**values)
    db.add(row)
    await db.commit()
    return row


async def list_session_company_data(db: AsyncSession, session_id: str) -> list[SessionCompanyData]:
    """All rows of a session, live or expired, oldest first."""
    result = await db.execute(
        select(SessionCompanyData)
        .where(SessionCompanyData.session_id == session_id)
        .order_by(SessionCompanyData.id)
    )
    return list(result.scalars().all())


async def list_live_company_data(
    db: AsyncSession,
    session_id: str,
    tenant_ids: list[str],
    now: datetime,
    generation: Optional[str] = None,
) -> list[SessionCompanyData]:
    """
    Rows of a session for the given tenants whose expiry is still ahead of now.

    When generation is given, only rows written by that load are returned.
    """
    if not tenant_ids:
        return []
    result = await db.execute(
        select(SessionCompanyData)
        .where(
            *_live_filter(session_id, now, generation),
            SessionCompanyData.tenant_id.in_(tenant_ids),
        )
        .order_by(SessionCompanyData.id)
    )
    return list(result.scalars().all())


async def get_live_data_summary(
    db: AsyncSession,
    session_id: str,
    now: datetime,
    generation: Optional[str] = None,
) -> tuple[int, Optional[datetime]]:
    """Count of live rows for a session and the earliest expiry among them."""
    result = await db.execute(
        select(func.count(SessionCompanyData.id), func.min(SessionCompanyData.expires_at))
        .where(*_live_filter(session_id, now, generation))
    )
    count, earliest = result.one()
    return int(count or 0), earliest


# ---------------------------------------------------------------------------
# DISPLAY SELECTION
# ---------------------------------------------------------------------------

async def upsert_display_selection(
    db: AsyncSession,
    session_id: str,
    tenant_ids: list[str],
    current_view: str,
) -> None:
    """
    Insert or overwrite the session's display selection in one statement.
    The recorded generation is left as it is.
    """
    values = {
        "session_id": session_id,
        "selected_tenant_ids": json.dumps(list(tenant_ids)),
        "current_view": current_view,
        "last_updated": utcnow(),
    }
    await _dialect_upsert(
        db, UserDisplaySelection, values,
        index_elements=["session_id"],
        update_columns=["selected_tenant_ids", "current_view", "last_updated"],
    )
    await db.commit()


async def complete_session_load(
    db: AsyncSession,
    session_id: str,
    tenant_ids: list[str],
    current_view: str,
    generation: str,
) -> bool:
    """
    Point the selection at a finished load, unless a newer load has claimed
    the session since. Returns False when the load was superseded.
    """
    result = await db.execute(
        update(UserDisplaySelection)
        .where(
            UserDisplaySelection.session_id == session_id,
            UserDisplaySelection.pending_generation == generation,
        )
        .values(
            selected_tenant_ids=json.dumps(list(tenant_ids)),
            current_view=current_view,
            generation=generation,
            last_updated=utcnow(),
        )
    )
    await db.commit()
    return bool(result.rowcount)


async def get_display_selection(db: AsyncSession, session_id: str) -> Optional[UserDisplaySelection]:
    """Get the selection row of a session. Returns None if never set."""
    result = await db.execute(
        select(UserDisplaySelection).where(UserDisplaySelection.session_id == session_id)
    )
    return result.scalar_one_or_none()


def selected_tenant_ids(selection: UserDisplaySelection) -> list[str]:
    """Decode the JSON-encoded tenant id list of a selection row."""
    if not selection.selected_tenant_ids:
        return []
    return list(json.loads(selection.selected_tenant_ids))


# ---------------------------------------------------------------------------
# TENANT CREDENTIALS
# ---------------------------------------------------------------------------

async def get_tenant_credential(db: AsyncSession, tenant_id: str) -> Optional[TenantCredential]:
    """Get the stored token set for a tenant. Returns None if not connected."""
    result = await db.execute(
        select(TenantCredential).where(TenantCredential.tenant_id == tenant_id)
    )
    return result.scalar_one_or_none()


async def upsert_tenant_credential(
    db: AsyncSession,
    tenant_id: str,
    tenant_name: str,
    access_token: str,
    refresh_token: Optional[str] = None,
    expires_at: Optional[datetime] = None,
) -> None:
    """Store or replace the token set of a tenant."""
    values = {
        "tenant_id": tenant_id,
        "tenant_name": tenant_name,
        "access_token": access_token,
        "refresh_token": refresh_token,
        "expires_at": expires_at,
        "updated_at": utcnow(),
    }
    await _dialect_upsert(
        db, TenantCredential, values,
        index_elements=["tenant_id"],
        update_columns=["tenant_name", "access_token", "refresh_token", "expires_at", "updated_at"],
    )
    await db.commit()


async def delete_tenant_credential(db: AsyncSession, tenant_id: str) -> bool:
    """Forget a tenant's tokens (disconnect). Returns True if a row was deleted."""
    result = await db.execute(
        delete(TenantCredential).where(TenantCredential.tenant_id == tenant_id)
    )
    await db.commit()
    return bool(result.rowcount)
