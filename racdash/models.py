"""
RAC Dashboard ORM Models

Defines all database tables using SQLAlchemy 2.0 mapped_column style.

Architecture:
    - All models inherit from Base (defined in database.py)
    - Session tables are scoped by an opaque session_id; rows never relate
      to another session's rows
    - Timestamps are naive UTC (see utcnow)

Tables:
    - session_company_data: one cached financial summary per company per
      session generation, tagged with an expiry
    - user_display_selection: one row per session recording which companies
      are selected for display and the active view
    - tenant_credentials: stored Xero tokens, read by the token provider
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean, DateTime, Float, Index, Integer, String, Text, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form every table stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ---------------------------------------------------------------------------
# SESSION CACHE TABLES
# ---------------------------------------------------------------------------

class SessionCompanyData(Base):
    """
    Cached financial summary for one company within one session.

    Rows are written once per load (success or error) and never updated.
    A row is live while expires_at is in the future; expired rows stay in
    place until the session is reloaded, which deletes every row first.
    """
    __tablename__ = "session_company_data"
    __table_args__ = (
        Index("ix_session_company_data_session_expiry", "session_id", "expires_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(String(255), nullable=False)
    tenant_id: Mapped[str] = mapped_column(String(255), nullable=False)
    tenant_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    total_assets: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_liabilities: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_equity: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_cash: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_revenue: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_expenses: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    net_profit: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    is_balanced: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_data: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    load_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    generation: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return (
            f"<SessionCompanyData(session={self.session_id}, tenant={self.tenant_id}, "
            f"has_data={self.has_data}, error={self.load_error!r})>"
        )


class UserDisplaySelection(Base):
    """
    Which companies a session currently displays and in which view.

    selected_tenant_ids is a JSON-encoded ordered list. pending_generation
    is the most recently started session load; generation is the load that
    last completed while still the most recent one. Consolidation only reads
    rows written by that load when it is set.
    """
    __tablename__ = "user_display_selection"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    selected_tenant_ids: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    current_view: Mapped[str] = mapped_column(String(50), nullable=False, default="overview")
    generation: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    pending_generation: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        return f"<UserDisplaySelection(session={self.session_id}, view={self.current_view})>"


# ---------------------------------------------------------------------------
# CREDENTIAL TABLES
# ---------------------------------------------------------------------------

class TenantCredential(Base):
    """
    Stored Xero token set for one connected organisation (tenant).
    Written by the OAuth flow, read by DatabaseTokenProvider.
    """
    __tablename__ = "tenant_credentials"
    __table_args__ = (
        UniqueConstraint("tenant_id", name="uq_tenant_credential"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(255), nullable=False)
    tenant_name: Mapped[str] = mapped_column(Text, nullable=False)
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        return f"<TenantCredential(tenant={self.tenant_id}, name={self.tenant_name})>"
