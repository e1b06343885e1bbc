"""
RAC Dashboard Pydantic Schemas

Defines request/response models for the session cache and its REST API.
Pydantic validates all incoming data and serializes outgoing responses.

Naming convention:
    - XxxRequest / XxxUpdate: request bodies
    - XxxResponse / XxxResult: response bodies
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .config import DEFAULT_VIEW, VALID_VIEWS


def _validate_view(v):
    if v not in VALID_VIEWS:
        raise ValueError(f"Invalid view: {v}. Must be one of {VALID_VIEWS}")
    return v


# ---------------------------------------------------------------------------
# SESSION LOAD SCHEMAS
# ---------------------------------------------------------------------------

class LoadSessionRequest(BaseModel):
    """Request body for (re)loading a session's company data."""
    tenant_ids: list[str] = Field(default_factory=list)

    @field_validator("tenant_ids")
    @classmethod
    def validate_tenant_ids(cls, v):
        if any(not tid.strip() for tid in v):
            raise ValueError("tenant_ids must not contain blank identifiers")
        return v


class CompanyLoadResult(BaseModel):
    """Outcome of loading one company into the session cache."""
    tenant_id: str
    success: bool
    tenant_name: Optional[str] = None
    has_data: bool = False
    error: Optional[str] = None
    error_code: Optional[str] = None


class LoadSessionResponse(BaseModel):
    """Summary of one session load. Partial success is a normal outcome."""
    session_id: str
    total_companies: int
    successful_companies: int
    expires_at: datetime
    companies: list[CompanyLoadResult] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# DISPLAY SELECTION SCHEMAS
# ---------------------------------------------------------------------------

class SelectionUpdate(BaseModel):
    """Request body for changing which companies are displayed."""
    selected_tenant_ids: list[str]
    current_view: str = DEFAULT_VIEW

    @field_validator("current_view")
    @classmethod
    def validate_current_view(cls, v):
        return _validate_view(v)


class SelectionResponse(BaseModel):
    session_id: str
    selected_tenant_ids: list[str] = Field(default_factory=list)
    current_view: str = DEFAULT_VIEW
    last_updated: Optional[datetime] = None


# ---------------------------------------------------------------------------
# CONSOLIDATION SCHEMAS
# ---------------------------------------------------------------------------

class ConsolidatedTotals(BaseModel):
    total_assets: float = 0.0
    total_liabilities: float = 0.0
    total_equity: float = 0.0
    total_cash: float = 0.0
    total_revenue: float = 0.0
    total_expenses: float = 0.0
    total_net_profit: float = 0.0


class CompanyDetail(BaseModel):
    """One company's cached figures, as shown next to the totals."""
    tenant_id: str
    tenant_name: Optional[str] = None
    total_assets: float = 0.0
    total_liabilities: float = 0.0
    total_equity: float = 0.0
    total_cash: float = 0.0
    total_revenue: float = 0.0
    total_expenses: float = 0.0
    net_profit: float = 0.0
    is_balanced: bool = False
    has_data: bool = False
    error: Optional[str] = None


class ConsolidationSummary(BaseModel):
    total_companies: int
    balanced_companies: int
    companies_with_data: int
    companies_with_errors: int


class ConsolidatedView(BaseModel):
    """Totals, detail and counts over the live rows of the selected companies."""
    session_id: str
    selected_tenant_ids: list[str]
    totals: ConsolidatedTotals
    companies: list[CompanyDetail]
    summary: ConsolidationSummary


class ConsolidationFailure(BaseModel):
    """
    Why no consolidated view could be produced.

    error_code is NO_SELECTION (prompt the user to pick companies) or
    NO_LIVE_DATA (reload the session).
    """
    session_id: str
    error: str
    error_code: str


# ---------------------------------------------------------------------------
# FRESHNESS SCHEMAS
# ---------------------------------------------------------------------------

class SessionStatusResponse(BaseModel):
    session_id: str
    has_data: bool
    companies_count: int
    expires_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# CREDENTIAL SCHEMAS
# ---------------------------------------------------------------------------

class CredentialUpdate(BaseModel):
    """Token set handed over by the OAuth flow for one tenant."""
    tenant_name: str = Field(..., min_length=1)
    access_token: str = Field(..., min_length=1)
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
