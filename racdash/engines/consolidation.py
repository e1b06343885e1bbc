"""
RAC Dashboard — Consolidation Engine

Pure reduction of cached company summaries into a consolidated view.
No I/O: callers pass plain dicts (one per live session_company_data row).

Output:
    totals    — arithmetic sum of every financial field across the rows
    companies — per-company projection, in input order
    summary   — total / balanced / with-data / with-error counts
"""

from .reports import parse_amount

# (row field, totals key)
TOTAL_FIELDS = [
    ("total_assets", "total_assets"),
    ("total_liabilities", "total_liabilities"),
    ("total_equity", "total_equity"),
    ("total_cash", "total_cash"),
    ("total_revenue", "total_revenue"),
    ("total_expenses", "total_expenses"),
    ("net_profit", "total_net_profit"),
]

COMPANY_FIELDS = [
    "total_assets", "total_liabilities", "total_equity", "total_cash",
    "total_revenue", "total_expenses", "net_profit",
]


def company_detail(row: dict) -> dict:
    """Project one cached row into the per-company detail shape."""
    detail = {
        "tenant_id": row.get("tenant_id"),
        "tenant_name": row.get("tenant_name"),
    }
    for field in COMPANY_FIELDS:
        detail[field] = parse_amount(row.get(field))
    detail["is_balanced"] = bool(row.get("is_balanced"))
    detail["has_data"] = bool(row.get("has_data"))
    detail["error"] = row.get("load_error")
    return detail


def consolidate_companies(rows: list[dict]) -> dict:
    """
    Reduce company rows to totals, per-company detail and summary counts.

    Missing or non-numeric financial fields count as 0.

    Args:
        rows: Live session rows as dicts

    Returns:
        Dict with 'totals', 'companies' and 'summary'
    """
    totals = {key: 0.0 for _, key in TOTAL_FIELDS}
    for row in rows:
        for field, key in TOTAL_FIELDS:
            totals[key] += parse_amount(row.get(field))

    return {
        "totals": totals,
        "companies": [company_detail(row) for row in rows],
        "summary": {
            "total_companies": len(rows),
            "balanced_companies": sum(1 for r in rows if r.get("is_balanced")),
            "companies_with_data": sum(1 for r in rows if r.get("has_data")),
            "companies_with_errors": sum(1 for r in rows if r.get("load_error") is not None),
        },
    }
