"""
RAC Dashboard — Report Summary Extraction

Reduces normalized Xero report rows to the handful of figures the session
cache stores per company.

Row shape (normalized by the accounting client):
    {"rowType": "Section" | "Row" | ..., "title": str, "rows": [...],
     "cells": [{"value": str}, ...]}

Balance sheet rules:
    - Only "Section" rows with a title and child rows are considered
    - Section classified by case-insensitive substring: "asset",
      "liabilit", "equity" (checked in that order)
    - Amount of a child "Row" is cells[1]; rows with fewer than 2 cells
      or an amount of exactly zero are skipped
    - Liabilities accumulate as absolute values
    - Balanced when |assets - (liabilities + equity)| < 1.0

Bank summary rules:
    - Child "Row" entries of "Section" rows with at least 5 cells
    - Label is cells[0], amount is cells[4]
    - Rows with an empty label or a label containing "total" are subtotals
      and are excluded
"""

import math
from dataclasses import dataclass
from typing import Any, Optional

# Absolute tolerance, in currency units
BALANCE_TOLERANCE = 1.0

BALANCE_AMOUNT_CELL = 1
BANK_LABEL_CELL = 0
BANK_AMOUNT_CELL = 4


@dataclass
class ReportResult:
    """
    Outcome of fetching and summarizing one report.

    ok=False keeps the error so a failed fetch stays distinguishable from a
    report that legitimately summed to zero.
    """
    ok: bool
    value: Optional[dict] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: dict) -> "ReportResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "ReportResult":
        return cls(ok=False, error=error)


def parse_amount(value: Any) -> float:
    """
    Parse a report cell value to float.
    None, empty strings, non-numeric text and non-finite values (NaN,
    infinity) count as 0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        amount = float(value)
    else:
        text = str(value).strip().replace(",", "")
        if not text:
            return 0.0
        try:
            amount = float(text)
        except ValueError:
            return 0.0
    return amount if math.isfinite(amount) else 0.0


def _cell_value(cells: list, index: int) -> Any:
    cell = cells[index]
    if isinstance(cell, dict):
        return cell.get("value")
    return cell


def _classify_section(title: str) -> Optional[str]:
    lowered = title.lower()
    if "asset" in lowered:
        return "assets"
    if "liabilit" in lowered:
        return "liabilities"
    if "equity" in lowered:
        return "equity"
    return None


def is_balanced(total_assets: float, total_liabilities: float, total_equity: float) -> bool:
    """Assets equal liabilities plus equity within BALANCE_TOLERANCE (strict)."""
    return abs(total_assets - (total_liabilities + total_equity)) < BALANCE_TOLERANCE


def summarize_balance_sheet(rows: list[dict]) -> dict:
    """
    Sum balance sheet sections into assets, liabilities and equity.

    Args:
        rows: Top-level report rows of a balance sheet

    Returns:
        Dict with total_assets, total_liabilities, total_equity, is_balanced
    """
    totals = {"assets": 0.0, "liabilities": 0.0, "equity": 0.0}

    for section in rows or []:
        if section.get("rowType") != "Section":
            continue
        title = section.get("title")
        children = section.get("rows")
        if not title or not children:
            continue

        bucket = _classify_section(title)
        if bucket is None:
            continue

        for row in children:
            cells = row.get("cells") or []
            if row.get("rowType") != "Row" or len(cells) < 2:
                continue
            amount = parse_amount(_cell_value(cells, BALANCE_AMOUNT_CELL))
            if amount == 0:
                continue
            if bucket == "liabilities":
                amount = abs(amount)
            totals[bucket] += amount

    return {
        "total_assets": totals["assets"],
        "total_liabilities": totals["liabilities"],
        "total_equity": totals["equity"],
        "is_balanced": is_balanced(totals["assets"], totals["liabilities"], totals["equity"]),
    }


def summarize_bank_summary(rows: list[dict]) -> dict:
    """
    Sum closing balances of every bank account in a bank summary report.

    Returns:
        Dict with total_cash
    """
    total_cash = 0.0

    for section in rows or []:
        if section.get("rowType") != "Section":
            continue
        for row in section.get("rows") or []:
            cells = row.get("cells") or []
            if row.get("rowType") != "Row" or len(cells) < 5:
                continue
            label = _cell_value(cells, BANK_LABEL_CELL) or ""
            if not label or "total" in str(label).lower():
                continue
            total_cash += parse_amount(_cell_value(cells, BANK_AMOUNT_CELL))

    return {"total_cash": total_cash}
