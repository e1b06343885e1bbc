"""Tests for report extraction and consolidation engines."""

import pytest

from racdash.engines.reports import (
    ReportResult, is_balanced, parse_amount, summarize_balance_sheet, summarize_bank_summary,
)
from racdash.engines.consolidation import consolidate_companies

from conftest import balance_sheet_rows, bank_summary_rows


class TestParseAmount:
    def test_numeric_strings(self):
        assert parse_amount("1234.50") == 1234.5
        assert parse_amount("-20") == -20.0

    def test_thousands_separator(self):
        assert parse_amount("1,234.50") == 1234.5

    @pytest.mark.parametrize("value", [None, "", "   ", "n/a", True])
    def test_missing_or_non_numeric_is_zero(self, value):
        assert parse_amount(value) == 0.0

    def test_numbers_pass_through(self):
        assert parse_amount(7) == 7.0

    @pytest.mark.parametrize("value", ["NaN", "nan", "inf", "-Infinity", float("nan"), float("inf")])
    def test_non_finite_is_zero(self, value):
        assert parse_amount(value) == 0.0


class TestIsBalanced:
    def test_exact_match(self):
        assert is_balanced(100.0, 40.0, 60.0) is True

    def test_difference_of_exactly_one_is_unbalanced(self):
        assert is_balanced(101.0, 40.0, 60.0) is False

    def test_difference_just_under_one_is_balanced(self):
        assert is_balanced(100.999999, 40.0, 60.0) is True

    def test_tolerance_is_absolute_not_relative(self):
        assert is_balanced(1_000_002.0, 500_000.0, 500_000.0) is False


class TestBalanceSheet:
    def test_sums_sections(self):
        result = summarize_balance_sheet(
            balance_sheet_rows(assets=[1000, 500], liabilities=[400], equity=[1100])
        )
        assert result == {
            "total_assets": 1500.0,
            "total_liabilities": 400.0,
            "total_equity": 1100.0,
            "is_balanced": True,
        }

    def test_liabilities_are_absolute(self):
        result = summarize_balance_sheet(balance_sheet_rows(liabilities=[-250, 50]))
        assert result["total_liabilities"] == 300.0

    def test_section_titles_match_case_insensitively(self):
        rows = [
            {"rowType": "Section", "title": "CURRENT ASSETS",
             "rows": [{"rowType": "Row", "cells": [{"value": "Bank"}, {"value": "10"}]}]},
            {"rowType": "Section", "title": "Non-current Liabilities",
             "rows": [{"rowType": "Row", "cells": [{"value": "Loan"}, {"value": "4"}]}]},
            {"rowType": "Section", "title": "Equity",
             "rows": [{"rowType": "Row", "cells": [{"value": "Retained"}, {"value": "6"}]}]},
        ]
        result = summarize_balance_sheet(rows)
        assert result["total_assets"] == 10.0
        assert result["total_liabilities"] == 4.0
        assert result["total_equity"] == 6.0
        assert result["is_balanced"] is True

    def test_skips_zero_short_and_summary_rows(self):
        rows = [{
            "rowType": "Section", "title": "Assets",
            "rows": [
                {"rowType": "Row", "cells": [{"value": "Zero"}, {"value": "0.00"}]},
                {"rowType": "Row", "cells": [{"value": "Only label"}]},
                {"rowType": "SummaryRow", "cells": [{"value": "Total"}, {"value": "99"}]},
                {"rowType": "Row", "cells": [{"value": "Bank"}, {"value": "5"}]},
            ],
        }]
        assert summarize_balance_sheet(rows)["total_assets"] == 5.0

    def test_ignores_untitled_and_unclassified_sections(self):
        rows = [
            {"rowType": "Section", "title": "",
             "rows": [{"rowType": "Row", "cells": [{"value": "x"}, {"value": "10"}]}]},
            {"rowType": "Section", "title": "Net Assets Summary", "rows": []},
            {"rowType": "Section", "title": "Other",
             "rows": [{"rowType": "Row", "cells": [{"value": "x"}, {"value": "10"}]}]},
        ]
        result = summarize_balance_sheet(rows)
        assert result["total_assets"] == 0.0
        assert result["total_equity"] == 0.0

    def test_empty_report_is_balanced_zero(self):
        assert summarize_balance_sheet([]) == {
            "total_assets": 0.0, "total_liabilities": 0.0,
            "total_equity": 0.0, "is_balanced": True,
        }


class TestBankSummary:
    def test_sums_closing_balances_excluding_totals(self):
        rows = bank_summary_rows({"Cheque": 250.0, "Savings": 750.0})
        assert summarize_bank_summary(rows) == {"total_cash": 1000.0}

    def test_total_label_match_is_case_insensitive(self):
        rows = [{"rowType": "Section", "rows": [
            {"rowType": "Row", "cells": [{"value": v} for v in ("Cheque", "", "", "", "40")]},
            {"rowType": "Row", "cells": [{"value": v} for v in ("GRAND TOTAL", "", "", "", "40")]},
        ]}]
        assert summarize_bank_summary(rows)["total_cash"] == 40.0

    def test_skips_short_rows_and_blank_labels(self):
        rows = [{"rowType": "Section", "rows": [
            {"rowType": "Row", "cells": [{"value": "Cheque"}, {"value": "10"}]},
            {"rowType": "Row", "cells": [{"value": v} for v in ("", "", "", "", "40")]},
            {"rowType": "Row", "cells": [{"value": v} for v in ("Savings", "", "", "", "15.5")]},
        ]}]
        assert summarize_bank_summary(rows)["total_cash"] == 15.5

    def test_rows_outside_sections_are_ignored(self):
        rows = [{"rowType": "Row", "cells": [{"value": v} for v in ("Cheque", "", "", "", "40")]}]
        assert summarize_bank_summary(rows)["total_cash"] == 0.0


class TestReportResult:
    def test_failure_is_distinct_from_zero(self):
        zero = ReportResult.success({"total_cash": 0.0})
        failed = ReportResult.failure("timeout")
        assert zero.ok and zero.value == {"total_cash": 0.0}
        assert not failed.ok and failed.value is None and failed.error == "timeout"


class TestConsolidation:
    ROWS = [
        {"tenant_id": "a", "tenant_name": "A", "total_assets": 100.0, "total_liabilities": 40.0,
         "total_equity": 60.0, "total_cash": 10.0, "total_revenue": 0.0, "total_expenses": 0.0,
         "net_profit": 0.0, "is_balanced": True, "has_data": True, "load_error": None},
        {"tenant_id": "b", "tenant_name": "B", "total_assets": 250.5, "total_liabilities": 50.0,
         "total_equity": 10.0, "total_cash": 5.25, "total_revenue": 0.0, "total_expenses": 0.0,
         "net_profit": 0.0, "is_balanced": False, "has_data": True, "load_error": None},
        {"tenant_id": "c", "tenant_name": "Unknown Company", "total_assets": None,
         "is_balanced": False, "has_data": False, "load_error": "No token found for tenant c"},
    ]

    def test_totals_are_exact_sums(self):
        result = consolidate_companies(self.ROWS)
        assert result["totals"]["total_assets"] == 350.5
        assert result["totals"]["total_liabilities"] == 90.0
        assert result["totals"]["total_equity"] == 70.0
        assert result["totals"]["total_cash"] == 15.25
        assert result["totals"]["total_net_profit"] == 0.0

    @pytest.mark.parametrize("subset", [[0], [1], [0, 1], [0, 2], [1, 2], [0, 1, 2]])
    def test_totals_match_every_subset(self, subset):
        rows = [self.ROWS[i] for i in subset]
        result = consolidate_companies(rows)
        assert result["totals"]["total_assets"] == sum(parse_amount(r.get("total_assets")) for r in rows)
        assert result["totals"]["total_cash"] == sum(parse_amount(r.get("total_cash")) for r in rows)

    def test_summary_counts(self):
        summary = consolidate_companies(self.ROWS)["summary"]
        assert summary == {
            "total_companies": 3,
            "balanced_companies": 1,
            "companies_with_data": 2,
            "companies_with_errors": 1,
        }

    def test_company_detail_projection(self):
        companies = consolidate_companies(self.ROWS)["companies"]
        assert [c["tenant_id"] for c in companies] == ["a", "b", "c"]
        assert companies[2]["total_assets"] == 0.0
        assert companies[2]["total_cash"] == 0.0
        assert companies[2]["error"] == "No token found for tenant c"
        assert companies[0]["is_balanced"] is True

    def test_empty_input(self):
        result = consolidate_companies([])
        assert result["summary"]["total_companies"] == 0
        assert all(v == 0.0 for v in result["totals"].values())
