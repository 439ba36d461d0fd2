"""
Tests for manual journal screening.

Covers:
- Debit/credit totals from signed line amounts
- Flags and severity bands
- Watch-list matching and account filters
- Unbalanced-journal finder
- Account histories and watch-list movements
- Deterministic ordering
"""

from datetime import date
from decimal import Decimal

import pytest

from portfolio_config.schema import ScreeningThresholds
from portfolio_engines.journal_screening import (
    ScreeningOrder,
    Severity,
    account_history,
    classify_severity,
    find_unbalanced,
    screen_entries,
    screen_entry,
    summarize_screening,
    watchlist_movements,
)
from tests.conftest import journal


class TestScreenEntry:

    def test_balanced_small_entry_is_clean(self):
        result = screen_entry(journal("j1", 500, -500))
        assert result.total_debits == Decimal("500")
        assert result.total_credits == Decimal("500")
        assert result.imbalance == Decimal("0")
        assert result.is_balanced is True
        assert result.flags.fired is False
        assert result.severity == Severity.NONE
        assert result.is_suspicious is False
        assert result.line_count == 2

    def test_large_balanced_entry_is_medium(self):
        result = screen_entry(journal("j2", 1_500_000, -1_500_000))
        assert result.flags.large_amount is True
        assert result.flags.unbalanced is False
        assert result.severity == Severity.MEDIUM
        assert result.is_suspicious is True

    def test_single_line_huge_entry_is_critical(self):
        result = screen_entry(journal("j3", 29_500_000))
        assert result.flags.single_sided is True
        assert result.flags.unbalanced is True
        assert result.flags.large_amount is True
        assert result.imbalance == Decimal("29500000")
        assert result.severity == Severity.CRITICAL

    def test_imbalance_within_tolerance_is_balanced(self):
        result = screen_entry(journal("j4", "100.004", "-100"))
        assert result.is_balanced is True
        assert result.flags.unbalanced is False

    def test_watchlist_match_is_case_insensitive(self):
        entry = journal("j5", 10, -10, accounts=("Future Fund Loan", "Cash"))
        result = screen_entry(entry, watchlist=("future fund",))
        assert result.flags.matches_watchlist is True
        assert result.severity == Severity.MEDIUM

    def test_lines_and_header_carried(self):
        entry = journal("j6", 10, -10, number="MJ-6", narration="Accrual")
        result = screen_entry(entry)
        assert result.number == "MJ-6"
        assert result.narration == "Accrual"
        assert result.lines == entry.lines


class TestSeverityBands:

    @pytest.mark.parametrize(
        "imbalance,expected",
        [
            ("0", Severity.MEDIUM),
            ("100000", Severity.MEDIUM),
            ("100000.01", Severity.HIGH),
            ("1000000", Severity.HIGH),
            ("1000000.01", Severity.CRITICAL),
            ("-2000000", Severity.CRITICAL),
        ],
    )
    def test_flagged_bands(self, imbalance, expected):
        assert classify_severity(Decimal(imbalance), flagged=True) == expected

    def test_unflagged_is_none(self):
        assert classify_severity(Decimal("5000000"), flagged=False) == Severity.NONE

    def test_custom_thresholds(self):
        thresholds = ScreeningThresholds(
            large_amount=Decimal("100"),
            critical_imbalance=Decimal("50"),
            high_imbalance=Decimal("10"),
        )
        result = screen_entry(journal("j", 60), thresholds=thresholds)
        assert result.severity == Severity.CRITICAL

    def test_thresholds_validated(self):
        with pytest.raises(ValueError):
            ScreeningThresholds(high_imbalance=Decimal("2000000"))
        with pytest.raises(ValueError):
            ScreeningThresholds(large_amount=Decimal("-1"))


class TestScreenEntries:

    def test_newest_first_ties_by_id(self):
        entries = [
            journal("b", 1, -1, on=date(2024, 1, 1)),
            journal("a", 1, -1, on=date(2024, 1, 1)),
            journal("c", 1, -1, on=date(2024, 5, 1)),
            journal("d", 1, -1, on=None),
        ]
        results = screen_entries(entries)
        assert [r.id for r in results] == ["c", "a", "b", "d"]

    def test_by_imbalance_order(self):
        entries = [
            journal("small", 10),
            journal("big", 1000),
            journal("mid-b", 100),
            journal("mid-a", -100),
        ]
        results = screen_entries(entries, order=ScreeningOrder.BY_IMBALANCE)
        assert [r.id for r in results] == ["big", "mid-a", "mid-b", "small"]

    def test_account_filter_narrows_but_scores_all_lines(self):
        entries = [
            journal("hit", 5_000_000, -10, accounts=("Suspense", "Cash")),
            journal("miss", 10, -10, accounts=("Rent", "Cash at Bank")),
        ]
        results = screen_entries(entries, filter_account_name="suspense")
        assert [r.id for r in results] == ["hit"]
        assert results[0].total_debits == Decimal("5000000")
        assert results[0].severity == Severity.CRITICAL

    def test_summary_counts(self):
        results = screen_entries(
            [
                journal("clean", 10, -10),
                journal("large", 1_500_000, -1_500_000),
                journal("critical", 29_500_000),
                journal("watch", 5, -5, accounts=("Future Fund", "Cash")),
            ],
            watchlist=("future fund",),
        )
        summary = summarize_screening(results)
        assert summary.total_journals == 4
        assert summary.suspicious_journals == 3
        assert summary.unbalanced_journals == 1
        assert summary.large_amount_found == 2
        assert summary.critical_issues == 1
        assert summary.watchlist_related == 1


class TestFindUnbalanced:

    def test_filters_by_minimum_and_orders_by_imbalance(self):
        entries = [
            journal("tiny", 50, -40),
            journal("large-balanced", 20_000, -20_000),
            journal("big-gap", 50_000, -10_000),
            journal("gap", 15_000),
        ]
        results = find_unbalanced(entries)
        assert [r.id for r in results] == ["big-gap", "gap", "large-balanced"]

    def test_explicit_minimum(self):
        results = find_unbalanced([journal("a", 50, -40)], minimum_amount=Decimal("10"))
        assert [r.id for r in results] == ["a"]

    def test_negative_minimum_rejected(self):
        with pytest.raises(ValueError):
            find_unbalanced([], minimum_amount=Decimal("-1"))


class TestAccountMovements:

    def _entries(self):
        return [
            journal("j1", 300, -300, on=date(2024, 2, 1), accounts=("Future Fund Loan", "Cash")),
            journal("j2", 100, -100, on=date(2024, 4, 1), accounts=("Cash", "Future Fund Loan")),
            journal("j3", 50, -50, on=date(2024, 3, 1), accounts=("Rent", "Cash")),
        ]

    def test_account_history_total_is_absolute(self):
        history = account_history(self._entries(), "future fund")
        assert history.transaction_count == 2
        assert [m.journal_id for m in history.transactions] == ["j2", "j1"]
        assert history.transactions[0].net_amount == Decimal("-100")
        assert history.total_movement == Decimal("400")

    def test_account_history_matches_code(self):
        history = account_history(self._entries(), "nothing-matches", account_code="100")
        assert history.transaction_count == 3

    def test_watchlist_movements_total_is_signed(self):
        movements = watchlist_movements(self._entries(), "future fund")
        assert movements.transaction_count == 2
        assert movements.total_movement == Decimal("200")
        assert movements.term == "future fund"
