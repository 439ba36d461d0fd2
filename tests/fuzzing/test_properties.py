"""
Property-based tests for the trial balance pipeline.

Invariants checked against generated report trees:
- Totals are exact line sums
- Every admitted account is one-sided
- Consolidation is linear and independent of entity order
- Identical inputs render identically
"""

from datetime import date
from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from portfolio_engines.consolidation import consolidate_trial_balances
from portfolio_engines.rendering import render_to_dict
from portfolio_engines.trial_balance import TrialBalanceTotals, build_entity_trial_balance
from portfolio_kernel.domain.accounts import AccountType
from portfolio_kernel.domain.entities import EntityDescriptor
from portfolio_kernel.domain.report_tree import ReportRow, ReportSection
from portfolio_kernel.invariants import ALL_PORTFOLIO_INVARIANTS, PortfolioInvariant

REPORT_DATE = date(2024, 6, 30)

PROPERTY_SETTINGS = settings(
    max_examples=60,
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)

amounts = st.decimals(
    min_value=Decimal("-5000000"),
    max_value=Decimal("5000000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)

account_names = st.text(
    alphabet="abcdefghijklmnopqrstuvwxyz ",
    min_size=1,
    max_size=16,
).filter(lambda s: s.strip())

balance_sheet_titles = st.sampled_from(
    ["Bank", "Current Assets", "Fixed Assets", "Current Liabilities", "Equity", "Memo"]
)
profit_and_loss_titles = st.sampled_from(
    ["Income", "Other Revenue", "Operating Expenses", "Cost of Sales", "Notes"]
)


def _sections(titles):
    rows = st.builds(ReportRow, name=account_names, balance=amounts)
    return st.lists(
        st.builds(
            ReportSection,
            title=titles,
            children=st.lists(rows, max_size=6).map(tuple),
        ),
        max_size=5,
    ).map(tuple)


report_inputs = st.tuples(
    _sections(balance_sheet_titles),
    st.one_of(st.none(), _sections(profit_and_loss_titles)),
)


def _build(inputs, entity_id="e"):
    balance_sheet, profit_and_loss = inputs
    return build_entity_trial_balance(
        entity_id=entity_id,
        entity_name=entity_id.upper(),
        report_date=REPORT_DATE,
        balance_sheet=balance_sheet,
        profit_and_loss=profit_and_loss,
    )


trial_balances = report_inputs.map(_build)


class TestTrialBalanceProperties:

    @PROPERTY_SETTINGS
    @given(trial_balances)
    def test_totals_are_line_sums(self, tb):
        assert tb.totals.total_debits == sum((a.debit for a in tb.accounts), Decimal("0"))
        assert tb.totals.total_credits == sum((a.credit for a in tb.accounts), Decimal("0"))
        for account_type in AccountType:
            assert tb.totals.for_type(account_type) == sum(
                (a.balance for a in tb.accounts_of(account_type)), Decimal("0"),
            )
        assert tb.balance_check.difference == tb.totals.total_debits - tb.totals.total_credits

    @PROPERTY_SETTINGS
    @given(trial_balances)
    def test_accounts_are_one_sided(self, tb):
        for account in tb.accounts:
            assert account.debit >= 0 and account.credit >= 0
            assert account.debit == 0 or account.credit == 0
        assert tb.processed_rows == tb.account_count

    @PROPERTY_SETTINGS
    @given(trial_balances)
    def test_buckets_are_sorted(self, tb):
        for account_type in AccountType:
            bucket = tb.accounts_of(account_type)
            keys = [(a.name, a.code or "") for a in bucket]
            assert keys == sorted(keys)


class TestConsolidationProperties:

    @PROPERTY_SETTINGS
    @given(
        st.lists(trial_balances, min_size=1, max_size=4),
        st.randoms(use_true_random=False),
    )
    def test_linear_and_order_independent(self, tbs, rnd):
        by_id = {}
        entities = []
        for i, tb in enumerate(tbs):
            entity = EntityDescriptor(f"e{i}", f"E{i}")
            by_id[entity.entity_id] = tb
            entities.append(entity)

        shuffled = list(entities)
        rnd.shuffle(shuffled)

        forward = consolidate_trial_balances(REPORT_DATE, entities, by_id)
        reordered = consolidate_trial_balances(REPORT_DATE, shuffled, by_id)

        expected = TrialBalanceTotals()
        for tb in tbs:
            expected = expected + tb.totals
        assert forward.totals == expected
        assert reordered.totals == expected
        assert forward.balance_check == reordered.balance_check


class TestRenderingProperties:

    @PROPERTY_SETTINGS
    @given(report_inputs)
    def test_render_is_deterministic(self, inputs):
        assert render_to_dict(_build(inputs)) == render_to_dict(_build(inputs))


def test_invariants_declared():
    assert PortfolioInvariant.TOTALS_ARE_LINE_SUMS in ALL_PORTFOLIO_INVARIANTS
    assert len(ALL_PORTFOLIO_INVARIANTS) == len(PortfolioInvariant)
