"""End-to-end runs of the report CLI against an export directory."""

import importlib.util
import json
from pathlib import Path

import pytest

from portfolio_kernel.db.engine import get_session_factory, reset_engine
from portfolio_services.registry import SqlEntityRegistry
from tests.conftest import balance_sheet_payload, profit_and_loss_payload, raw_row, raw_section

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "run_portfolio_report.py"


def _load_cli():
    spec = importlib.util.spec_from_file_location("run_portfolio_report", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


cli = _load_cli()


def _write(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))


@pytest.fixture
def exports(tmp_path):
    _write(
        tmp_path / "entities.json",
        [
            {"entityId": "acme", "entityName": "Acme Pty Ltd"},
            {"entityId": "dormant", "entityName": "Dormant Ltd", "connected": False},
        ],
    )
    _write(
        tmp_path / "acme" / "balance_sheet" / "2024-06-30.json",
        balance_sheet_payload(100, 40, 60),
    )
    _write(
        tmp_path / "acme" / "profit_and_loss" / "2024-06-30.json",
        profit_and_loss_payload(500, 200),
    )
    _write(
        tmp_path / "acme" / "manual_journals.json",
        [
            {
                "manualJournalID": "mj-1",
                "journalNumber": "1",
                "date": "2024-05-01",
                "journalLines": [{"accountName": "Cash", "lineAmount": 2_000_000}],
            },
        ],
    )
    return tmp_path


def _run(capsys, exports, *argv):
    code = cli.main(["--exports", str(exports), *argv])
    captured = capsys.readouterr()
    return code, captured.out, captured.err


def _error(err):
    # structured log lines share stderr; the error document is the indented one
    return json.loads(err[err.rindex("{\n"):])


class TestReports:

    def test_trial_balance(self, capsys, exports):
        code, out, _ = _run(capsys, exports, "trial-balance", "Acme Pty Ltd", "--date", "2024-06-30")

        assert code == 0
        result = json.loads(out)
        assert result["entityId"] == "acme"
        assert result["totals"]["totalAssets"] == "100"
        assert result["balanceCheck"]["accountingEquation"]["balanced"] is True
        assert result["profitAndLossIncluded"] is True

    def test_consolidate_skips_disconnected(self, capsys, exports):
        code, out, _ = _run(capsys, exports, "consolidate", "--date", "2024-06-30")

        assert code == 0
        result = json.loads(out)
        assert [c["entityId"] for c in result["companies"]] == ["acme"]
        assert result["summary"]["dataQuality"]["allConnected"] is True

    def test_journals(self, capsys, exports):
        code, out, _ = _run(
            capsys, exports, "journals", "acme",
            "--from-date", "2024-01-01", "--to-date", "2024-06-30",
        )

        assert code == 0
        result = json.loads(out)
        (journal,) = result["journals"]
        assert journal["severity"] == "CRITICAL"
        assert journal["flags"]["singleSided"] is True

    def test_intercompany(self, capsys, exports):
        _write(
            exports / "acme" / "balance_sheet" / "2024-06-30.json",
            [raw_section("Current Assets", raw_row("Loan to Dormant Ltd", 5000))],
        )

        code, out, _ = _run(capsys, exports, "intercompany", "acme", "--date", "2024-06-30")

        assert code == 0
        result = json.loads(out)
        assert result["analysis"]["totalIntercompanyAssets"] == "5000"
        (account,) = result["analysis"]["accounts"]
        assert account["relatedEntity"] == "dormant ltd"

    def test_account_flags(self, capsys, exports):
        code, out, _ = _run(capsys, exports, "account-flags", "acme", "--date", "2024-06-30")

        assert code == 0
        result = json.loads(out)
        assert [a["name"] for a in result["flagged"]] == ["Rent"]
        assert result["flagged"][0]["flags"]["positiveExpense"] is True
        assert result["summary"]["accountCounts"]["totalAccounts"] == 5


class TestErrors:

    def test_unknown_entity(self, capsys, exports):
        code, out, err = _run(capsys, exports, "trial-balance", "nobody", "--date", "2024-06-30")

        assert code == 2
        assert out == ""
        assert _error(err)["error"] == "ENTITY_NOT_FOUND"

    def test_missing_balance_sheet(self, capsys, exports):
        code, _, err = _run(capsys, exports, "trial-balance", "acme", "--date", "2020-01-01")

        assert code == 2
        error = _error(err)
        assert error["error"] == "SOURCE_UNAVAILABLE"
        assert "2020-01-01.json" in error["details"]

    def test_bad_date(self, capsys, exports):
        code, _, err = _run(capsys, exports, "ratios", "acme", "--date", "June")
        assert code == 2
        assert _error(err)["error"] == "REPORT_DATE_UNRESOLVED"


class TestRegisterEntities:

    def test_copies_entities_into_registry(self, capsys, exports):
        try:
            code, out, _ = _run(
                capsys, exports, "--database-url", "sqlite://", "register-entities",
            )
            stored = SqlEntityRegistry(get_session_factory()).list_entities()
        finally:
            reset_engine()

        assert code == 0
        assert [e["entityId"] for e in json.loads(out)] == ["acme", "dormant"]
        assert [(e.entity_id, e.connected) for e in stored] == [
            ("acme", True),
            ("dormant", False),
        ]

    def test_requires_database_url(self, exports):
        with pytest.raises(SystemExit):
            cli.main(["--exports", str(exports), "register-entities"])
