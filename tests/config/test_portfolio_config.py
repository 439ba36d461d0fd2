"""
Tests for configuration loading.

Covers:
- Defaults
- YAML parsing with and without the top-level ``portfolio`` key
- ConfigurationError on invalid sections
- get_active_config resolution order and PORTFOLIO_CONFIG_TRACE
"""

from decimal import Decimal

import pytest

from portfolio_config import CONFIG_PATH_ENV, PortfolioConfig, get_active_config
from portfolio_config.loader import compute_checksum, load_config, load_yaml_file, parse_config
from portfolio_kernel.domain.accounts import AccountType
from portfolio_kernel.exceptions import ConfigurationError

YAML_CONFIG = """\
portfolio:
  classification_rules:
    - keyword: Fixed
      account_type: asset
    - keyword: bank
      account_type: ASSET
  screening:
    large_amount: 500000
    watchlist: ["Future Fund", "Director Loan"]
  comparison:
    change_floor: 250.5
    significant_change: 50000
    report_removed_accounts: false
  consolidation:
    max_workers: 8
    entity_timeout: 12.5
  intercompany:
    entity_keywords: ["Northwind", "Beta Holdings"]
  account_flags:
    large_balance: 250000
    unusual_equity_terms: ["Drawings"]
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "portfolio.yaml"
    path.write_text(YAML_CONFIG)
    return path


class TestDefaults:

    def test_defaults(self):
        config = PortfolioConfig.with_defaults()
        assert config.screening.large_amount == Decimal("1000000")
        assert config.screening.watchlist == ("future fund",)
        assert config.comparison.change_floor == Decimal("1000")
        assert config.consolidation.max_workers == 4
        assert config.balance_tolerance == Decimal("0.01")
        assert config.intercompany.entity_keywords == ()
        assert config.account_flags.large_balance == Decimal("1000000")
        assert config.classification_rules[0].keyword == "bank"

    def test_empty_rule_table_rejected(self):
        with pytest.raises(ValueError):
            PortfolioConfig(classification_rules=())


class TestParseConfig:

    def test_yaml_file(self, config_file):
        config = load_config(config_file)

        assert [r.keyword for r in config.classification_rules] == ["fixed", "bank"]
        assert config.classification_rules[0].account_type == AccountType.ASSET
        assert config.screening.large_amount == Decimal("500000")
        assert config.screening.watchlist == ("future fund", "director loan")
        assert config.screening.critical_imbalance == Decimal("1000000")
        assert config.comparison.change_floor == Decimal("250.5")
        assert config.comparison.report_removed_accounts is False
        assert config.consolidation.max_workers == 8
        assert config.consolidation.entity_timeout == 12.5
        assert config.intercompany.entity_keywords == ("northwind", "beta holdings")
        assert config.intercompany.relationship_keywords == ("loan", "due", "receivable", "payable")
        assert config.account_flags.large_balance == Decimal("250000")
        assert config.account_flags.unusual_equity_balance == Decimal("10000000")
        assert config.account_flags.unusual_equity_terms == ("drawings",)

    def test_bare_mapping(self):
        config = parse_config({"balance_tolerance": "0.5"})
        assert config.balance_tolerance == Decimal("0.5")

    def test_empty_mapping_is_defaults(self):
        assert parse_config({}) == PortfolioConfig()

    @pytest.mark.parametrize(
        "data,field",
        [
            ({"screening": {"large_amount": "lots"}}, "screening"),
            ({"classification_rules": [{"keyword": "x", "account_type": "ASSETS"}]}, "classification_rules"),
            ({"consolidation": {"max_workers": 0}}, "consolidation"),
            ({"comparison": {"unknown": 1}}, "comparison"),
            ({"intercompany": {"relationship_keywords": []}}, "intercompany"),
            ({"intercompany": {"entity_keywords": ["  "]}}, "intercompany"),
            ({"account_flags": {"large_balance": -1}}, "account_flags"),
            ({"account_flags": {"unusual_equity_balance": "huge"}}, "account_flags"),
            ({"mystery_section": {}}, "portfolio"),
        ],
    )
    def test_invalid_sections(self, data, field):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_config(data)
        assert exc_info.value.field == field
        assert exc_info.value.code == "INVALID_CONFIGURATION"

    def test_non_mapping_document(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError):
            load_yaml_file(path)

    def test_checksum_is_order_independent(self):
        assert compute_checksum({"a": 1, "b": 2}) == compute_checksum({"b": 2, "a": 1})
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})


class TestGetActiveConfig:

    def test_defaults_when_nothing_configured(self, monkeypatch, captured_logs):
        monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)

        config = get_active_config()

        assert config == PortfolioConfig()
        (trace,) = [r for r in captured_logs() if r["message"] == "PORTFOLIO_CONFIG_TRACE"]
        assert trace["config_source"] == "defaults"
        assert trace["max_workers"] == 4
        assert len(trace["checksum"]) == 64

    def test_explicit_path(self, config_file, captured_logs):
        config = get_active_config(config_file)
        assert config.consolidation.max_workers == 8
        (trace,) = [r for r in captured_logs() if r["message"] == "PORTFOLIO_CONFIG_TRACE"]
        assert trace["config_source"] == str(config_file)
        assert trace["watchlist_size"] == 2

    def test_environment_path(self, config_file, monkeypatch):
        monkeypatch.setenv(CONFIG_PATH_ENV, str(config_file))
        assert get_active_config().screening.large_amount == Decimal("500000")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")
