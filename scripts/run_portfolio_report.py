#!/usr/bin/env python3
"""
Produce portfolio trial balance reports from a directory of exported payloads.

Reads the export layout served by ``portfolio_ingestion.adapters.json_export``
and prints the rendered report as JSON on stdout.  Entities come from
``<exports>/entities.json`` unless ``--database-url`` points at an entity
registry database.

Usage:
    python3 scripts/run_portfolio_report.py --exports <dir> <command> [options]

Examples:
    # One entity's trial balance as at a date
    python3 scripts/run_portfolio_report.py --exports ./exports trial-balance acme --date 2024-06-30

    # Consolidated trial balance over every connected entity
    python3 scripts/run_portfolio_report.py --exports ./exports consolidate --date 2024-06-30

    # Flagged manual journals for the last year
    python3 scripts/run_portfolio_report.py --exports ./exports journals acme

    # Period comparison for the whole portfolio
    python3 scripts/run_portfolio_report.py --exports ./exports compare --from-date 2023-06-30 --to-date 2024-06-30

    # Intercompany loans and balances due on one balance sheet
    python3 scripts/run_portfolio_report.py --exports ./exports intercompany acme --date 2024-06-30

    # Load entities.json into a registry database
    python3 scripts/run_portfolio_report.py --exports ./exports --database-url sqlite:///registry.db register-entities
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path
from uuid import uuid4

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Portfolio trial balance reports from exported payloads.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--exports",
        required=True,
        type=Path,
        help="Directory of exported report and journal payloads.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML configuration file (default: built-in thresholds).",
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="Entity registry database URL (default: <exports>/entities.json).",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Structured log level written to stderr (default: WARNING).",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    tb = sub.add_parser("trial-balance", help="One entity's trial balance.")
    tb.add_argument("entity", help="Entity id or name.")
    tb.add_argument("--date", default=None, help="Report date (YYYY-MM-DD). Default: today.")

    cons = sub.add_parser("consolidate", help="Consolidated portfolio trial balance.")
    cons.add_argument("--date", default=None, help="Report date (YYYY-MM-DD). Default: today.")
    cons.add_argument(
        "--entity",
        action="append",
        default=None,
        help="Entity id or name to include (repeatable). Default: all connected.",
    )
    cons.add_argument("--deadline", type=float, default=None, help="Overall deadline in seconds.")

    jr = sub.add_parser("journals", help="Screened manual journals.")
    jr.add_argument("entity")
    jr.add_argument("--from-date", type=date.fromisoformat, default=None)
    jr.add_argument("--to-date", type=date.fromisoformat, default=None)
    jr.add_argument("--account", default=None, help="Only journals touching this account name.")

    ub = sub.add_parser("unbalanced", help="Unbalanced or large manual journals.")
    ub.add_argument("entity")
    ub.add_argument("--minimum", type=Decimal, default=None, help="Minimum amount (default: 10000).")
    ub.add_argument("--from-date", type=date.fromisoformat, default=None)

    ah = sub.add_parser("account-history", help="Journal movements on one account.")
    ah.add_argument("entity")
    ah.add_argument("account_name")
    ah.add_argument("--code", default=None, help="Account code to match exactly.")
    ah.add_argument("--from-date", type=date.fromisoformat, default=None)
    ah.add_argument("--to-date", type=date.fromisoformat, default=None)

    wl = sub.add_parser("watchlist", help="Movements on a watch-listed account.")
    wl.add_argument("entity")
    wl.add_argument("--term", default=None, help="Account name term (default: first watch-list term).")
    wl.add_argument("--months-back", type=int, default=12)

    cmp_ = sub.add_parser("compare", help="Period-over-period comparison.")
    cmp_.add_argument("--entity", default=None, help="Entity id or name. Default: whole portfolio.")
    cmp_.add_argument("--from-date", default=None)
    cmp_.add_argument("--to-date", default=None)

    rt = sub.add_parser("ratios", help="Financial ratios for one entity.")
    rt.add_argument("entity")
    rt.add_argument("--date", default=None)

    ex = sub.add_parser("expenses", help="Expense analysis for one entity.")
    ex.add_argument("entity")
    ex.add_argument("--date", default=None)
    ex.add_argument("--period-months", type=int, default=12)

    ic = sub.add_parser("intercompany", help="Intercompany balances on one entity's balance sheet.")
    ic.add_argument("entity")
    ic.add_argument("--date", default=None)

    af = sub.add_parser("account-flags", help="Unusual account balances for one entity.")
    af.add_argument("entity")
    af.add_argument("--date", default=None)

    sub.add_parser(
        "register-entities",
        help="Copy <exports>/entities.json into the --database-url registry.",
    )

    return parser.parse_args(argv)


def _registry(args: argparse.Namespace):
    from portfolio_ingestion.adapters.json_export import JsonExportEntityRegistry

    if args.database_url is None:
        return JsonExportEntityRegistry(args.exports)

    from portfolio_kernel.db.engine import get_session_factory, init_engine_from_url
    from portfolio_services.registry import SqlEntityRegistry

    init_engine_from_url(args.database_url)
    return SqlEntityRegistry(get_session_factory())


def _register_entities(args: argparse.Namespace) -> object:
    from portfolio_ingestion.adapters.json_export import JsonExportEntityRegistry
    from portfolio_kernel.db.engine import create_tables, init_engine_from_url
    from portfolio_services.registry import register_entities

    if args.database_url is None:
        raise SystemExit("register-entities requires --database-url")

    entities = JsonExportEntityRegistry(args.exports).list_entities()
    init_engine_from_url(args.database_url)
    create_tables()
    register_entities(entities)
    return entities


def run(args: argparse.Namespace) -> object:
    """Execute the selected command and return the result object."""
    from portfolio_config import get_active_config
    from portfolio_ingestion.adapters.json_export import (
        JsonExportJournalSource,
        JsonExportReportSource,
    )
    from portfolio_services import (
        ComparisonService,
        ConsolidationService,
        JournalService,
        TrialBalanceService,
    )

    if args.command == "register-entities":
        return _register_entities(args)

    config = get_active_config(args.config)
    registry = _registry(args)
    trial_balances = TrialBalanceService(
        JsonExportReportSource(args.exports), registry=registry, config=config,
    )
    consolidation = ConsolidationService(trial_balances, registry=registry)
    journals = JournalService(
        JsonExportJournalSource(args.exports), registry=registry, config=config,
    )

    if args.command == "trial-balance":
        return trial_balances.build(args.entity, args.date)
    if args.command == "consolidate":
        return consolidation.consolidate(
            report_date=args.date, entities=args.entity, deadline=args.deadline,
        )
    if args.command == "journals":
        return journals.screen(
            args.entity, args.from_date, args.to_date, filter_account_name=args.account,
        )
    if args.command == "unbalanced":
        return journals.find_unbalanced(args.entity, args.minimum, args.from_date)
    if args.command == "account-history":
        return journals.account_history(
            args.entity, args.account_name, args.code, args.from_date, args.to_date,
        )
    if args.command == "watchlist":
        return journals.watchlist_movements(args.entity, args.term, args.months_back)
    if args.command == "compare":
        comparison = ComparisonService(trial_balances, consolidation)
        if args.entity:
            return comparison.compare_entity(args.entity, args.from_date, args.to_date)
        return comparison.compare_portfolio(args.from_date, args.to_date)
    if args.command == "ratios":
        return trial_balances.financial_ratios(args.entity, args.date)
    if args.command == "expenses":
        return trial_balances.expense_analysis(args.entity, args.date, args.period_months)
    if args.command == "intercompany":
        return trial_balances.intercompany(args.entity, args.date)
    if args.command == "account-flags":
        return trial_balances.account_flags(args.entity, args.date)
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    from portfolio_engines.rendering import render_to_dict
    from portfolio_kernel.exceptions import PortfolioKernelError
    from portfolio_kernel.logging_config import LogContext, configure_logging

    configure_logging(level=args.log_level)

    with LogContext.bind(correlation_id=str(uuid4())):
        try:
            result = run(args)
        except PortfolioKernelError as exc:
            json.dump({"error": exc.code, "details": str(exc)}, sys.stderr, indent=2)
            sys.stderr.write("\n")
            return 2
        except FileNotFoundError as exc:
            json.dump({"error": "FILE_NOT_FOUND", "details": str(exc)}, sys.stderr, indent=2)
            sys.stderr.write("\n")
            return 2

    json.dump(render_to_dict(result), sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
