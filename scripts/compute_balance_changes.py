#!/usr/bin/env python3
"""
Evaluate a multi-send scenario file and print the resulting balance changes.

A scenario YAML file holds the original balances, the denom definitions and
the transaction (see tests/fixtures/scenarios/ for examples).

Usage:
    python3 scripts/compute_balance_changes.py SCENARIO.yaml
    python3 scripts/compute_balance_changes.py SCENARIO.yaml --json
    python3 scripts/compute_balance_changes.py SCENARIO.yaml --solvency-mode aggregate
    python3 scripts/compute_balance_changes.py SCENARIO.yaml --settings my_settings.yaml -v

Exit status is 0 when the transaction is accepted, 1 when it is rejected.
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from multisend_config import get_active_settings, load_scenario  # noqa: E402
from multisend_config.schema import SOLVENCY_MODES  # noqa: E402
from multisend_kernel.exceptions import MultiSendError  # noqa: E402
from multisend_kernel.logging_config import configure_logging  # noqa: E402
from multisend_services import BalanceChangeService  # noqa: E402


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Compute the balance changes of a multi-send transaction.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  python3 scripts/compute_balance_changes.py tx.yaml\n"
            "  python3 scripts/compute_balance_changes.py tx.yaml --json\n"
        ),
    )
    parser.add_argument("scenario", type=Path, help="Scenario YAML file")
    parser.add_argument(
        "--settings", type=Path, default=None,
        help="Settings YAML file (default: packaged settings)",
    )
    parser.add_argument(
        "--solvency-mode", choices=SOLVENCY_MODES, default=None,
        help="Override the solvency rule",
    )
    parser.add_argument("--json", action="store_true", help="Print JSON")
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Emit structured logs to stderr",
    )
    return parser


def _print_changes(changes, as_json: bool) -> None:
    if as_json:
        print(json.dumps(
            {"changes": [
                {
                    "address": balance.address,
                    "coins": [{"denom": c.denom, "amount": c.amount} for c in balance.coins],
                }
                for balance in changes
            ]},
            indent=2,
        ))
        return
    if not changes:
        print("(no balance changes)")
    for balance in changes:
        coins = ", ".join(f"{c.amount:+d} {c.denom}" for c in balance.coins)
        print(f"{balance.address}: {coins}")


def _print_error(exc: MultiSendError, as_json: bool) -> None:
    if as_json:
        print(json.dumps({"error": exc.code, "message": str(exc)}, indent=2))
    else:
        print(f"REJECTED [{exc.code}] {exc}")


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    scenario = load_scenario(args.scenario)
    if args.settings is not None:
        settings = get_active_settings(args.settings)
    elif scenario.settings is not None:
        settings = scenario.settings
    else:
        settings = get_active_settings()
    if args.solvency_mode is not None:
        settings = replace(settings, solvency_mode=args.solvency_mode)

    level = settings.log_level if args.verbose else logging.CRITICAL
    configure_logging(level=level)
    # configure_logging is a no-op once installed; the level still follows this run
    logging.getLogger("multisend").setLevel(level)

    service = BalanceChangeService(settings)
    try:
        changes = service.compute(scenario.balances, scenario.denoms, scenario.tx)
    except MultiSendError as exc:
        _print_error(exc, args.json)
        return 1

    _print_changes(changes, args.json)
    return 0


if __name__ == "__main__":
    sys.exit(main())
