#!/usr/bin/env python3
"""Operator CLI for diagnosing and clearing stuck nonces"""

import argparse
import asyncio
import json
import sys
from typing import Optional

from unstick.core.recovery.errors import RecoveryError
from unstick.core.recovery.models import Diagnosis, RecoveryReport
from unstick.core.recovery.service import get_recovery_service
from unstick.logging_config import setup_logging


def print_diagnosis(diagnosis: Diagnosis):
    """Pretty print nonce status"""
    print("\n🔍 Nonce Status")
    print("=" * 50)
    print(f"Address:   {diagnosis.address}")
    print(f"RPC:       {diagnosis.endpoint}")
    print(f"Confirmed: {diagnosis.window.confirmed}")
    print(f"Pending:   {diagnosis.window.pending}")
    if diagnosis.fee_level_available:
        print(f"Gas:       {diagnosis.to_dict()['currentGasGwei']:.2f} gwei")
    else:
        print("Gas:       unavailable")

    if diagnosis.stuck_count:
        print(f"\n⚠️  {diagnosis.stuck_count} stuck transaction(s)")
    else:
        print("\n✅ No stuck transactions")


def print_report(report: RecoveryReport):
    """Pretty print a heal report"""
    if report.nothing_to_heal:
        print(f"\n✅ No stuck transactions (nonce {report.window.confirmed})")
        return

    print(f"\n🔧 Replaced nonces {report.window.confirmed}..{report.window.pending - 1} "
          f"@ {report.fee.gas_price_gwei} gwei via {report.endpoint}")
    print("-" * 50)
    for result in report.results:
        if result.tx_hash:
            print(f"  {result.nonce:>6}  ✅ {result.tx_hash}")
        else:
            print(f"  {result.nonce:>6}  ❌ {result.error}")

    print(f"\nSent: {report.sent}  Failed: {report.failed}")
    if report.aborted:
        print("⛔ Aborted: gas price too low to replace the pending transaction; retry with a higher --gas-price-gwei")
    if report.cancelled:
        print("⏹️  Cancelled before every nonce was attempted")


async def cli_diagnose(profile_id: str, as_json: bool = False) -> int:
    diagnosis = await get_recovery_service().diagnose(profile_id)
    if as_json:
        print(json.dumps(diagnosis.to_dict(), indent=2))
    else:
        print_diagnosis(diagnosis)
    return 0


async def cli_heal(profile_id: str, gas_price_gwei: Optional[str], as_json: bool = False) -> int:
    report = await get_recovery_service().heal(profile_id, fee_rate_gwei=gas_price_gwei)
    if as_json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print_report(report)
    return 1 if report.aborted or report.failed else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Unstick CLI")
    parser.add_argument("--json", action="store_true", help="Print raw JSON results")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command")

    diagnose_parser = subparsers.add_parser("diagnose", help="Show confirmed vs pending nonces")
    diagnose_parser.add_argument("profile_id", help="Wallet profile id")

    heal_parser = subparsers.add_parser("heal", help="Replace stuck nonces with self-transfers")
    heal_parser.add_argument("profile_id", help="Wallet profile id")
    heal_parser.add_argument("--gas-price-gwei", default=None, help="Gas price for replacements (default: configured)")

    return parser


async def main() -> int:
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 2

    setup_logging(args.log_level)

    try:
        if args.command == "diagnose":
            return await cli_diagnose(args.profile_id, args.json)
        if args.command == "heal":
            return await cli_heal(args.profile_id, args.gas_price_gwei, args.json)
    except RecoveryError as e:
        print(f"❌ {e.code}: {e.message}", file=sys.stderr)
        return 1

    print(f"❌ Unknown command: {args.command}")
    parser.print_help()
    return 2


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
