"""CLI for printing a reconciled loan schedule.

Usage:
    python -m loanbook.cli --principal 1200 --rate 2 --term 12 --start 2024-01-01
    python -m loanbook.cli --principal 50000 --rate 12 --period yearly --term 48 --start 2023-06-15 --payments payments.json
    python -m loanbook.cli --principal 3000 --rate 1.5 --start 2024-03-01 --today 2024-09-01   # indefinite term

The payments file is a JSON list of {"amount": "113.47", "date": "2024-02-01", "note": null}.
"""

import argparse
import json
import sys
from dataclasses import replace
from datetime import date
from decimal import Decimal, InvalidOperation

from loanbook.config import settings
from loanbook.engine.reconcile import reconcile
from loanbook.engine.summary import summarize
from loanbook.models.loan import (
    InterestPeriod,
    InterestType,
    LoanDefinition,
    Payment,
    RestructuringPolicy,
)
from loanbook.models.results import ReconciliationResult


def _decimal(text: str) -> Decimal:
    try:
        return Decimal(text)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a number: {text!r}")


def _dollar(v: Decimal) -> str:
    return f"{float(v):,.2f}"


def load_payments(path: str) -> list[Payment]:
    with open(path, encoding="utf-8") as fh:
        raw = json.load(fh)
    return [
        Payment(
            amount=Decimal(str(item["amount"])),
            date=date.fromisoformat(item["date"]) if item.get("date") else None,
            note=item.get("note"),
            installment_number=item.get("installment_number"),
        )
        for item in raw
    ]


def print_schedule(result: ReconciliationResult) -> None:
    print(f"\n{'=' * 96}")
    print(f"  {'#':>3}  {'Due':<10}  {'Amount':>12}  {'Interest':>12}  {'Principal':>12}  {'Balance':>14}  {'Status':<8}  Paid at")
    print(f"{'=' * 96}")
    for inst in result.installments:
        paid_at = inst.paid_at.isoformat() if inst.paid_at else ""
        print(
            f"  {inst.number:>3}  {inst.due_date.isoformat():<10}  {_dollar(inst.amount):>12}"
            f"  {_dollar(inst.interest_amount):>12}  {_dollar(inst.principal_amount):>12}"
            f"  {_dollar(inst.balance):>14}  {inst.status.value:<8}  {paid_at}"
        )


def print_totals(loan: LoanDefinition, result: ReconciliationResult) -> None:
    summary = summarize(loan, result)
    print(f"\n{'=' * 60}")
    print("  Totals")
    print(f"{'=' * 60}")
    print(f"  Installment value:    {_dollar(result.monthly_payment)}")
    print(f"  Current balance:      {_dollar(result.current_balance)}")
    print(f"  Total paid:           {_dollar(result.total_paid)}")
    if result.overpaid > 0:
        print(f"  Overpaid:             {_dollar(result.overpaid)}")
    if loan.is_indefinite:
        print(f"  Accumulated interest: {_dollar(result.accumulated_interest)}")
    else:
        print(f"  Paid installments:    {summary.paid_count}/{summary.total_installments}")
    print(f"  Progress:             {summary.progress_pct}%")
    if summary.next_installment:
        nxt = summary.next_installment
        print(f"  Next:                 #{nxt.number} on {nxt.due_date.isoformat()} ({_dollar(nxt.amount)})")
    print()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Reconciled loan schedule")
    parser.add_argument("--principal", type=_decimal, required=True, help="Amount borrowed")
    parser.add_argument("--rate", type=_decimal, default=Decimal("0"), help="Nominal interest rate in %% (default: 0)")
    parser.add_argument("--period", choices=[p.value for p in InterestPeriod], default="monthly", help="Rate period")
    parser.add_argument("--type", dest="interest_type", choices=[t.value for t in InterestType],
                        default="fixed_installment", help="Interest type")
    parser.add_argument("--term", type=int, default=0, help="Number of installments (0 = indefinite)")
    parser.add_argument("--start", type=date.fromisoformat, required=True, help="Start date (YYYY-MM-DD)")
    parser.add_argument("--payments", help="JSON file with the payment history")
    parser.add_argument("--today", type=date.fromisoformat, default=None, help="Reference date (default: today)")
    parser.add_argument("--restructuring", choices=[p.value for p in RestructuringPolicy],
                        help="Override the configured restructuring policy")

    args = parser.parse_args(argv)

    loan = LoanDefinition(
        principal=args.principal,
        interest_rate=args.rate,
        interest_period=InterestPeriod(args.period),
        interest_type=InterestType(args.interest_type),
        term_months=args.term,
        start_date=args.start,
    )
    try:
        payments = load_payments(args.payments) if args.payments else []
    except (OSError, ValueError, KeyError, InvalidOperation) as e:
        print(f"Could not read payments: {e}", file=sys.stderr)
        sys.exit(1)

    options = settings.reconcile_options()
    if args.restructuring:
        options = replace(options, restructuring=RestructuringPolicy(args.restructuring))
    result = reconcile(loan, payments, args.today or date.today(), options)

    if result.installments:
        print_schedule(result)
    print_totals(loan, result)


if __name__ == "__main__":
    main()
