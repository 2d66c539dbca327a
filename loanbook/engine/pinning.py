"""Installment-level edits over a payment list.

The reconciliation result is the single producer of `installment_number`: each
funding payment is pinned to the first installment its money reached, so an edit to
"installment 5" always lands on the same payment after the schedule is rebuilt.
A payment whose money reached several installments (a lump sum) is split before an
edit, so only the share that reached the addressed installment changes.
Every function returns a new list and leaves its input untouched.
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

from loanbook.engine.rates import ZERO, usable_date
from loanbook.engine.reconcile import allocatable_payments
from loanbook.models.loan import OVERRIDE_TAG, Payment
from loanbook.models.results import InstallmentStatus, ReconciliationResult

MIN_OVERLAP = Decimal("0.000001")  # Below this, span contact is Decimal rounding noise
MIN_SPLIT = Decimal("1")  # Smaller remainders stay with the edited piece


def _installment_spans(result: ReconciliationResult) -> list[tuple[Decimal, Decimal, int]]:
    """Installment k consumed [lo_k, hi_k) of the pooled money."""
    spans = []
    cursor = ZERO
    for inst in result.installments:
        if inst.paid_amount > 0:
            spans.append((cursor, cursor + inst.paid_amount, inst.number))
            cursor += inst.paid_amount
    return spans


def _payment_ranges(payments: list[Payment], override_tag: str) -> dict[int, tuple[Decimal, Decimal]]:
    """Map id(payment) -> [start, end) of the pooled money it supplied."""
    ranges = {}
    start = ZERO
    for payment in allocatable_payments(payments, override_tag):
        ranges[id(payment)] = (start, start + payment.amount)
        start += payment.amount
    return ranges


def _first_overlap(spans: list[tuple[Decimal, Decimal, int]], start: Decimal, end: Decimal) -> int | None:
    for lo, hi, number in spans:
        if min(end, hi) - max(start, lo) > MIN_OVERLAP:
            return number
    return None


def _first_funded(payments: list[Payment], result: ReconciliationResult, override_tag: str) -> dict[int, int]:
    """Map id(payment) -> number of the first installment its money reached."""
    spans = _installment_spans(result)
    pins: dict[int, int] = {}
    for key, (start, end) in _payment_ranges(payments, override_tag).items():
        number = _first_overlap(spans, start, end)
        if number is not None:
            pins[key] = number
    return pins


def pin_payments(
    payments: list[Payment],
    result: ReconciliationResult,
    override_tag: str = OVERRIDE_TAG,
) -> list[Payment]:
    """Stamp each funding payment with the installment it was allocated to.

    Overrides and surplus payments keep whatever number they already carry.
    """
    pins = _first_funded(payments, result, override_tag)
    return [
        replace(p, installment_number=pins[id(p)]) if id(p) in pins else p
        for p in payments
    ]


def canonical_payments(payments: list[Payment]) -> list[Payment]:
    """Drop zero-amount entries (the delete convention) and order by date."""
    kept = [p for p in payments if p.amount != 0]
    return sorted(kept, key=lambda p: (usable_date(p.date) is None, usable_date(p.date) or date.min))


def _pinned_index(payments: list[Payment], result: ReconciliationResult, number: int) -> int | None:
    inst = result.installment(number)
    for i, p in enumerate(payments):
        if p.installment_number == number:
            return i
    if inst.source_payment is not None:
        for i, p in enumerate(payments):
            if p == inst.source_payment:
                return i
    return None


def _locate(
    payments: list[Payment],
    result: ReconciliationResult,
    number: int,
    override_tag: str,
) -> tuple[list[Payment], int | None]:
    """Copy of `payments` and the index of the payment holding installment `number`'s money.

    When that payment also funded other installments it is cut into up to three
    pieces (before, this installment's share, after) and the index points at the
    middle one. The first piece keeps the payment's id.
    """
    edited = list(payments)
    index = _pinned_index(payments, result, number)
    if index is None:
        return edited, None

    payment = payments[index]
    ranges = _payment_ranges(payments, override_tag)
    share = next((s for s in _installment_spans(result) if s[2] == number), None)
    if id(payment) not in ranges or share is None:
        return edited, index

    start, end = ranges[id(payment)]
    cut_lo = max(start, share[0])
    cut_hi = min(end, share[1])
    if cut_hi <= cut_lo:
        return edited, index
    if cut_lo - start < MIN_SPLIT:
        cut_lo = start
    if end - cut_hi < MIN_SPLIT:
        cut_hi = end
    if cut_lo == start and cut_hi == end:
        return edited, index

    spans = _installment_spans(result)
    pieces = []
    if cut_lo > start:
        pieces.append(replace(payment, amount=cut_lo - start, installment_number=_first_overlap(spans, start, cut_lo)))
    middle = len(pieces)
    pieces.append(replace(
        payment,
        amount=cut_hi - cut_lo,
        id=payment.id if middle == 0 else None,
        installment_number=number,
    ))
    if cut_hi < end:
        pieces.append(replace(
            payment, amount=end - cut_hi, id=None, installment_number=_first_overlap(spans, cut_hi, end),
        ))
    edited[index:index + 1] = pieces
    return edited, index + middle


def set_installment_amount(
    payments: list[Payment],
    result: ReconciliationResult,
    number: int,
    amount: Decimal,
    on: date | None = None,
    override_tag: str = OVERRIDE_TAG,
) -> list[Payment]:
    """Set the money recorded against installment `number`; zero deletes it.

    An installment with no payment behind it gets a new one, dated `on` or its due date.
    """
    inst = result.installment(number)
    edited, index = _locate(payments, result, number, override_tag)

    if index is None:
        if amount == 0:
            return edited
        edited.append(Payment(amount=amount, date=on or inst.due_date, installment_number=number))
        return edited

    if amount == 0:
        del edited[index]
    else:
        edited[index] = replace(edited[index], amount=amount, installment_number=number)
    return edited


def set_installment_date(
    payments: list[Payment],
    result: ReconciliationResult,
    number: int,
    when: date,
    override_tag: str = OVERRIDE_TAG,
) -> list[Payment]:
    edited, index = _locate(payments, result, number, override_tag)
    if index is None:
        raise ValueError(f"Installment {number} has no payment to re-date")
    edited[index] = replace(edited[index], date=when, installment_number=number)
    return edited


def _value_in_effect(result: ReconciliationResult, number: int) -> Decimal:
    """Installment value before row `number` fell short and was recomputed."""
    if number == 1:
        return result.monthly_payment
    return result.installment(number - 1).amount


def mark_paid(
    payments: list[Payment],
    result: ReconciliationResult,
    number: int,
    on: date | None = None,
    override_tag: str = OVERRIDE_TAG,
) -> list[Payment]:
    """Record installment `number` as paid.

    A parked override is turned back into a real payment; otherwise a payment
    covering what the installment still needs is appended. A short row shows its
    recomputed (lower) value, so the top-up is sized from the value in effect
    before the shortfall.
    """
    inst = result.installment(number)
    if inst.status == InstallmentStatus.PAID:
        return list(payments)

    edited = list(payments)
    for i, p in enumerate(edited):
        if p.installment_number == number and p.is_override(override_tag):
            note = p.note.replace(override_tag, "").strip() or None
            edited[i] = replace(p, note=note, date=on or p.date or inst.due_date)
            return edited

    edited.append(Payment(
        amount=max(inst.amount, _value_in_effect(result, number)) - inst.paid_amount,
        date=on or inst.due_date,
        installment_number=number,
    ))
    return edited


def mark_pending(
    payments: list[Payment],
    result: ReconciliationResult,
    number: int,
    override_tag: str = OVERRIDE_TAG,
) -> list[Payment]:
    """Park the payment behind installment `number` as an override.

    The payment stays in the list (and in storage) but no longer funds the pool,
    so the installment and everything after it is rescheduled. Only the share of a
    lump sum that reached this installment is parked.
    """
    edited, index = _locate(payments, result, number, override_tag)
    if index is None:
        return edited
    p = edited[index]
    if not p.is_override(override_tag):
        note = f"{p.note} {override_tag}" if p.note else override_tag
        edited[index] = replace(p, note=note, installment_number=number)
    return edited
