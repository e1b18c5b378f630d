"""
LedgerBook - Narration Inference

Generates a human-readable narration for a voucher from its lines.

Rules are evaluated in order and the first one that produces text wins:

    cash_bank_receipt   Cash/Bank Dr, other Cr
    cash_bank_payment   Cash/Bank Cr, other Dr
    purchase            COGS Dr, Vendor Cr
    sale                Customer Dr, Revenue Cr
    expense_payment     Expense Dr, Cash/Bank Cr
    bank_transfer       Bank Dr, different Bank Cr
    two_line            exactly two lines
    multi_line          three or more lines
    fallback            "Journal Entry - {names}"
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from ledgerbook.schemas.ledger import Account, AccountNature, VoucherLine


GENERIC_NARRATION = "Journal Entry"

AccountResolver = Callable[[str], Optional[Account]]


class LineCategory:
    CASH = "cash"
    BANK = "bank"
    CUSTOMER = "customer"
    VENDOR = "vendor"
    REVENUE = "revenue"
    EXPENSE = "expense"
    PURCHASE = "purchase"
    OTHER = "other"


class ClassifiedLine(NamedTuple):
    code: str
    name: str
    debit: Decimal
    credit: Decimal
    categories: frozenset

    def is_(self, *categories: str) -> bool:
        return any(category in self.categories for category in categories)

    @property
    def payment_label(self) -> str:
        """How a Cash/Bank line is named in narrations."""
        return "Cash" if self.is_(LineCategory.CASH) else self.name


def classify_line(
    line: VoucherLine,
    resolver: AccountResolver,
    customer_ids: Iterable[str] = (),
    vendor_ids: Iterable[str] = (),
) -> ClassifiedLine:
    """Cash/Bank by nature first, then party membership, then nature."""
    account = resolver(line.account_code)
    nature = account.nature if account else None
    categories = set()

    if nature == AccountNature.CASH:
        categories.add(LineCategory.CASH)
    elif nature == AccountNature.BANK:
        categories.add(LineCategory.BANK)
    elif line.account_code in customer_ids or (account and account.group == "Customer"):
        categories.add(LineCategory.CUSTOMER)
    elif line.account_code in vendor_ids or (account and account.group == "Vendor"):
        categories.add(LineCategory.VENDOR)
    elif nature == AccountNature.REVENUE:
        categories.add(LineCategory.REVENUE)
    elif nature == AccountNature.COST_OF_GOODS_SOLD:
        categories.update((LineCategory.EXPENSE, LineCategory.PURCHASE))
    elif nature == AccountNature.EXPENSE:
        categories.add(LineCategory.EXPENSE)
    else:
        categories.add(LineCategory.OTHER)

    return ClassifiedLine(
        code=line.account_code,
        name=account.name if account else line.account_code,
        debit=line.debit,
        credit=line.credit,
        categories=frozenset(categories),
    )


# ===========================================
# RULES
# ===========================================

@dataclass(frozen=True)
class NarrationRule:
    """A named predicate/formatter. `apply` returns None when it does not match."""
    name: str
    apply: Callable[[Sequence[ClassifiedLine]], Optional[str]]


def _first(lines: Sequence[ClassifiedLine], predicate) -> Optional[ClassifiedLine]:
    return next((line for line in lines if predicate(line)), None)


def _cash_or_bank(lines: Sequence[ClassifiedLine], side: str) -> Optional[ClassifiedLine]:
    """Cash is preferred over a bank on the same side."""
    amount = (lambda l: l.debit) if side == "debit" else (lambda l: l.credit)
    return (
        _first(lines, lambda l: l.is_(LineCategory.CASH) and amount(l) > 0)
        or _first(lines, lambda l: l.is_(LineCategory.BANK) and amount(l) > 0)
    )


def _cash_bank_receipt(lines: Sequence[ClassifiedLine]) -> Optional[str]:
    receipt = _cash_or_bank(lines, "debit")
    if receipt is None:
        return None
    credited = _first(lines, lambda l: l.credit > 0 and l.code != receipt.code)
    if credited is None:
        return None
    return f"Received payment from {credited.name} via {receipt.payment_label}"


def _cash_bank_payment(lines: Sequence[ClassifiedLine]) -> Optional[str]:
    payment = _cash_or_bank(lines, "credit")
    if payment is None:
        return None
    debited = _first(lines, lambda l: l.debit > 0 and l.code != payment.code)
    if debited is None:
        return None
    if debited.is_(LineCategory.EXPENSE):
        return f"Payment for {debited.name} via {payment.payment_label}"
    if debited.is_(LineCategory.VENDOR):
        return f"Paid to {debited.name} via {payment.payment_label}"
    return f"Payment to {debited.name} via {payment.payment_label}"


def _purchase(lines: Sequence[ClassifiedLine]) -> Optional[str]:
    purchase = _first(lines, lambda l: l.is_(LineCategory.PURCHASE) and l.debit > 0)
    vendor = _first(lines, lambda l: l.is_(LineCategory.VENDOR) and l.credit > 0)
    if purchase and vendor:
        return f"Purchase from {vendor.name}"
    return None


def _sale(lines: Sequence[ClassifiedLine]) -> Optional[str]:
    customer = _first(lines, lambda l: l.is_(LineCategory.CUSTOMER) and l.debit > 0)
    revenue = _first(lines, lambda l: l.is_(LineCategory.REVENUE) and l.credit > 0)
    if customer and revenue:
        return f"Sale to {customer.name}"
    return None


def _expense_payment(lines: Sequence[ClassifiedLine]) -> Optional[str]:
    expense = _first(lines, lambda l: l.is_(LineCategory.EXPENSE) and l.debit > 0)
    payment = _cash_or_bank(lines, "credit")
    if expense and payment:
        return f"Payment for {expense.name} via {payment.payment_label}"
    return None


def _bank_transfer(lines: Sequence[ClassifiedLine]) -> Optional[str]:
    debited = _first(lines, lambda l: l.is_(LineCategory.BANK) and l.debit > 0)
    if debited is None:
        return None
    credited = _first(
        lines,
        lambda l: l.is_(LineCategory.BANK) and l.credit > 0 and l.code != debited.code,
    )
    if credited is None:
        return None
    return f"Transfer from {debited.name} to {credited.name}"


def _two_line(lines: Sequence[ClassifiedLine]) -> Optional[str]:
    if len(lines) != 2:
        return None
    first, second = lines
    if first.debit > 0 and second.credit > 0:
        return f"{first.name} to {second.name}"
    if first.credit > 0 and second.debit > 0:
        return f"{second.name} to {first.name}"
    return None


def _multi_line(lines: Sequence[ClassifiedLine]) -> Optional[str]:
    if len(lines) <= 2:
        return None
    debited = _first(lines, lambda l: l.debit > 0)
    credited = _first(lines, lambda l: l.credit > 0)
    if debited and credited:
        return f"{GENERIC_NARRATION}: {debited.name} to {credited.name}"
    return None


def _fallback(lines: Sequence[ClassifiedLine]) -> Optional[str]:
    names = list(dict.fromkeys(line.name for line in lines))
    if not names:
        return GENERIC_NARRATION
    return f"{GENERIC_NARRATION} - {', '.join(names)}"


NARRATION_RULES: Tuple[NarrationRule, ...] = (
    NarrationRule("cash_bank_receipt", _cash_bank_receipt),
    NarrationRule("cash_bank_payment", _cash_bank_payment),
    NarrationRule("purchase", _purchase),
    NarrationRule("sale", _sale),
    NarrationRule("expense_payment", _expense_payment),
    NarrationRule("bank_transfer", _bank_transfer),
    NarrationRule("two_line", _two_line),
    NarrationRule("multi_line", _multi_line),
    NarrationRule("fallback", _fallback),
)


# ===========================================
# ENTRY POINTS
# ===========================================

def explain_narration(
    lines: Sequence[VoucherLine],
    resolver: AccountResolver,
    customer_ids: Iterable[str] = (),
    vendor_ids: Iterable[str] = (),
    rules: Sequence[NarrationRule] = NARRATION_RULES,
) -> Tuple[str, str]:
    """Return (narration, name of the rule that produced it)."""
    customer_ids = frozenset(customer_ids)
    vendor_ids = frozenset(vendor_ids)
    active: List[ClassifiedLine] = [
        classify_line(line, resolver, customer_ids, vendor_ids)
        for line in lines
        if line.debit > 0 or line.credit > 0
    ]
    if not active:
        return GENERIC_NARRATION, "fallback"

    for rule in rules:
        text = rule.apply(active)
        if text:
            return text, rule.name
    return GENERIC_NARRATION, "fallback"


def infer_narration(
    lines: Sequence[VoucherLine],
    resolver: AccountResolver,
    customer_ids: Iterable[str] = (),
    vendor_ids: Iterable[str] = (),
) -> str:
    """Infer a narration. Never fails; falls back to "Journal Entry"."""
    return explain_narration(lines, resolver, customer_ids, vendor_ids)[0]


def should_auto_generate_narration(narration: Optional[str]) -> bool:
    if not narration:
        return True
    return narration.strip() in ("", GENERIC_NARRATION)
