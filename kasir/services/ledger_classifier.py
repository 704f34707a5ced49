"""
Ledger entry classification.

Historical cash_history rows carry one of three inconsistent schemes
(`type`, `transaction_type`, `source_type`); rows written by this service also
carry a normalized `category`. Every aggregation (balance summary, daily report,
drift check, labels) goes through `classify` so they can never disagree.
"""

from decimal import Decimal
from typing import Any, Mapping, Optional

from kasir.models.ledger import LedgerCategory


INCOME_TYPES = frozenset({"orderan", "kas_masuk_manual", "panjar_pelunasan", "pemutihan_piutang"})

TRANSFER_IN = "transfer_masuk"
TRANSFER_OUT = "transfer_keluar"

INCOME_SOURCE_TYPES = frozenset({
    "pos_direct",
    "receivables_payment",
    "receivable_payment",
    "employee_advance_repayment",
    "kas_masuk_manual",
})

CATEGORY_VALUES = frozenset(c.value for c in LedgerCategory)

CATEGORY_LABELS = {
    LedgerCategory.INCOME: "Kas Masuk",
    LedgerCategory.EXPENSE: "Kas Keluar",
    LedgerCategory.TRANSFER_IN: "Transfer Masuk",
    LedgerCategory.TRANSFER_OUT: "Transfer Keluar",
}


def _field(entry: Any, name: str) -> Optional[str]:
    if isinstance(entry, Mapping):
        value = entry.get(name)
    else:
        value = getattr(entry, name, None)
    if value is None:
        return None
    if hasattr(value, "value"):
        value = value.value
    value = str(value).strip()
    return value or None


def _amount(entry: Any) -> Decimal:
    value = entry.get("amount") if isinstance(entry, Mapping) else getattr(entry, "amount", None)
    return Decimal(str(value)) if value is not None else Decimal("0")


def resolve_category(
    category: Optional[str] = None,
    type: Optional[str] = None,
    transaction_type: Optional[str] = None,
    source_type: Optional[str] = None,
) -> LedgerCategory:
    """First matching rule wins; the fallback for unrecognised rows is EXPENSE."""
    if category in CATEGORY_VALUES:
        return LedgerCategory(category)

    if source_type == TRANSFER_IN:
        return LedgerCategory.TRANSFER_IN
    if source_type == TRANSFER_OUT:
        return LedgerCategory.TRANSFER_OUT

    if type:
        if type in INCOME_TYPES:
            return LedgerCategory.INCOME
        # Transfers are recognised by source_type only; a bare transfer `type` is an outflow
        return LedgerCategory.EXPENSE

    if transaction_type == "income":
        return LedgerCategory.INCOME
    if transaction_type == "expense":
        return LedgerCategory.EXPENSE

    if source_type in INCOME_SOURCE_TYPES:
        return LedgerCategory.INCOME

    return LedgerCategory.EXPENSE


def classify(entry: Any) -> LedgerCategory:
    """Classify an ORM row or a plain mapping."""
    return resolve_category(
        category=_field(entry, "category"),
        type=_field(entry, "type"),
        transaction_type=_field(entry, "transaction_type"),
        source_type=_field(entry, "source_type"),
    )


def is_transfer(category: LedgerCategory) -> bool:
    return category in (LedgerCategory.TRANSFER_IN, LedgerCategory.TRANSFER_OUT)


def is_inflow(category: LedgerCategory) -> bool:
    return category in (LedgerCategory.INCOME, LedgerCategory.TRANSFER_IN)


def signed_amount(entry: Any) -> Decimal:
    """Amount with the sign it has on its account: + for inflows, - for outflows."""
    amount = _amount(entry)
    return amount if is_inflow(classify(entry)) else -amount


def category_label(entry_or_category: Any) -> str:
    if isinstance(entry_or_category, LedgerCategory):
        category = entry_or_category
    else:
        category = classify(entry_or_category)
    return CATEGORY_LABELS[category]
