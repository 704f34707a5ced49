from decimal import Decimal

import pytest

from kasir.models.ledger import LedgerCategory
from kasir.services.ledger_classifier import (
    category_label,
    classify,
    is_inflow,
    resolve_category,
    signed_amount,
)


@pytest.mark.parametrize(
    "entry, expected",
    [
        ({"type": "orderan"}, LedgerCategory.INCOME),
        ({"type": "kas_masuk_manual"}, LedgerCategory.INCOME),
        ({"type": "panjar_pelunasan"}, LedgerCategory.INCOME),
        ({"type": "pengeluaran"}, LedgerCategory.EXPENSE),
        ({"type": "panjar_pengambilan"}, LedgerCategory.EXPENSE),
        ({"transaction_type": "income"}, LedgerCategory.INCOME),
        ({"transaction_type": "expense"}, LedgerCategory.EXPENSE),
        ({"source_type": "pos_direct"}, LedgerCategory.INCOME),
        ({"source_type": "receivables_payment"}, LedgerCategory.INCOME),
        ({"source_type": "transfer_masuk"}, LedgerCategory.TRANSFER_IN),
        ({"source_type": "transfer_keluar"}, LedgerCategory.TRANSFER_OUT),
        ({"source_type": "manual_expense"}, LedgerCategory.EXPENSE),
    ],
)
def test_legacy_fields_classify(entry, expected):
    assert classify(entry) == expected


def test_stored_category_wins_over_legacy_fields():
    entry = {"category": "income", "type": "pengeluaran", "transaction_type": "expense"}
    assert classify(entry) == LedgerCategory.INCOME


def test_invalid_stored_category_falls_through():
    assert classify({"category": "bogus", "type": "orderan"}) == LedgerCategory.INCOME


def test_transfer_source_type_beats_type_and_transaction_type():
    entry = {"type": "orderan", "transaction_type": "income", "source_type": "transfer_keluar"}
    assert classify(entry) == LedgerCategory.TRANSFER_OUT


def test_bare_transfer_type_is_an_outflow():
    assert classify({"type": "transfer_masuk"}) == LedgerCategory.EXPENSE


def test_type_takes_precedence_over_transaction_type():
    assert classify({"type": "pengeluaran", "transaction_type": "income"}) == LedgerCategory.EXPENSE


def test_unrecognised_row_defaults_to_expense():
    assert classify({}) == LedgerCategory.EXPENSE
    assert resolve_category() == LedgerCategory.EXPENSE


def test_blank_fields_are_ignored():
    assert classify({"type": "  ", "transaction_type": "income"}) == LedgerCategory.INCOME


def test_signed_amount_follows_direction():
    assert signed_amount({"type": "orderan", "amount": "125000"}) == Decimal("125000")
    assert signed_amount({"type": "pengeluaran", "amount": 25000}) == Decimal("-25000")
    assert signed_amount({"source_type": "transfer_masuk", "amount": 10}) == Decimal("10")
    assert signed_amount({"source_type": "transfer_keluar", "amount": 10}) == Decimal("-10")


def test_inflow_categories():
    assert is_inflow(LedgerCategory.INCOME)
    assert is_inflow(LedgerCategory.TRANSFER_IN)
    assert not is_inflow(LedgerCategory.EXPENSE)
    assert not is_inflow(LedgerCategory.TRANSFER_OUT)


def test_labels():
    assert category_label(LedgerCategory.INCOME) == "Kas Masuk"
    assert category_label({"source_type": "transfer_keluar"}) == "Transfer Keluar"
