from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

from kasir.common.exceptions import NotFoundError, WriteFailedError
from kasir.models.account import Account
from kasir.models.ledger import LedgerCategory, LedgerEntry
from kasir.models.transaction import PaymentStatus
from kasir.services.cash_service import (
    issue_employee_advance,
    pay_receivable,
    record_advance_repayment,
    record_expense,
    record_manual_cash,
    transfer_between_accounts,
    write_off_receivable,
)
from kasir.services.reconciliation_service import account_balance_drift, daily_report, get_cash_balance
from kasir.services.transaction_service import create_transaction
from kasir.utils.timezone import local_date, utc_now


def _balance(db, account_id):
    return db.query(Account.balance).filter(Account.id == account_id).scalar()


def test_manual_cash_in_and_out_move_balance(sqlite_session, kas_kecil, cashier):
    entry_in = record_manual_cash(sqlite_session, kas_kecil.id, Decimal("125000"), "in", "Setoran modal", cashier)
    entry_out = record_manual_cash(sqlite_session, kas_kecil.id, Decimal("25000"), "out", "Beli galon", cashier)

    assert entry_in.category == LedgerCategory.INCOME.value
    assert entry_out.category == LedgerCategory.EXPENSE.value
    assert entry_in.reference_number.startswith("MANUAL-")
    assert entry_in.created_by_name == "Rina"
    assert _balance(sqlite_session, kas_kecil.id) == Decimal("600000")

    summary = get_cash_balance(sqlite_session)
    assert summary["today_net"] == Decimal("100000")
    assert summary["per_account"][0]["previous_balance"] == Decimal("500000")


def test_manual_cash_rejects_bad_input(sqlite_session, kas_kecil):
    with pytest.raises(ValueError):
        record_manual_cash(sqlite_session, kas_kecil.id, Decimal("0"), "in", "nothing")
    with pytest.raises(ValueError):
        record_manual_cash(sqlite_session, kas_kecil.id, Decimal("10"), "sideways", "nothing")
    with pytest.raises(NotFoundError):
        record_manual_cash(sqlite_session, "ACC-MISSING", Decimal("10"), "in", "nothing")


def test_transfer_writes_paired_entries(sqlite_session, kas_kecil, bank, cashier):
    result = transfer_between_accounts(sqlite_session, kas_kecil.id, bank.id, Decimal("100000"), "Setor bank", cashier)

    assert _balance(sqlite_session, kas_kecil.id) == Decimal("400000")
    assert _balance(sqlite_session, bank.id) == Decimal("1100000")

    entries = (
        sqlite_session.query(LedgerEntry)
        .filter(LedgerEntry.reference_number == result["reference_number"])
        .all()
    )
    assert sorted(e.category for e in entries) == ["transfer_in", "transfer_out"]

    summary = get_cash_balance(sqlite_session)
    assert summary["today_income"] == Decimal("0")
    assert summary["today_expense"] == Decimal("0")
    assert summary["total_current_balance"] == Decimal("1500000")


def test_transfer_rejects_overdraw_and_same_account(sqlite_session, kas_kecil, bank):
    with pytest.raises(ValueError):
        transfer_between_accounts(sqlite_session, kas_kecil.id, bank.id, Decimal("500001"))
    with pytest.raises(ValueError):
        transfer_between_accounts(sqlite_session, kas_kecil.id, kas_kecil.id, Decimal("1"))

    assert sqlite_session.query(LedgerEntry).count() == 0
    assert _balance(sqlite_session, kas_kecil.id) == Decimal("500000")


def test_failed_commit_rolls_back_balance_and_entry(sqlite_session, kas_kecil, monkeypatch):
    def _broken_commit():
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(sqlite_session, "commit", _broken_commit)

    with pytest.raises(WriteFailedError):
        record_manual_cash(sqlite_session, kas_kecil.id, Decimal("50000"), "in", "Setoran")

    monkeypatch.undo()
    assert sqlite_session.query(LedgerEntry).count() == 0
    assert _balance(sqlite_session, kas_kecil.id) == Decimal("500000")


def test_receivable_payments_settle_the_order(sqlite_session, kas_kecil, printed_product, cashier):
    product, _, _ = printed_product
    trx = create_transaction(
        sqlite_session,
        "Budi",
        [{"product_id": product.id, "quantity": 10}],
        actor=cashier,
        payment_account_id=kas_kecil.id,
        paid_amount=Decimal("20000"),
    )
    assert trx.payment_status == PaymentStatus.BELUM_LUNAS

    with pytest.raises(ValueError):
        pay_receivable(sqlite_session, trx.id, kas_kecil.id, Decimal("30001"))

    trx = pay_receivable(sqlite_session, trx.id, kas_kecil.id, Decimal("30000"), cashier)

    assert trx.paid_amount == Decimal("50000")
    assert trx.payment_status == PaymentStatus.LUNAS
    assert _balance(sqlite_session, kas_kecil.id) == Decimal("550000")
    receivable_row = sqlite_session.query(LedgerEntry).filter(LedgerEntry.reference_number == f"RCV-{trx.id}").one()
    assert receivable_row.source_type == "receivables_payment"
    assert receivable_row.category == "income"


def test_write_off_books_remaining_as_expense(sqlite_session, kas_kecil, printed_product):
    product, _, _ = printed_product
    trx = create_transaction(sqlite_session, "Sari", [{"product_id": product.id, "quantity": 2}])
    assert trx.payment_status == PaymentStatus.KREDIT

    trx = write_off_receivable(sqlite_session, trx.id, kas_kecil.id, reason="pelanggan pindah")

    assert trx.payment_status == PaymentStatus.LUNAS
    assert trx.paid_amount == trx.total
    row = sqlite_session.query(LedgerEntry).filter(LedgerEntry.reference_id == trx.id).one()
    assert row.source_type == "receivables_writeoff"
    assert row.amount == Decimal("10000")
    assert _balance(sqlite_session, kas_kecil.id) == Decimal("490000")

    with pytest.raises(ValueError):
        write_off_receivable(sqlite_session, trx.id, kas_kecil.id)


def test_partial_payment_on_credit_order_marks_it_partly_paid(sqlite_session, kas_kecil, printed_product):
    product, _, _ = printed_product
    trx = create_transaction(sqlite_session, "Budi", [{"product_id": product.id, "quantity": 10}])
    assert trx.payment_status == PaymentStatus.KREDIT

    trx = pay_receivable(sqlite_session, trx.id, kas_kecil.id, Decimal("10000"))

    assert trx.paid_amount == Decimal("10000")
    assert trx.payment_status == PaymentStatus.BELUM_LUNAS

    trx = pay_receivable(sqlite_session, trx.id, kas_kecil.id, Decimal("40000"))
    assert trx.payment_status == PaymentStatus.LUNAS


def test_daily_report_does_not_count_write_off_as_cash(sqlite_session, kas_kecil, printed_product):
    product, _, _ = printed_product
    trx = create_transaction(
        sqlite_session, "Sari", [{"product_id": product.id, "quantity": 10}],
        payment_account_id=kas_kecil.id, paid_amount=Decimal("20000"),
    )
    write_off_receivable(sqlite_session, trx.id, kas_kecil.id)

    summary = daily_report(sqlite_session, local_date(utc_now()))["sales_summary"]

    assert summary["total_sales"] == Decimal("50000")
    assert summary["total_cash"] == Decimal("20000")
    assert summary["total_credit"] == Decimal("30000")


def test_expense_category_selects_source_type(sqlite_session, kas_kecil):
    record_expense(sqlite_session, "Token listrik", Decimal("100000"), kas_kecil.id, "Listrik")
    record_expense(sqlite_session, "Bayar PO kertas", Decimal("50000"), kas_kecil.id, "Pembayaran PO")

    rows = {e.description: e for e in sqlite_session.query(LedgerEntry).all()}
    assert rows["Token listrik"].source_type == "manual_expense"
    assert rows["Token listrik"].type == "pengeluaran"
    assert rows["Bayar PO kertas"].source_type == "po_payment"
    assert _balance(sqlite_session, kas_kecil.id) == Decimal("350000")


def test_employee_advance_and_repayment(sqlite_session, kas_kecil, cashier):
    advance = issue_employee_advance(sqlite_session, "EMP-1", "Andi", Decimal("150000"), kas_kecil.id, cashier)
    assert _balance(sqlite_session, kas_kecil.id) == Decimal("350000")

    with pytest.raises(ValueError):
        record_advance_repayment(sqlite_session, advance.id, Decimal("150001"))

    advance = record_advance_repayment(sqlite_session, advance.id, Decimal("50000"), cashier)

    assert advance.remaining_amount == Decimal("100000")
    assert len(advance.repayments) == 1
    assert advance.repayments[0].recorded_by == "Rina"
    assert _balance(sqlite_session, kas_kecil.id) == Decimal("400000")


def test_no_drift_after_mixed_operations(sqlite_session, kas_kecil, bank, printed_product):
    product, _, _ = printed_product
    create_transaction(
        sqlite_session, "Dewi", [{"product_id": product.id, "quantity": 3}],
        payment_account_id=bank.id, paid_amount=Decimal("15000"),
    )
    record_expense(sqlite_session, "ATK", Decimal("20000"), kas_kecil.id)
    transfer_between_accounts(sqlite_session, bank.id, kas_kecil.id, Decimal("5000"))

    assert all(row["drift"] == 0 for row in account_balance_drift(sqlite_session))


def test_drift_detects_untracked_balance_change(sqlite_session, kas_kecil):
    sqlite_session.query(Account).filter(Account.id == kas_kecil.id).update({Account.balance: Decimal("510000")})
    sqlite_session.commit()

    row = account_balance_drift(sqlite_session)[0]
    assert row["drift"] == Decimal("10000")
