from decimal import Decimal

from kasir.models.account import Account
from kasir.models.ledger import LedgerEntry
from kasir.models.transaction import Transaction
from kasir.services.backfill_service import (
    backfill_today_transactions,
    cleanup_orphan_cash_history,
    normalize_ledger_categories,
    referenced_transaction_id,
)
from kasir.services.cash_service import pay_receivable, record_manual_cash, write_off_receivable
from kasir.services.transaction_service import create_transaction


def _paid_order(db, product, account, paid, quantity=10):
    return create_transaction(
        db, "Budi", [{"product_id": product.id, "quantity": quantity}],
        payment_account_id=account.id, paid_amount=Decimal(paid),
    )


def _drop_order_rows(db, transaction_id):
    db.query(LedgerEntry).filter(LedgerEntry.reference_number == f"ORDER-{transaction_id}").delete()
    db.commit()


def test_backfill_inserts_missing_row_once(sqlite_session, kas_kecil, printed_product):
    product, _, _ = printed_product
    trx = _paid_order(sqlite_session, product, kas_kecil, "50000")
    _drop_order_rows(sqlite_session, trx.id)
    balance_before = sqlite_session.query(Account.balance).filter(Account.id == kas_kecil.id).scalar()

    assert backfill_today_transactions(sqlite_session, dry_run=True) == 1
    assert sqlite_session.query(LedgerEntry).count() == 0

    assert backfill_today_transactions(sqlite_session) == 1
    assert backfill_today_transactions(sqlite_session) == 0

    row = sqlite_session.query(LedgerEntry).one()
    assert row.reference_number == f"ORDER-{trx.id}"
    assert row.source_type == "pos_direct"
    assert row.category == "income"
    assert row.amount == Decimal("50000")
    # Balances already include the payment
    assert sqlite_session.query(Account.balance).filter(Account.id == kas_kecil.id).scalar() == balance_before


def test_backfill_nets_out_receivable_payments(sqlite_session, kas_kecil, printed_product):
    product, _, _ = printed_product
    trx = _paid_order(sqlite_session, product, kas_kecil, "20000")
    pay_receivable(sqlite_session, trx.id, kas_kecil.id, Decimal("30000"))
    _drop_order_rows(sqlite_session, trx.id)

    assert backfill_today_transactions(sqlite_session) == 1

    row = sqlite_session.query(LedgerEntry).filter(LedgerEntry.source_type == "pos_direct").one()
    assert row.amount == Decimal("20000")


def test_backfill_nets_out_written_off_balance(sqlite_session, kas_kecil, printed_product):
    product, _, _ = printed_product
    trx = _paid_order(sqlite_session, product, kas_kecil, "20000")
    write_off_receivable(sqlite_session, trx.id, kas_kecil.id)
    _drop_order_rows(sqlite_session, trx.id)

    assert backfill_today_transactions(sqlite_session) == 1

    row = sqlite_session.query(LedgerEntry).filter(LedgerEntry.source_type == "pos_direct").one()
    assert row.amount == Decimal("20000")


def test_backfill_skips_covered_and_unpaid_orders(sqlite_session, kas_kecil, printed_product):
    product, _, _ = printed_product
    _paid_order(sqlite_session, product, kas_kecil, "50000")
    create_transaction(sqlite_session, "Sari", [{"product_id": product.id, "quantity": 1}])

    assert backfill_today_transactions(sqlite_session) == 0


def test_cleanup_removes_rows_of_deleted_orders(sqlite_session, kas_kecil, printed_product):
    product, _, _ = printed_product
    kept = _paid_order(sqlite_session, product, kas_kecil, "10000", quantity=2)
    gone = _paid_order(sqlite_session, product, kas_kecil, "10000", quantity=2)
    record_manual_cash(sqlite_session, kas_kecil.id, Decimal("5000"), "in", "Setoran")

    sqlite_session.delete(sqlite_session.get(Transaction, gone.id))
    sqlite_session.commit()

    assert cleanup_orphan_cash_history(sqlite_session, dry_run=True) == 1
    assert cleanup_orphan_cash_history(sqlite_session) == 1
    assert cleanup_orphan_cash_history(sqlite_session) == 0

    remaining = sqlite_session.query(LedgerEntry).all()
    assert len(remaining) == 2
    assert {referenced_transaction_id(e) for e in remaining} == {kept.id, None}


def test_referenced_transaction_id_falls_back_to_description():
    legacy = LedgerEntry(description="Pembayaran orderan dari Budi - Order: TRX-ABC123", source_type="pos_direct")
    assert referenced_transaction_id(legacy) == "TRX-ABC123"
    assert referenced_transaction_id(LedgerEntry(description="Beli galon")) is None


def test_normalize_fills_missing_categories(sqlite_session, kas_kecil):
    sqlite_session.add_all([
        LedgerEntry(account_id=kas_kecil.id, amount=Decimal("1"), description="a", type="orderan"),
        LedgerEntry(account_id=kas_kecil.id, amount=Decimal("1"), description="b",
                    source_type="transfer_keluar", category="bogus"),
        LedgerEntry(account_id=kas_kecil.id, amount=Decimal("1"), description="c",
                    transaction_type="expense", category="expense"),
    ])
    sqlite_session.commit()

    assert normalize_ledger_categories(sqlite_session) == 2
    assert normalize_ledger_categories(sqlite_session) == 0

    categories = {e.description: e.category for e in sqlite_session.query(LedgerEntry).all()}
    assert categories == {"a": "income", "b": "transfer_out", "c": "expense"}
