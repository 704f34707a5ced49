from decimal import Decimal

import pytest

from kasir.common.exceptions import NotFoundError
from kasir.models.account import Account
from kasir.models.expense import Expense
from kasir.models.ledger import LedgerEntry
from kasir.models.transaction import PaymentStatus, Transaction, TransactionStatus
from kasir.services.cash_service import pay_receivable, write_off_receivable
from kasir.services.transaction_service import (
    create_transaction,
    delete_transaction,
    list_transactions,
    update_transaction_status,
)


def test_create_posts_payment_with_order(sqlite_session, kas_kecil, printed_product, cashier):
    product, _, _ = printed_product

    trx = create_transaction(
        sqlite_session,
        "Budi",
        [{"product_id": product.id, "quantity": 4}, {"product_id": product.id, "quantity": 1, "price": 3000}],
        actor=cashier,
        payment_account_id=kas_kecil.id,
        paid_amount=Decimal("23000"),
    )

    assert trx.total == Decimal("23000")
    assert trx.payment_status == PaymentStatus.LUNAS
    assert trx.cashier_name == "Rina"
    assert trx.status == TransactionStatus.PESANAN_MASUK

    entry = sqlite_session.query(LedgerEntry).one()
    assert entry.reference_number == f"ORDER-{trx.id}"
    assert entry.description == f"Pembayaran orderan dari Budi - Order: {trx.id}"
    assert entry.type == "orderan"
    assert sqlite_session.query(Account.balance).filter(Account.id == kas_kecil.id).scalar() == Decimal("523000")


def test_create_validates_input(sqlite_session, kas_kecil, printed_product):
    product, _, _ = printed_product

    with pytest.raises(ValueError):
        create_transaction(sqlite_session, "Budi", [])
    with pytest.raises(ValueError):
        create_transaction(sqlite_session, "Budi", [{"product_id": product.id, "quantity": 1}], paid_amount=Decimal("5000"))
    with pytest.raises(ValueError):
        create_transaction(
            sqlite_session, "Budi", [{"product_id": product.id, "quantity": 1}],
            payment_account_id=kas_kecil.id, paid_amount=Decimal("5001"),
        )
    with pytest.raises(NotFoundError):
        create_transaction(sqlite_session, "Budi", [{"product_id": "PRD-NOPE", "quantity": 1}])


def test_unknown_payment_account_leaves_no_order(sqlite_session, printed_product):
    product, _, _ = printed_product

    with pytest.raises(NotFoundError):
        create_transaction(
            sqlite_session, "Budi", [{"product_id": product.id, "quantity": 1}],
            payment_account_id="ACC-NOPE", paid_amount=Decimal("5000"),
        )

    assert sqlite_session.query(Transaction).count() == 0


def test_delete_reverses_every_payment(sqlite_session, kas_kecil, bank, printed_product):
    product, _, _ = printed_product
    trx = create_transaction(
        sqlite_session, "Budi", [{"product_id": product.id, "quantity": 10}],
        payment_account_id=kas_kecil.id, paid_amount=Decimal("20000"),
    )
    pay_receivable(sqlite_session, trx.id, bank.id, Decimal("30000"))

    result = delete_transaction(sqlite_session, trx.id)

    assert result["deleted_ledger_entries"] == 2
    assert result["balance_reversals"] == {kas_kecil.id: Decimal("-20000"), bank.id: Decimal("-30000")}
    assert sqlite_session.query(LedgerEntry).count() == 0
    assert sqlite_session.query(Transaction).count() == 0
    balances = dict(sqlite_session.query(Account.id, Account.balance).all())
    assert balances == {kas_kecil.id: Decimal("500000"), bank.id: Decimal("1000000")}


def test_delete_removes_write_off_expense(sqlite_session, kas_kecil, printed_product):
    product, _, _ = printed_product
    trx = create_transaction(sqlite_session, "Sari", [{"product_id": product.id, "quantity": 2}])
    write_off_receivable(sqlite_session, trx.id, kas_kecil.id)
    assert sqlite_session.query(Expense).count() == 1

    result = delete_transaction(sqlite_session, trx.id)

    assert result["deleted_ledger_entries"] == 1
    assert sqlite_session.query(Expense).count() == 0
    assert sqlite_session.query(Account.balance).filter(Account.id == kas_kecil.id).scalar() == Decimal("500000")


def test_delete_keeps_material_movements(sqlite_session, printed_product):
    from kasir.models.material import MaterialMovement

    product, _, _ = printed_product
    trx = create_transaction(sqlite_session, "Sari", [{"product_id": product.id, "quantity": 1}])
    update_transaction_status(sqlite_session, trx.id, TransactionStatus.PROSES_PRODUKSI)

    delete_transaction(sqlite_session, trx.id)

    assert sqlite_session.query(MaterialMovement).filter(MaterialMovement.reference_id == trx.id).count() == 2


def test_list_filters(sqlite_session, kas_kecil, printed_product):
    product, _, _ = printed_product
    create_transaction(sqlite_session, "Budi Santoso", [{"product_id": product.id, "quantity": 1}])
    create_transaction(
        sqlite_session, "Sari", [{"product_id": product.id, "quantity": 1}],
        payment_account_id=kas_kecil.id, paid_amount=Decimal("5000"),
    )

    rows, total = list_transactions(sqlite_session, search="budi")
    assert total == 1 and rows[0].customer_name == "Budi Santoso"

    rows, total = list_transactions(sqlite_session, payment_status=PaymentStatus.LUNAS)
    assert [r.customer_name for r in rows] == ["Sari"]
