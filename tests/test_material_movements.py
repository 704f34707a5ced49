from decimal import Decimal

import pytest

from kasir.common.exceptions import NotFoundError
from kasir.models.material import Material, MaterialMovement, MaterialType, MovementReason, MovementType
from kasir.models.purchase_order import PurchaseOrderStatus
from kasir.models.transaction import TransactionStatus
from kasir.services.cash_service import pay_purchase_order
from kasir.services.material_movement_service import (
    adjust_stock,
    apply_production_consumption,
    create_material,
    extract_material_usage,
    get_low_stock_materials,
    list_movements,
    material_usage_summary,
    receive_purchase_order,
)
from kasir.services.purchase_order_service import create_purchase_order, review_purchase_order
from kasir.services.transaction_service import create_transaction, update_transaction_status


def _stock(db, material_id):
    return db.query(Material.stock).filter(Material.id == material_id).scalar()


def _line(product_materials, quantity):
    return {"quantity": quantity, "product": {"materials": product_materials}}


def test_extract_usage_sums_shared_materials():
    items = [
        _line([{"material_id": "MAT-A", "quantity": "2"}, {"material_id": "MAT-B", "quantity": "1"}], 3),
        _line([{"materialId": "MAT-A", "quantity": "0.5"}], 4),
        {"quantity": 10, "product": {"materials": []}},
        {"quantity": 10},
    ]

    usage = extract_material_usage(items)

    assert usage == {"MAT-A": Decimal("8.0"), "MAT-B": Decimal("3")}
    assert list(usage) == ["MAT-A", "MAT-B"]


def test_stock_material_decreases_and_clamps_at_zero(sqlite_session, printed_product, cashier):
    product, paper, _ = printed_product
    items = [_line([{"material_id": paper.id, "quantity": 2}], 3)]

    first = apply_production_consumption(sqlite_session, "TRX-1", items, cashier)
    assert _stock(sqlite_session, paper.id) == Decimal("4")
    assert first[0].quantity == Decimal("6")
    assert (first[0].previous_stock, first[0].new_stock) == (Decimal("10"), Decimal("4"))
    assert first[0].type == MovementType.OUT
    assert first[0].reason == MovementReason.PRODUCTION_CONSUMPTION
    assert first[0].notes == "Production process for transaction TRX-1"

    second = apply_production_consumption(sqlite_session, "TRX-2", items, cashier)
    assert _stock(sqlite_session, paper.id) == Decimal("0")
    assert second[0].quantity == Decimal("6")
    assert (second[0].previous_stock, second[0].new_stock) == (Decimal("4"), Decimal("0"))


def test_usage_counter_material_counts_up_with_out_movement(sqlite_session, printed_product):
    _, _, lamination = printed_product
    items = [_line([{"material_id": lamination.id, "quantity": 1}], 5)]

    movements = apply_production_consumption(sqlite_session, "TRX-9", items)

    assert _stock(sqlite_session, lamination.id) == Decimal("5")
    assert movements[0].type == MovementType.OUT
    assert movements[0].new_stock == Decimal("5")
    summary = material_usage_summary(sqlite_session, lamination.id)
    assert summary["cumulative_usage"] == Decimal("5")
    assert summary["remaining_stock"] is None


def test_unknown_material_aborts_whole_consumption(sqlite_session, printed_product):
    _, paper, _ = printed_product
    items = [_line([{"material_id": paper.id, "quantity": 1}, {"material_id": "MAT-NOPE", "quantity": 1}], 2)]

    with pytest.raises(NotFoundError):
        apply_production_consumption(sqlite_session, "TRX-3", items)

    assert _stock(sqlite_session, paper.id) == Decimal("10")
    assert sqlite_session.query(MaterialMovement).count() == 0


def test_status_change_consumes_once(sqlite_session, printed_product, cashier):
    product, paper, lamination = printed_product
    trx = create_transaction(sqlite_session, "Budi", [{"product_id": product.id, "quantity": 2}], actor=cashier)

    update_transaction_status(sqlite_session, trx.id, TransactionStatus.PROSES_DESIGN)
    assert _stock(sqlite_session, paper.id) == Decimal("10")

    trx = update_transaction_status(sqlite_session, trx.id, TransactionStatus.PROSES_PRODUKSI, cashier)
    assert trx.materials_processed_at is not None
    assert _stock(sqlite_session, paper.id) == Decimal("6")
    assert _stock(sqlite_session, lamination.id) == Decimal("2")

    update_transaction_status(sqlite_session, trx.id, TransactionStatus.PESANAN_SELESAI)
    assert _stock(sqlite_session, paper.id) == Decimal("6")

    items, total = list_movements(sqlite_session, reference_id=trx.id)
    assert total == 2
    assert items[0]["transaction"]["customer_name"] == "Budi"


def test_status_cannot_go_backwards_or_leave_final(sqlite_session, printed_product):
    product, _, _ = printed_product
    trx = create_transaction(sqlite_session, "Sari", [{"product_id": product.id, "quantity": 1}])
    update_transaction_status(sqlite_session, trx.id, TransactionStatus.ACC_COSTUMER)

    with pytest.raises(ValueError):
        update_transaction_status(sqlite_session, trx.id, TransactionStatus.PROSES_DESIGN)

    update_transaction_status(sqlite_session, trx.id, TransactionStatus.DIBATALKAN)
    with pytest.raises(ValueError):
        update_transaction_status(sqlite_session, trx.id, TransactionStatus.PROSES_PRODUKSI)


def test_receive_purchase_order(sqlite_session, printed_product, bank, cashier):
    _, paper, lamination = printed_product

    po = create_purchase_order(sqlite_session, paper.id, Decimal("100"), actor=cashier)
    with pytest.raises(ValueError):
        receive_purchase_order(sqlite_session, po.id)

    review_purchase_order(sqlite_session, po.id, approve=True)
    po = pay_purchase_order(sqlite_session, po.id, bank.id, Decimal("200000"), cashier)
    assert po.status == PurchaseOrderStatus.DIBAYAR

    result = receive_purchase_order(sqlite_session, po.id, cashier)
    assert result["purchase_order"].status == PurchaseOrderStatus.SELESAI
    assert result["movement"].type == MovementType.IN
    assert result["movement"].reason == MovementReason.PURCHASE
    assert _stock(sqlite_session, paper.id) == Decimal("110")

    with pytest.raises(ValueError):
        receive_purchase_order(sqlite_session, po.id)

    beli_po = create_purchase_order(sqlite_session, lamination.id, Decimal("3"))
    review_purchase_order(sqlite_session, beli_po.id, approve=True)
    movement = receive_purchase_order(sqlite_session, beli_po.id)["movement"]
    assert movement.type == MovementType.OUT
    assert _stock(sqlite_session, lamination.id) == Decimal("3")


def test_adjust_stock_records_difference(sqlite_session, printed_product, cashier):
    _, paper, _ = printed_product

    movement = adjust_stock(sqlite_session, paper.id, Decimal("7"), cashier, notes="stock opname")

    assert movement.type == MovementType.ADJUSTMENT
    assert movement.quantity == Decimal("3")
    assert (movement.previous_stock, movement.new_stock) == (Decimal("10"), Decimal("7"))
    with pytest.raises(ValueError):
        adjust_stock(sqlite_session, paper.id, Decimal("7"))
    with pytest.raises(ValueError):
        adjust_stock(sqlite_session, paper.id, Decimal("-1"))


def test_low_stock_ignores_usage_counters(sqlite_session):
    create_material(sqlite_session, "Tinta", MaterialType.STOCK, "ml", stock=Decimal("5"), min_stock=Decimal("10"))
    create_material(sqlite_session, "Potong", MaterialType.JASA, "job", stock=Decimal("0"), min_stock=Decimal("10"))

    assert [m.name for m in get_low_stock_materials(sqlite_session)] == ["Tinta"]
