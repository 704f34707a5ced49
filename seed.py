"""
Fill a fresh database with demo data. Everything goes through the services so
balances, cash history and stock movements stay consistent.
"""

from decimal import Decimal
import random

from faker import Faker

from kasir.core.database import Base, SessionLocal, engine
from kasir.core.dependencies import Actor
from kasir.models import (
    AccountType,
    AdvanceRepayment,
    Account,
    EmployeeAdvance,
    Expense,
    LedgerEntry,
    Material,
    MaterialMovement,
    MaterialType,
    Product,
    PurchaseOrder,
    Transaction,
    TransactionStatus,
)
from kasir.services.account_service import create_account
from kasir.services.cash_service import (
    issue_employee_advance,
    pay_purchase_order,
    pay_receivable,
    record_expense,
    transfer_between_accounts,
)
from kasir.services.material_movement_service import create_material, receive_purchase_order
from kasir.services.product_service import create_product
from kasir.services.purchase_order_service import create_purchase_order, review_purchase_order
from kasir.services.transaction_service import create_transaction, update_transaction_status

fake = Faker("id_ID")
cashier = Actor(user_id="USR-SEED", user_name="Kasir Demo", role="cashier")

Base.metadata.create_all(bind=engine)
db = SessionLocal()

try:
    print("🔄 Clearing existing data...")
    for model in (
        AdvanceRepayment, EmployeeAdvance, Expense, LedgerEntry, MaterialMovement,
        PurchaseOrder, Transaction, Product, Material, Account,
    ):
        db.query(model).delete()
    db.commit()
    print("✅ Data cleared.")

    print("🔄 Creating accounts...")
    kas = create_account(db, "Kas Kecil", AccountType.ASET, Decimal("500000"), is_payment_account=True)
    bank = create_account(db, "Bank BRI", AccountType.ASET, Decimal("5000000"), is_payment_account=True)
    qris = create_account(db, "QRIS", AccountType.ASET, Decimal("0"), is_payment_account=True)
    accounts = [kas, bank, qris]
    print(f"✅ Seeded {len(accounts)} accounts")

    print("🔄 Creating materials and products...")
    materials = [
        create_material(db, "Kertas A3+", MaterialType.STOCK, "lembar", Decimal("2500"), Decimal("500"), Decimal("100")),
        create_material(db, "Tinta CMYK", MaterialType.STOCK, "ml", Decimal("300"), Decimal("2000"), Decimal("250")),
        create_material(db, "Banner Flexi", MaterialType.STOCK, "meter", Decimal("18000"), Decimal("150"), Decimal("20")),
        create_material(db, "Laminasi Doff", MaterialType.BELI, "lembar", Decimal("1500")),
        create_material(db, "Jasa Potong", MaterialType.JASA, "job", Decimal("5000")),
    ]
    products = [
        create_product(db, "Brosur A4", Decimal("3500"), "lembar", "Cetak", [
            {"material_id": materials[0].id, "quantity": Decimal("0.5")},
            {"material_id": materials[1].id, "quantity": Decimal("2")},
        ]),
        create_product(db, "Kartu Nama", Decimal("45000"), "box", "Cetak", [
            {"material_id": materials[0].id, "quantity": Decimal("4")},
            {"material_id": materials[3].id, "quantity": Decimal("4")},
            {"material_id": materials[4].id, "quantity": Decimal("1")},
        ]),
        create_product(db, "Spanduk", Decimal("25000"), "meter", "Outdoor", [
            {"material_id": materials[2].id, "quantity": Decimal("1")},
            {"material_id": materials[1].id, "quantity": Decimal("15")},
        ]),
    ]
    print(f"✅ Seeded {len(materials)} materials and {len(products)} products")

    print("🔄 Creating transactions...")
    transactions = []
    for _ in range(random.randint(15, 25)):
        picked = random.sample(products, random.randint(1, len(products)))
        lines = [{"product_id": p.id, "quantity": Decimal(random.randint(1, 20))} for p in picked]
        total = sum(Decimal(str(p.base_price)) * l["quantity"] for p, l in zip(picked, lines))
        paid = random.choice([Decimal("0"), (total / 2).quantize(Decimal("1")), total])
        trx = create_transaction(
            db,
            customer_name=fake.name(),
            items=lines,
            actor=cashier,
            payment_account_id=random.choice(accounts).id if paid > 0 else None,
            paid_amount=paid,
        )
        transactions.append(trx)

        for status in random.choice([[], [TransactionStatus.PROSES_DESIGN], [TransactionStatus.PROSES_PRODUKSI, TransactionStatus.PESANAN_SELESAI]]):
            update_transaction_status(db, trx.id, status, actor=cashier)

        if 0 < trx.paid_amount < trx.total and random.choice([True, False]):
            pay_receivable(db, trx.id, kas.id, trx.total - trx.paid_amount, actor=cashier)
    print(f"✅ Seeded {len(transactions)} transactions")

    print("🔄 Creating purchase orders, expenses and advances...")
    po = create_purchase_order(db, materials[0].id, Decimal("200"), actor=cashier, notes="Restock kertas")
    review_purchase_order(db, po.id, approve=True)
    pay_purchase_order(db, po.id, bank.id, Decimal("480000"), actor=cashier)
    receive_purchase_order(db, po.id, actor=cashier)

    for _ in range(5):
        record_expense(
            db,
            description=fake.sentence(nb_words=4),
            amount=Decimal(random.randint(10, 100) * 1000),
            account_id=kas.id,
            category=random.choice(["Listrik", "Transport", "Lain-lain"]),
            actor=cashier,
        )
    issue_employee_advance(db, "EMP-001", fake.first_name(), Decimal("150000"), kas.id, actor=cashier)
    db.refresh(qris)
    if qris.balance >= 10000:
        transfer_between_accounts(db, qris.id, bank.id, qris.balance, "Setor QRIS", actor=cashier)
    print("✅ Done.")
except Exception:
    db.rollback()
    raise
finally:
    db.close()
