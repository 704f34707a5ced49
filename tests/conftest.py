import os
import pathlib
import tempfile
from decimal import Decimal

import pytest


def pytest_configure():
    if os.getenv("DATABASE_URL"):
        return
    temp_dir = tempfile.mkdtemp(prefix="kasir-tests-")
    db_path = pathlib.Path(temp_dir) / "pytest.db"
    os.environ["DATABASE_URL"] = f"sqlite:///{db_path}"
    os.environ.setdefault("LOG_LEVEL", "WARNING")


@pytest.fixture()
def sqlite_engine():
    from kasir.core.database import Base, engine
    import kasir.models  # noqa: F401

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def sqlite_session(sqlite_engine):
    from kasir.core.database import SessionLocal

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def api_client(sqlite_engine, sqlite_session):
    from fastapi.testclient import TestClient

    from kasir.core.dependencies import get_db
    from kasir.main import app

    def _get_test_db():
        yield sqlite_session

    app.dependency_overrides[get_db] = _get_test_db
    client = TestClient(app)
    try:
        yield client
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest.fixture()
def cashier():
    from kasir.core.dependencies import Actor

    return Actor(user_id="USR-1", user_name="Rina", role="cashier")


@pytest.fixture()
def kas_kecil(sqlite_session):
    from kasir.models.account import AccountType
    from kasir.services.account_service import create_account

    return create_account(sqlite_session, "Kas Kecil", AccountType.ASET, Decimal("500000"), is_payment_account=True)


@pytest.fixture()
def bank(sqlite_session):
    from kasir.models.account import AccountType
    from kasir.services.account_service import create_account

    return create_account(sqlite_session, "Bank BRI", AccountType.ASET, Decimal("1000000"), is_payment_account=True)


@pytest.fixture()
def printed_product(sqlite_session):
    """Brosur: 2 sheets of paper (Stock) and 1 lamination (Beli) per unit."""
    from kasir.models.material import MaterialType
    from kasir.services.material_movement_service import create_material
    from kasir.services.product_service import create_product

    paper = create_material(sqlite_session, "Kertas A3", MaterialType.STOCK, "lembar", Decimal("2000"), Decimal("10"))
    lamination = create_material(sqlite_session, "Laminasi", MaterialType.BELI, "lembar", Decimal("1000"))
    product = create_product(
        sqlite_session,
        "Brosur",
        Decimal("5000"),
        materials=[
            {"material_id": paper.id, "quantity": Decimal("2")},
            {"material_id": lamination.id, "quantity": Decimal("1")},
        ],
    )
    return product, paper, lamination
