from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from kasir import __version__
from kasir.common.error_handlers import register_error_handlers
from kasir.core.config import settings
from kasir.api.v1 import (
    accounts,
    cash_flow,
    employee_advances,
    expenses,
    maintenance,
    materials,
    products,
    purchase_orders,
    transactions,
)

app = FastAPI(title=settings.APP_NAME, version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Register API routers
app.include_router(accounts.router, prefix="/api/v1/accounts", tags=["accounts"])
app.include_router(cash_flow.router, prefix="/api/v1/cash-flow", tags=["cash flow"])
app.include_router(transactions.router, prefix="/api/v1/transactions", tags=["transactions"])
app.include_router(products.router, prefix="/api/v1/products", tags=["products"])
app.include_router(materials.router, prefix="/api/v1/materials", tags=["materials"])
app.include_router(
    purchase_orders.router, prefix="/api/v1/purchase-orders", tags=["purchase orders"])
app.include_router(expenses.router, prefix="/api/v1/expenses", tags=["expenses"])
app.include_router(
    employee_advances.router, prefix="/api/v1/employee-advances", tags=["employee advances"])
app.include_router(maintenance.router, prefix="/api/v1/maintenance", tags=["maintenance"])


@app.get("/")
def read_root():
    return {"message": f"Welcome to the {settings.APP_NAME} APIs!"}
