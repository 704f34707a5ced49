# kasir/models/__init__.py
from .account import Account, AccountType
from .ledger import LedgerEntry, LedgerCategory, ReferenceType
from .material import Material, MaterialMovement, MaterialType, MovementType, MovementReason
from .product import Product, ProductMaterial
from .transaction import Transaction, TransactionItem, TransactionStatus, PaymentStatus
from .purchase_order import PurchaseOrder, PurchaseOrderStatus
from .expense import Expense, EmployeeAdvance, AdvanceRepayment
