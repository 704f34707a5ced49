from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy import or_, func
from typing import Optional, List
from decimal import Decimal

from kasir.common.exceptions import NotFoundError, WriteFailedError
from kasir.models.account import Account, AccountType, generate_custom_id
from kasir.models.ledger import LedgerEntry

from kasir.logger_config import logger

# ==================== QUERY OPERATIONS ====================

def get_account_by_id(db: Session, account_id: str) -> Optional[Account]:
    """Get account by ID."""
    return db.query(Account).filter(Account.id == account_id).first()


def get_account_by_name(db: Session, name: str) -> Optional[Account]:
    """Get account by name."""
    return db.query(Account).filter(Account.name == name).first()


def require_account(db: Session, account_id: str) -> Account:
    account = get_account_by_id(db, account_id)
    if not account:
        raise NotFoundError(f"Account not found: {account_id}")
    return account


def get_all_accounts(
    db: Session,
    skip: int = 0,
    limit: int = 50,
    search: Optional[str] = None,
    type: Optional[AccountType] = None,
    payment_only: bool = False,
) -> tuple[List[Account], int]:
    """ Get all Accounts with optional filteration """
    query = db.query(Account)

    if type:
        query = query.filter(Account.type == type)

    if payment_only:
        query = query.filter(Account.is_payment_account.is_(True))

    if search:
        search_term = f"%{search}%"
        query = query.filter(
            or_(
                Account.name.ilike(search_term),
                Account.id.ilike(search_term)
            )
        )

    count = query.count()
    accounts = query.order_by(Account.name).offset(skip).limit(limit).all()
    return accounts, count


def create_account(
    db: Session,
    name: str,
    type: AccountType,
    initial_balance: Decimal = Decimal("0"),
    is_payment_account: bool = False,
) -> Account:
    """Create a new account. The opening balance is both baseline and current balance."""

    if get_account_by_name(db, name):
        raise ValueError("Account with this name already exists")

    account_id = generate_custom_id("ACC")

    while get_account_by_id(db, account_id):
        account_id = generate_custom_id("ACC")

    account = Account(
        id=account_id,
        name=name,
        type=type,
        balance=initial_balance,
        initial_balance=initial_balance,
        is_payment_account=is_payment_account,
    )

    db.add(account)

    try:
        db.commit()
        db.refresh(account)
        logger.info(f"Account created: {account.id} ({name}), initial balance {initial_balance}")
        return account
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Error creating account: {str(e)}")
        raise ValueError("Failed to create account")


def update_account(
    db: Session,
    account_id: str,
    name: Optional[str] = None,
    type: Optional[AccountType] = None,
    is_payment_account: Optional[bool] = None,
) -> Account:
    """Update account metadata. Balances change only through cash operations."""

    account = require_account(db, account_id)

    if name is not None:
        account.name = name

    if type is not None:
        account.type = type

    if is_payment_account is not None:
        account.is_payment_account = is_payment_account

    try:
        db.commit()
        db.refresh(account)
        return account
    except IntegrityError as e:
        db.rollback()
        logger.error(f"Error updating account: {str(e)}")
        raise ValueError("Failed to update account")


def set_initial_balance(db: Session, account_id: str, initial_balance: Decimal) -> Account:
    """
    Change the owner-set baseline. The current balance shifts by the same delta
    so that balance - initial_balance (the ledger-driven part) is preserved.
    """
    account = require_account(db, account_id)
    delta = Decimal(str(initial_balance)) - Decimal(str(account.initial_balance or 0))

    db.query(Account).filter(Account.id == account_id).update(
        {
            Account.initial_balance: initial_balance,
            Account.balance: Account.balance + delta,
        },
        synchronize_session=False,
    )

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error setting initial balance on {account_id}: {e}")
        raise WriteFailedError("set initial balance", e) from e

    db.refresh(account)
    logger.info(f"Initial balance of {account_id} set to {initial_balance} (delta {delta})")
    return account


def delete_account(db: Session, account_id: str) -> None:
    """Delete account."""

    account = require_account(db, account_id)

    # Prevent deletion if ledger entries exist
    entries_count = (
        db.query(func.count(LedgerEntry.id))
        .filter(LedgerEntry.account_id == account_id)
        .scalar()
    )

    if entries_count > 0:
        raise ValueError("Cannot delete account with existing cash history")

    db.delete(account)

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error deleting account: {str(e)}")
        raise ValueError("Failed to delete account")
