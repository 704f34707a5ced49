from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from kasir.core.dependencies import Actor, get_current_actor, get_db
from kasir.common.exceptions import NotFoundError
from kasir.models.account import AccountType
from kasir.services.account_service import (
    create_account,
    require_account,
    get_all_accounts,
    update_account,
    set_initial_balance,
    delete_account,
)
from kasir.services.reconciliation_service import account_balance_drift
from kasir.schemas.account import (
    AccountDeleteResponse,
    AccountDriftResponse,
    AccountResponse,
    AccountListResponse,
    AccountCreate,
    InitialBalanceUpdate,
    UpdateAccount,
)
from kasir.logger_config import logger

router = APIRouter()


@router.get("", response_model=AccountListResponse)
def get_accounts(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    search: Optional[str] = Query(None),
    type: Optional[AccountType] = Query(None),
    payment_only: bool = Query(False, description="Only accounts that can receive payments"),
    db: Session = Depends(get_db)
):
    """ Get all the Accounts """
    accounts, total = get_all_accounts(db, skip, limit, search, type, payment_only)
    return AccountListResponse(
        total=total,
        accounts=[AccountResponse.model_validate(account) for account in accounts]
    )


@router.get("/drift", response_model=List[AccountDriftResponse])
def get_account_drift(db: Session = Depends(get_db)):
    """
    Compare each stored balance with initial balance + net of its cash history.
    Non-zero drift means a balance was changed without a matching ledger row.
    """
    return [AccountDriftResponse(**row) for row in account_balance_drift(db)]


@router.get("/{account_id}", response_model=AccountResponse)
def get_account(account_id: str, db: Session = Depends(get_db)):
    """
    Get Account by Id
    """
    try:
        return AccountResponse.model_validate(require_account(db, account_id))
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
def create_account_route(
    account_data: AccountCreate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """ 
    Create Account
    """
    try:
        account = create_account(
            db=db,
            name=account_data.name,
            type=account_data.type,
            initial_balance=account_data.initial_balance,
            is_payment_account=account_data.is_payment_account,
        )
        logger.info(f"Account {account_data.name} created by {actor.display_name}")
        return AccountResponse.model_validate(account)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/{account_id}", response_model=AccountResponse)
def update_account_route(
    account_id: str,
    account_data: UpdateAccount,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """
    Update account name, type or payment flag.
    """
    try:
        account = update_account(
            db=db,
            account_id=account_id,
            name=account_data.name,
            type=account_data.type,
            is_payment_account=account_data.is_payment_account,
        )
        logger.info(f"Account {account_id} updated by {actor.display_name}")
        return AccountResponse.model_validate(account)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/{account_id}/initial-balance", response_model=AccountResponse)
def update_initial_balance_route(
    account_id: str,
    data: InitialBalanceUpdate,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Change the opening balance; the current balance shifts by the same amount."""
    try:
        account = set_initial_balance(db, account_id, data.initial_balance)
        logger.info(f"Initial balance of {account_id} set to {data.initial_balance} by {actor.display_name}")
        return AccountResponse.model_validate(account)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.delete("/{account_id}", response_model=AccountDeleteResponse)
def delete_account_route(
    account_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db)
):
    """Delete an account that has no cash history."""
    try:
        delete_account(db, account_id)
        logger.info(f"Account {account_id} deleted by {actor.display_name}")
        return AccountDeleteResponse(message="Account deleted successfully")
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
