"""
Maintenance API: idempotent repair jobs for the cash history.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from kasir.core.dependencies import Actor, get_current_actor, get_db
from kasir.logger_config import logger
from kasir.schemas.maintenance import MaintenanceResult
from kasir.services.backfill_service import (
    backfill_today_transactions,
    cleanup_orphan_cash_history,
    normalize_ledger_categories,
)

router = APIRouter()


@router.post("/backfill-transactions", response_model=MaintenanceResult)
def backfill_transactions_route(
    dry_run: bool = Query(False),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Add the missing income row for today's paid orders. Balances are not touched."""
    affected = backfill_today_transactions(db, dry_run=dry_run)
    logger.info(f"Backfill run by {actor.display_name}: {affected} row(s), dry_run={dry_run}")
    return MaintenanceResult(operation="backfill_transactions", affected=affected, dry_run=dry_run)


@router.post("/cleanup-orphans", response_model=MaintenanceResult)
def cleanup_orphans_route(
    dry_run: bool = Query(False),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Remove payment rows whose order no longer exists."""
    affected = cleanup_orphan_cash_history(db, dry_run=dry_run)
    logger.info(f"Orphan cleanup run by {actor.display_name}: {affected} row(s), dry_run={dry_run}")
    return MaintenanceResult(operation="cleanup_orphans", affected=affected, dry_run=dry_run)


@router.post("/normalize-categories", response_model=MaintenanceResult)
def normalize_categories_route(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    affected = normalize_ledger_categories(db)
    logger.info(f"Category normalization run by {actor.display_name}: {affected} row(s)")
    return MaintenanceResult(operation="normalize_categories", affected=affected)
