# marketplace/api/routers/health.py
from fastapi import APIRouter, Depends
from sqlalchemy import text

from marketplace.api.dependencies import get_tx
from marketplace.services.transaction import TransactionCoordinator

router = APIRouter(tags=["health"])


@router.get("/health")
def health(tx: TransactionCoordinator = Depends(get_tx)):
    tx.run_in_transaction(lambda db: db.execute(text("SELECT 1")))
    return {"status": "ok"}
