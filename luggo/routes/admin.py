"""Maintenance endpoints — reset demo data and reconcile vote counters."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from luggo.auth import require_admin
from luggo.database import get_db
from luggo.logging_config import get_logger
from luggo.models import User
from luggo.schemas import ReconcileResponse, ResetCounts, ResetRequest, ResetResponse
from luggo.services import maintenance, vote_ledger

logger = get_logger(__name__)
router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/reset", response_model=ResetResponse)
async def reset(
    body: ResetRequest | None = None,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Clear reviews, votes and places; optionally re-seed the demo data."""
    admin_uid = admin.uid
    cleared = await maintenance.reset_data(db, seed_defaults=bool(body and body.seed_defaults))
    await db.commit()
    logger.warning("admin_reset", uid=admin_uid, **cleared)
    return ResetResponse(cleared=ResetCounts(**cleared))


@router.post("/reconcile", response_model=ReconcileResponse)
async def reconcile(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Recount every review's counters from the vote ledger."""
    corrected = await vote_ledger.reconcile_counters(db)
    await db.commit()
    logger.info("counters_reconciled", uid=admin.uid, corrected=corrected)
    return ReconcileResponse(corrected=corrected)
