from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from stockpipe.app.api.deps import get_db, get_position_source
from stockpipe.app.core.exceptions import UpstreamReadError
from stockpipe.app.db.models.core_types import CanonicalLocation
from stockpipe.app.schemas.positions import LabelAuditRead, PositionsRead, StageRead
from stockpipe.services.filters import stage_aliases
from stockpipe.services.inventory import get_positions
from stockpipe.services.label_audit import audit_owner_labels
from stockpipe.services.sources import PositionSource

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/inventory")


def _require_owner(owner_id: str) -> str:
    if not owner_id or not owner_id.strip():
        raise HTTPException(status_code=400, detail="Missing owner_id")
    return owner_id.strip()


@router.get(
    "/positions",
    response_model=PositionsRead,
)
def read_positions(
    owner_id: str = Query(...),
    sku: str | None = None,
    location: str | None = None,
    source: PositionSource = Depends(get_position_source),
):
    """
    Positions (READ ONLY)
    - recalculées à chaque appel depuis les PO et les transferts
    - ledger limité aux N derniers mouvements
    """
    owner = _require_owner(owner_id)
    try:
        return get_positions(source, owner, sku=sku, location=location)
    except UpstreamReadError as exc:
        logger.error("Reconciliation aborted for owner %s: %s", owner, exc)
        raise HTTPException(status_code=503, detail=str(exc))


@router.get(
    "/location-labels",
    response_model=LabelAuditRead,
)
def read_location_labels(
    owner_id: str = Query(...),
    db: Session = Depends(get_db),
):
    """Libellés legacy "<Nom> Warehouse" et leur réécriture proposée (aucune écriture)."""
    return audit_owner_labels(db, _require_owner(owner_id))


@router.get(
    "/stages",
    response_model=list[StageRead],
)
def list_stages():
    return [
        {"stage": stage, "label": stage.value, "aliases": stage_aliases(stage)}
        for stage in CanonicalLocation
    ]
