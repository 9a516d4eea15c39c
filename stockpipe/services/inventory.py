from __future__ import annotations

import logging
from typing import Collection

from stockpipe.app.core.config import settings
from stockpipe.app.db.models.core_types import POStatus
from stockpipe.app.schemas.positions import PositionsRead, PositionsSummary
from stockpipe.services.aggregation import PositionViews, build_views
from stockpipe.services.filters import apply_filters
from stockpipe.services.procurement import ENGAGED_PO_STATUSES, compute_production_residuals
from stockpipe.services.replay import replay_transfers
from stockpipe.services.sources import PositionSource, SourceSnapshot, fetch_snapshot

logger = logging.getLogger(__name__)


def reconcile(
    snapshot: SourceSnapshot,
    *,
    statuses: Collection[POStatus] | None = None,
) -> PositionViews:
    """
    Réconciliation complète à partir d'un instantané des sources.

    Règle métier :
        Production = SUM(qty_ordered des PO engagés) - SUM(transferts `in` du PO)
        emplacements = replay chronologique de tous les transferts

    Propriétés :
    - fonction pure de l'instantané (aucun état entre deux appels)
    - idempotent : même instantané -> mêmes vues
    """
    residuals = compute_production_residuals(
        snapshot.purchase_orders,
        snapshot.transfers,
        statuses=statuses,
    )
    replay = replay_transfers(snapshot.transfers)
    return build_views(
        replay.table,
        residuals.residuals,
        replay.ledger,
        skipped=residuals.skipped + replay.skipped,
    )


def get_positions(
    source: PositionSource,
    owner_id: str,
    *,
    sku: str | None = None,
    location: str | None = None,
    ledger_limit: int | None = None,
    statuses: Collection[POStatus] | None = None,
    concurrent: bool | None = None,
) -> PositionsRead:
    """
    Positions courantes d'un propriétaire (READ ONLY, recalculées à chaque appel).

    - summary : compteurs avant filtrage
    - by_location / by_sku : complets (après filtres)
    - ledger : les `ledger_limit` mouvements les plus récents (après filtres)

    Lève UpstreamReadError si une des deux lectures échoue.
    """
    engaged = frozenset(statuses) if statuses is not None else ENGAGED_PO_STATUSES
    limit = settings.LEDGER_LIMIT if ledger_limit is None else ledger_limit

    snapshot = fetch_snapshot(source, owner_id, statuses=engaged, concurrent=concurrent)
    views = reconcile(snapshot, statuses=engaged)

    summary = PositionsSummary(
        location_count=len(views.by_location),
        sku_count=len(views.by_sku),
        movement_count=len(views.ledger),
        skipped_line_count=views.skipped,
    )
    filtered = apply_filters(views, sku=sku, location=location)
    ledger = filtered.ledger[-limit:] if limit > 0 else []

    return PositionsRead(
        summary=summary,
        by_location=filtered.by_location,
        by_sku=filtered.by_sku,
        ledger=ledger,
    )
