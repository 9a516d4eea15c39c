"""
Procurement service.

Calcule le stock encore "en production" à partir des PO engagés, mais ne lit
RIEN en base : les lectures sont faites par services.sources.

Toute la logique de positions est centralisée dans :
    stockpipe.services.inventory
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable

from stockpipe.app.core.config import settings
from stockpipe.app.core.exceptions import InvalidStatusTransition
from stockpipe.app.db.models.core_types import POStatus, TransferKind
from stockpipe.app.schemas.records import PurchaseOrderRecord, TransferRecord

logger = logging.getLogger(__name__)


# PO réellement engagés dans le stock "Production"
ENGAGED_PO_STATUSES = frozenset(POStatus(s) for s in settings.ENGAGED_PO_STATUSES)


def ensure_transition(current: POStatus | str, target: POStatus | str) -> POStatus:
    """
    Valide une transition du cycle de vie PO et renvoie le statut cible.

        draft -> submitted|cancelled
        submitted -> approved|cancelled
        approved -> in_progress|cancelled
        in_progress -> shipped|cancelled
        shipped -> complete|cancelled
        complete, cancelled : terminaux
    """
    src = POStatus(current)
    dst = POStatus(target)
    if not src.can_transition(dst):
        raise InvalidStatusTransition(src.value, dst.value)
    return dst


@dataclass(frozen=True)
class ProductionResidual:
    po_id: int
    po_number: str | None
    sku: str
    product_name: str | None
    unit: str | None
    ordered: int
    received: int

    @property
    def remaining(self) -> int:
        return self.ordered - self.received


@dataclass
class ResidualResult:
    residuals: list[ProductionResidual] = field(default_factory=list)
    skipped: int = 0


def received_by_po(transfers: Iterable[TransferRecord]) -> dict[tuple[int, str], int]:
    """
    Quantités déjà sorties de production, par (po_id, sku).

    Seuls les transferts `in` rattachés à un PO comptent. Les lignes sans SKU
    ou sans quantité sont ignorées ici (comptées par le replay).
    """
    received: dict[tuple[int, str], int] = defaultdict(int)
    for transfer in transfers:
        if transfer.kind is not TransferKind.inbound or transfer.purchase_order_id is None:
            continue
        for line in transfer.lines:
            if not line.sku or line.quantity is None:
                continue
            received[(transfer.purchase_order_id, line.sku)] += line.quantity
    return dict(received)


def compute_production_residuals(
    purchase_orders: Iterable[PurchaseOrderRecord],
    transfers: Iterable[TransferRecord],
    *,
    statuses: Iterable[POStatus] | None = None,
) -> ResidualResult:
    """
    Stock Production à partir des sources de vérité.

    Règle métier :
        residual(po, sku) = qty_ordered - SUM(qty des transferts `in` du PO)
        residual > 0 -> contribution (Production, sku, residual)
        residual <= 0 -> rien (reçu en totalité, ou sur-réception)

    Propriétés :
    - déterministe
    - idempotent
    - aucun effet de bord
    """
    engaged = frozenset(POStatus(s) for s in statuses) if statuses is not None else ENGAGED_PO_STATUSES
    received = received_by_po(transfers)
    result = ResidualResult()

    for po in purchase_orders:
        # draft / cancelled ne doivent jamais alimenter Production
        if po.status not in engaged:
            continue
        for line in po.lines:
            if not line.sku or line.qty_ordered is None:
                logger.warning("Skipping PO line %s of PO %s: missing sku or quantity", line.id, po.id)
                result.skipped += 1
                continue

            got = received.get((po.id, line.sku), 0)
            if got > line.qty_ordered:
                logger.debug("PO %s over-received for %s (ordered=%s, received=%s)", po.id, line.sku, line.qty_ordered, got)

            residual = ProductionResidual(
                po_id=po.id,
                po_number=po.po_number,
                sku=line.sku,
                product_name=line.product_name,
                unit=line.unit,
                ordered=line.qty_ordered,
                received=got,
            )
            if residual.remaining > 0:
                result.residuals.append(residual)

    return result


__all__ = [
    "ENGAGED_PO_STATUSES",
    "ProductionResidual",
    "ResidualResult",
    "compute_production_residuals",
    "ensure_transition",
    "received_by_po",
]
