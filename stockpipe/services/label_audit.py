"""
Audit des libellés d'entrepôt au format legacy ("Acme Co Warehouse").

Propose la réécriture décorée ("Acme Co (Warehouse)") sans rien écrire :
la mise à jour des transferts relève du chemin d'écriture.
"""

from __future__ import annotations

from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from stockpipe.app.db.models.models_v1 import Transfer
from stockpipe.app.schemas.positions import LabelAuditRead, LabelRewrite
from stockpipe.services.locations import decorated_label


def audit_labels(rows: Iterable[tuple[int, str | None, str | None, str | None]]) -> LabelAuditRead:
    """rows : (id, transfer_number, from_location, to_location)"""
    total = 0
    touched: set[int] = set()
    rewrites: list[LabelRewrite] = []

    for transfer_id, transfer_number, from_location, to_location in rows:
        total += 1
        for field_name, current in (("from_location", from_location), ("to_location", to_location)):
            if not current:
                continue
            proposed = decorated_label(current)
            if proposed is None:
                continue
            touched.add(transfer_id)
            rewrites.append(
                LabelRewrite(
                    transfer_id=transfer_id,
                    transfer_number=transfer_number,
                    field=field_name,
                    current=current,
                    proposed=proposed,
                )
            )

    return LabelAuditRead(total_transfers=total, needs_update=len(touched), rewrites=rewrites)


def audit_owner_labels(db: Session, owner_id: str) -> LabelAuditRead:
    rows = db.execute(
        select(Transfer.id, Transfer.transfer_number, Transfer.from_location, Transfer.to_location)
        .where(Transfer.owner_id == owner_id)
        .order_by(Transfer.id.asc())
    ).all()
    return audit_labels((int(r[0]), r[1], r[2], r[3]) for r in rows)
