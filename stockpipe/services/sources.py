"""
Lectures source (PO + transferts) pour le moteur.

Deux lectures en masse, indépendantes : elles partent en parallèle (une
session chacune) puis on attend les deux avant le replay. Un échec de l'une
OU l'autre est fatal : UpstreamReadError, jamais de résultat partiel.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, Collection, Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from stockpipe.app.core.config import settings
from stockpipe.app.core.exceptions import UpstreamReadError
from stockpipe.app.db.models.core_types import POStatus
from stockpipe.app.db.models.models_v1 import (
    PurchaseOrder,
    PurchaseOrderLine,
    Transfer,
)
from stockpipe.app.schemas.records import (
    PurchaseOrderLineRecord,
    PurchaseOrderRecord,
    TransferLineRecord,
    TransferRecord,
)

logger = logging.getLogger(__name__)


class PositionSource(Protocol):
    def load_purchase_orders(self, owner_id: str, statuses: Collection[POStatus]) -> list[PurchaseOrderRecord]:
        ...

    def load_transfers(self, owner_id: str) -> list[TransferRecord]:
        ...


@dataclass(frozen=True)
class SourceSnapshot:
    purchase_orders: list[PurchaseOrderRecord] = field(default_factory=list)
    transfers: list[TransferRecord] = field(default_factory=list)


# ---------- Adaptateur SQLAlchemy ----------
def _po_record(po: PurchaseOrder) -> PurchaseOrderRecord:
    return PurchaseOrderRecord(
        id=po.id,
        po_number=po.po_number,
        status=po.status,
        supplier_name=po.supplier.name if po.supplier else None,
        lines=[
            PurchaseOrderLineRecord(
                id=ln.id,
                sku=ln.product.sku if ln.product else None,
                product_name=ln.product.name if ln.product else None,
                unit=ln.product.uom if ln.product else None,
                qty_ordered=ln.qty_ordered,
            )
            for ln in po.lines
        ],
    )


def _transfer_record(t: Transfer) -> TransferRecord:
    po = t.purchase_order
    return TransferRecord(
        id=t.id,
        transfer_number=t.transfer_number,
        kind=t.kind,
        purchase_order_id=t.purchase_order_id,
        po_number=po.po_number if po else None,
        supplier_name=po.supplier.name if po and po.supplier else None,
        from_location=t.from_location,
        to_location=t.to_location,
        created_at=t.created_at,
        lines=[
            TransferLineRecord(
                id=ln.id,
                sku=ln.sku,
                product_name=ln.product_name,
                quantity=ln.quantity,
                unit=ln.unit,
            )
            for ln in t.lines
        ],
    )


class SqlPositionSource:
    """
    Lecture seule. Chaque lecture ouvre sa propre session (thread-safe).
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def load_purchase_orders(self, owner_id: str, statuses: Collection[POStatus]) -> list[PurchaseOrderRecord]:
        stmt = (
            select(PurchaseOrder)
            .options(
                selectinload(PurchaseOrder.supplier),
                selectinload(PurchaseOrder.lines).selectinload(PurchaseOrderLine.product),
            )
            .where(PurchaseOrder.owner_id == owner_id)
            .where(PurchaseOrder.status.in_(list(statuses)))
            .order_by(PurchaseOrder.id.asc())
        )
        with self._session_factory() as db:
            rows = db.execute(stmt).scalars().all()
            return [_po_record(po) for po in rows]

    def load_transfers(self, owner_id: str) -> list[TransferRecord]:
        stmt = (
            select(Transfer)
            .options(
                selectinload(Transfer.lines),
                selectinload(Transfer.purchase_order).selectinload(PurchaseOrder.supplier),
            )
            .where(Transfer.owner_id == owner_id)
            .order_by(Transfer.created_at.asc(), Transfer.id.asc())
        )
        with self._session_factory() as db:
            rows = db.execute(stmt).scalars().all()
            return [_transfer_record(t) for t in rows]


# ---------- Fetch ----------
def fetch_snapshot(
    source: PositionSource,
    owner_id: str,
    *,
    statuses: Collection[POStatus],
    concurrent: bool | None = None,
    timeout: float | None = None,
) -> SourceSnapshot:
    readers = {
        "purchase_orders": partial(source.load_purchase_orders, owner_id, statuses),
        "transfers": partial(source.load_transfers, owner_id),
    }
    concurrent = settings.CONCURRENT_FETCH if concurrent is None else concurrent
    timeout = settings.FETCH_TIMEOUT_SECONDS if timeout is None else timeout

    results: dict[str, list] = {}
    failures: dict[str, BaseException] = {}

    if concurrent:
        # pas de `with` : sa sortie attendrait une lecture bloquée au-delà du timeout
        pool = ThreadPoolExecutor(max_workers=len(readers), thread_name_prefix="stockpipe-read")
        try:
            futures = {name: pool.submit(read) for name, read in readers.items()}
            deadline = time.monotonic() + timeout
            for name, future in futures.items():
                try:
                    results[name] = future.result(timeout=max(deadline - time.monotonic(), 0))
                except Exception as exc:
                    # future encore en cours : c'est le délai qui a expiré, pas la lecture
                    failures[name] = exc if future.done() else TimeoutError(f"{name} read exceeded {timeout}s")
        finally:
            # lecture en cours abandonnée : le thread finit seul, son résultat est ignoré
            pool.shutdown(wait=False, cancel_futures=True)
    else:
        for name, read in readers.items():
            try:
                results[name] = read()
            except Exception as exc:
                failures[name] = exc

    if failures:
        for name, exc in failures.items():
            logger.error("Upstream read %r failed for owner %s: %r", name, owner_id, exc)
        raise UpstreamReadError(failures) from next(iter(failures.values()))

    snapshot = SourceSnapshot(purchase_orders=results["purchase_orders"], transfers=results["transfers"])
    logger.info(
        "Fetched %s purchase orders and %s transfers for owner %s",
        len(snapshot.purchase_orders),
        len(snapshot.transfers),
        owner_id,
    )
    return snapshot
