"""
Replay des mouvements.

On rejoue TOUT l'historique des transferts, dans l'ordre chronologique, sur
une table emplacement -> sku -> quantité (et une table d'attribution
fournisseur pour Supplier Warehouse). Aucun solde courant n'est stocké.

Effet par ligne :
    in   : +q sur la destination (fournisseur attribué si Supplier Warehouse)
    move : -q sur la source, +q sur la destination (net zéro)
    out  : -q sur la source uniquement (sortie de l'univers suivi)

Les soldes négatifs (sur-consommation) sont conservés tels quels.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from stockpipe.app.db.models.core_types import CanonicalLocation, TransferKind
from stockpipe.app.schemas.positions import MovementRead
from stockpipe.app.schemas.records import TransferLineRecord, TransferRecord
from stockpipe.services.locations import LocationLabel, canonicalize, resolve_supplier

logger = logging.getLogger(__name__)

# destination par défaut d'un `in` sans libellé
DEFAULT_INBOUND_LOCATION = CanonicalLocation.supplier_warehouse.value


@dataclass(frozen=True)
class ProductInfo:
    product_name: str | None
    unit: str | None


class PositionTable:
    """
    Tables d'accumulation privées à une invocation (pas de verrou).

    quantities   : location key -> sku -> qty
    attributions : location key -> sku -> supplier -> qty
    """

    def __init__(self) -> None:
        self.quantities: dict[str, dict[str, int]] = {}
        self.stages: dict[str, CanonicalLocation] = {}
        self.attributions: dict[str, dict[str, dict[str, int]]] = {}
        self.catalog: dict[str, ProductInfo] = {}

    def remember(self, sku: str, product_name: str | None, unit: str | None) -> None:
        # premier libellé rencontré pour le SKU
        if sku not in self.catalog:
            self.catalog[sku] = ProductInfo(product_name=product_name, unit=unit)

    def adjust(self, location: LocationLabel, sku: str, delta: int) -> None:
        key = location.key
        self.stages.setdefault(key, location.stage)
        skus = self.quantities.setdefault(key, {})
        skus[sku] = skus.get(sku, 0) + delta

    def attribute(self, location: LocationLabel, sku: str, supplier: str, qty: int) -> None:
        buckets = self.attributions.setdefault(location.key, {}).setdefault(sku, {})
        buckets[supplier] = buckets.get(supplier, 0) + qty

    def release(self, location: LocationLabel, sku: str, supplier: str, qty: int) -> None:
        buckets = self.attributions.get(location.key, {}).get(sku)
        if not buckets or supplier not in buckets:
            return
        buckets[supplier] -= qty
        if buckets[supplier] <= 0:
            del buckets[supplier]

    def suppliers_for(self, location_key: str, sku: str) -> dict[str, int]:
        return dict(self.attributions.get(location_key, {}).get(sku, {}))


@dataclass
class ReplayResult:
    table: PositionTable
    ledger: list[MovementRead] = field(default_factory=list)
    skipped: int = 0


@dataclass(frozen=True)
class _Endpoints:
    source: LocationLabel | None
    destination: LocationLabel | None
    source_supplier: str | None
    destination_supplier: str | None


def _resolve_endpoints(transfer: TransferRecord) -> _Endpoints:
    """Canonicalise les deux extrémités, une fois par transfert."""
    source = canonicalize(transfer.from_location)
    destination = canonicalize(transfer.to_location)
    if transfer.kind is TransferKind.inbound and destination is None:
        destination = canonicalize(DEFAULT_INBOUND_LOCATION)
    if transfer.kind is not TransferKind.move:
        # seul un `move` débite/crédite les deux côtés
        if transfer.kind is TransferKind.inbound:
            source = None
        else:
            destination = None

    source_supplier = resolve_supplier(
        source,
        counterpart=transfer.to_location,
        po_supplier=transfer.supplier_name,
    )
    destination_supplier = resolve_supplier(
        destination,
        counterpart=transfer.from_location,
        po_supplier=transfer.supplier_name,
    )
    for label, supplier in ((source, source_supplier), (destination, destination_supplier)):
        if label is not None and label.stage is CanonicalLocation.supplier_warehouse and supplier is None:
            logger.debug(
                "No supplier attributable for transfer %s (location=%r, from=%r, to=%r)",
                transfer.id,
                label.raw,
                transfer.from_location,
                transfer.to_location,
            )
    return _Endpoints(source, destination, source_supplier, destination_supplier)


def _is_malformed(line: TransferLineRecord) -> bool:
    return not line.sku or not line.sku.strip() or line.quantity is None


def _ledger_entry(transfer: TransferRecord, line: TransferLineRecord, ends: _Endpoints) -> MovementRead:
    supplier = transfer.supplier_name or ends.destination_supplier or ends.source_supplier
    return MovementRead(
        id=f"{transfer.id}-{line.id}",
        transfer_id=transfer.id,
        transfer_number=transfer.transfer_number,
        transfer_date=transfer.created_at,
        sku=line.sku,
        product_name=line.product_name,
        quantity=line.quantity,
        unit_of_measure=line.unit,
        transfer_type=transfer.kind,
        from_location=transfer.from_location,
        to_location=transfer.to_location,
        po_number=transfer.po_number,
        supplier=supplier,
    )


def _apply_line(table: PositionTable, kind: TransferKind, sku: str, qty: int, ends: _Endpoints) -> None:
    if ends.source is not None:
        table.adjust(ends.source, sku, -qty)
        # un `out` ne touche pas aux attributions fournisseur
        if kind is TransferKind.move and ends.source_supplier is not None:
            table.release(ends.source, sku, ends.source_supplier, qty)

    if ends.destination is not None:
        table.adjust(ends.destination, sku, qty)
        if ends.destination_supplier is not None:
            table.attribute(ends.destination, sku, ends.destination_supplier, qty)


def chronological(transfers: Iterable[TransferRecord]) -> list[TransferRecord]:
    """created_at croissant, id pour départager (ordre stable)."""
    return sorted(transfers, key=lambda t: (t.created_at, t.id))


def replay_transfers(
    transfers: Iterable[TransferRecord],
    *,
    table: PositionTable | None = None,
) -> ReplayResult:
    """
    Rejoue les transferts et renvoie les tables + le ledger complet.

    Le ledger garde chaque ligne valide, quel que soit le solde final.
    Les lignes sans SKU ou sans quantité sont ignorées (comptées, loggées).
    """
    result = ReplayResult(table=table if table is not None else PositionTable())

    for transfer in chronological(transfers):
        ends = _resolve_endpoints(transfer)
        for line in transfer.lines:
            if _is_malformed(line):
                logger.warning(
                    "Skipping line %s of transfer %s: missing sku or quantity",
                    line.id,
                    transfer.id,
                )
                result.skipped += 1
                continue

            result.table.remember(line.sku, line.product_name, line.unit)
            _apply_line(result.table, transfer.kind, line.sku, line.quantity, ends)
            result.ledger.append(_ledger_entry(transfer, line, ends))

    return result
