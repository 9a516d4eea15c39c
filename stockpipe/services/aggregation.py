"""
Agrégation des positions : vue par emplacement, vue par SKU, ledger.

Les deux vues appliquent chacune leur filtre "quantité != 0" : une position
qui retombe à zéro disparaît des deux vues, mais reste dans le ledger.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from stockpipe.app.db.models.core_types import CanonicalLocation
from stockpipe.app.schemas.positions import (
    LocationRead,
    LocationSkuRead,
    MovementRead,
    SkuRead,
)
from stockpipe.services.locations import LocationLabel
from stockpipe.services.procurement import ProductionResidual
from stockpipe.services.replay import PositionTable

logger = logging.getLogger(__name__)

PRODUCTION = LocationLabel(stage=CanonicalLocation.production, raw=CanonicalLocation.production.value)
SUPPLIER_WAREHOUSE_KEY = CanonicalLocation.supplier_warehouse.value

# ordre du pipeline pour la vue par emplacement
STAGE_ORDER = {stage: rank for rank, stage in enumerate(CanonicalLocation)}


@dataclass
class PositionViews:
    by_location: list[LocationRead] = field(default_factory=list)
    by_sku: list[SkuRead] = field(default_factory=list)
    ledger: list[MovementRead] = field(default_factory=list)
    skipped: int = 0


def merge_residuals(table: PositionTable, residuals: Iterable[ProductionResidual]) -> None:
    for residual in residuals:
        table.remember(residual.sku, residual.product_name, residual.unit)
        table.adjust(PRODUCTION, residual.sku, residual.remaining)


def primary_supplier(buckets: dict[str, int]) -> str | None:
    """
    Fournisseur avec le plus gros stock attribué.
    À égalité : le premier attribué. Le détail reste exposé (`suppliers`)
    pour laisser l'appelant choisir une autre règle.
    """
    best: str | None = None
    best_qty = 0
    for name, qty in buckets.items():
        if qty > best_qty:
            best, best_qty = name, qty
    return best


def _active_suppliers(table: PositionTable, location_key: str, sku: str) -> dict[str, int]:
    return {name: qty for name, qty in table.suppliers_for(location_key, sku).items() if qty > 0}


def _ordered_locations(table: PositionTable) -> list[str]:
    keys = list(table.quantities)
    # tri stable : rang de l'étape, puis ordre d'apparition (Other)
    return sorted(keys, key=lambda key: STAGE_ORDER[table.stages[key]])


def location_view(table: PositionTable) -> list[LocationRead]:
    out: list[LocationRead] = []
    for key in _ordered_locations(table):
        rows: list[LocationSkuRead] = []
        for sku, qty in table.quantities[key].items():
            if qty == 0:
                continue
            info = table.catalog.get(sku)
            suppliers = _active_suppliers(table, key, sku)
            rows.append(
                LocationSkuRead(
                    sku=sku,
                    product_name=info.product_name if info else None,
                    unit_of_measure=info.unit if info else None,
                    quantity=qty,
                    supplier_name=primary_supplier(suppliers),
                    suppliers=suppliers,
                )
            )
        if not rows:
            continue
        out.append(
            LocationRead(
                location=key,
                stage=table.stages[key],
                total_quantity=sum(r.quantity for r in rows),
                sku_count=len(rows),
                skus=rows,
            )
        )
    return out


def sku_view(table: PositionTable) -> list[SkuRead]:
    per_sku: dict[str, dict[str, int]] = {}
    for key in _ordered_locations(table):
        for sku, qty in table.quantities[key].items():
            per_sku.setdefault(sku, {})
            if qty != 0:
                per_sku[sku][key] = qty

    out: list[SkuRead] = []
    for sku in table.catalog:
        locations = per_sku.get(sku, {})
        if not locations:
            continue
        # attribution seulement si la position Supplier Warehouse existe encore
        suppliers = _active_suppliers(table, SUPPLIER_WAREHOUSE_KEY, sku) if SUPPLIER_WAREHOUSE_KEY in locations else {}
        info = table.catalog[sku]
        out.append(
            SkuRead(
                sku=sku,
                product_name=info.product_name,
                unit_of_measure=info.unit,
                total_quantity=sum(locations.values()),
                locations=locations,
                location_count=len(locations),
                supplier_name=primary_supplier(suppliers),
                suppliers=suppliers,
            )
        )
    return out


def build_views(
    table: PositionTable,
    residuals: Iterable[ProductionResidual],
    ledger: list[MovementRead],
    *,
    skipped: int = 0,
) -> PositionViews:
    merge_residuals(table, residuals)
    views = PositionViews(
        by_location=location_view(table),
        by_sku=sku_view(table),
        ledger=list(ledger),
        skipped=skipped,
    )
    logger.info(
        "Aggregated %s locations, %s skus, %s movements (%s lines skipped)",
        len(views.by_location),
        len(views.by_sku),
        len(views.ledger),
        skipped,
    )
    return views
