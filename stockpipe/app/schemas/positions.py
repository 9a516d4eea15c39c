from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from stockpipe.app.db.models.core_types import CanonicalLocation, TransferKind


class LocationSkuRead(BaseModel):
    sku: str
    product_name: str | None = None
    unit_of_measure: str | None = None
    quantity: int
    supplier_name: str | None = None
    suppliers: dict[str, int] = Field(default_factory=dict)


class LocationRead(BaseModel):
    location: str
    stage: CanonicalLocation
    total_quantity: int
    sku_count: int
    skus: list[LocationSkuRead]


class SkuRead(BaseModel):
    sku: str
    product_name: str | None = None
    unit_of_measure: str | None = None
    total_quantity: int
    locations: dict[str, int]
    location_count: int
    # plus gros stock attribué en Supplier Warehouse ; détail complet dans `suppliers`
    supplier_name: str | None = None
    suppliers: dict[str, int] = Field(default_factory=dict)


class MovementRead(BaseModel):
    id: str
    transfer_id: int
    transfer_number: str | None = None
    transfer_date: datetime
    sku: str
    product_name: str | None = None
    quantity: int
    unit_of_measure: str | None = None
    transfer_type: TransferKind
    from_location: str | None = None
    to_location: str | None = None
    po_number: str | None = None
    supplier: str | None = None


class PositionsSummary(BaseModel):
    location_count: int
    sku_count: int
    movement_count: int
    skipped_line_count: int = 0


class PositionsRead(BaseModel):
    """
    Réponse de réconciliation (READ ONLY, recalculée à chaque appel).
    - summary : compteurs AVANT filtrage
    - ledger : N derniers mouvements APRÈS filtrage
    """

    summary: PositionsSummary
    by_location: list[LocationRead]
    by_sku: list[SkuRead]
    ledger: list[MovementRead]


class LabelRewrite(BaseModel):
    transfer_id: int
    transfer_number: str | None = None
    field: str
    current: str
    proposed: str


class LabelAuditRead(BaseModel):
    total_transfers: int
    needs_update: int
    rewrites: list[LabelRewrite]


class StageRead(BaseModel):
    stage: CanonicalLocation
    label: str
    aliases: list[str]
