"""
Enregistrements source lus par le moteur (lecture seule).

Le moteur ne voit jamais les modèles SQLAlchemy : les adaptateurs de lecture
(services.sources) les convertissent en ces schémas.
"""
from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stockpipe.app.db.models.core_types import POStatus, TransferKind


class PurchaseOrderLineRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int | None = None
    sku: str | None = None
    product_name: str | None = None
    unit: str | None = None
    qty_ordered: int | None = None


class PurchaseOrderRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    po_number: str | None = None
    status: POStatus
    supplier_name: str | None = None
    lines: list[PurchaseOrderLineRecord] = Field(default_factory=list)


class TransferLineRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int | None = None
    sku: str | None = None
    product_name: str | None = None
    quantity: int | None = None
    unit: str | None = None


class TransferRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    transfer_number: str | None = None
    kind: TransferKind
    purchase_order_id: int | None = None
    # PO lié (jointure) : numéro + fournisseur "officiel"
    po_number: str | None = None
    supplier_name: str | None = None
    from_location: str | None = None
    to_location: str | None = None
    created_at: datetime
    lines: list[TransferLineRecord] = Field(default_factory=list)

    @field_validator("created_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        # SQLite renvoie des dates naïves, Postgres des dates aware : tout en UTC aware pour le tri
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
