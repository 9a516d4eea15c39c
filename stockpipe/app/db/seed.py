from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from stockpipe.app.db.session import SessionLocal
from stockpipe.app.db.models.models_v1 import (
    Product,
    PurchaseOrder,
    PurchaseOrderLine,
    Supplier,
    Transfer,
    TransferLine,
)
from stockpipe.app.db.models.core_types import POStatus, TransferKind

DEMO_OWNER = "demo-seller"


def _transfer(db, *, number, kind, at, lines, po=None, src=None, dst=None):
    t = Transfer(
        transfer_number=number,
        owner_id=DEMO_OWNER,
        kind=kind,
        purchase_order_id=po.id if po else None,
        from_location=src,
        to_location=dst,
        created_at=at,
    )
    for sku, name, qty in lines:
        t.lines.append(TransferLine(sku=sku, product_name=name, quantity=qty, unit="unit"))
    db.add(t)
    return t


def run_seed(db: Session | None = None) -> None:
    own_session = db is None
    db = db or SessionLocal()
    try:
        # déjà seedé : on ne touche à rien
        if db.scalar(select(PurchaseOrder).where(PurchaseOrder.po_number == "DEMO-PO-001")):
            print("SEED SKIPPED: demo data already present")
            return

        # 1) Fournisseurs + produits
        acme = Supplier(name="Acme Co")
        globex = Supplier(name="Globex")
        mug = Product(sku="MUG-001", name="Ceramic Mug", uom="unit")
        tee = Product(sku="TEE-002", name="Cotton Tee", uom="unit")
        db.add_all([acme, globex, mug, tee])
        db.flush()

        # 2) PO : un engagé, un brouillon (ignoré par le calcul Production)
        t0 = datetime(2026, 1, 5, 9, 0, 0, tzinfo=timezone.utc)
        po = PurchaseOrder(po_number="DEMO-PO-001", owner_id=DEMO_OWNER, supplier_id=acme.id, status=POStatus.approved, created_at=t0)
        po.lines.append(PurchaseOrderLine(product_id=mug.id, qty_ordered=100))
        draft = PurchaseOrder(po_number="DEMO-PO-002", owner_id=DEMO_OWNER, supplier_id=globex.id, status=POStatus.draft, created_at=t0)
        draft.lines.append(PurchaseOrderLine(product_id=tee.id, qty_ordered=500))
        db.add_all([po, draft])
        db.flush()

        # 3) Transferts : tous les types, tous les formats de libellé
        _transfer(db, number="TR-0001", kind=TransferKind.inbound, at=t0 + timedelta(days=10), po=po,
                  src="Production", dst="Acme Co (Warehouse)", lines=[("MUG-001", "Ceramic Mug", 40)])
        _transfer(db, number="TR-0002", kind=TransferKind.inbound, at=t0 + timedelta(days=11),
                  dst="Globex Warehouse", lines=[("TEE-002", "Cotton Tee", 30)])
        _transfer(db, number="TR-0003", kind=TransferKind.move, at=t0 + timedelta(days=12),
                  src="Acme Co (Warehouse)", dst="3PL Warehouse", lines=[("MUG-001", "Ceramic Mug", 25)])
        _transfer(db, number="TR-0004", kind=TransferKind.move, at=t0 + timedelta(days=14),
                  src="3PL Warehouse", dst="Amazon FBA", lines=[("MUG-001", "Ceramic Mug", 20)])
        _transfer(db, number="TR-0005", kind=TransferKind.outbound, at=t0 + timedelta(days=20),
                  src="Amazon FBA", lines=[("MUG-001", "Ceramic Mug", 5)])

        db.commit()
        print(f"SEED OK: owner={DEMO_OWNER}, suppliers=2, products=2, purchase_orders=2, transfers=5")
    finally:
        if own_session:
            db.close()


if __name__ == "__main__":
    run_seed()
