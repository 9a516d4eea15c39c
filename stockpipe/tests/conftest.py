from __future__ import annotations

import threading
from datetime import datetime, timedelta
from itertools import count

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from stockpipe.app.api.deps import get_db, get_position_source
from stockpipe.app.db.base import Base
from stockpipe.app.db.models import models_v1  # noqa: F401  (tables)
from stockpipe.app.main import app
from stockpipe.app.schemas.records import (
    PurchaseOrderLineRecord,
    PurchaseOrderRecord,
    TransferLineRecord,
    TransferRecord,
)
from stockpipe.services.sources import SqlPositionSource

T0 = datetime(2026, 1, 1, 8, 0, 0)


@pytest.fixture(scope="function")
def session_factory(tmp_path):
    """
    Base SQLite jetable par test (fichier dans tmp_path).

    Un fichier plutôt que :memory: : les deux lectures du moteur partent
    dans deux threads, avec chacune sa connexion.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'stockpipe-test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    try:
        yield factory
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def db_session(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_position_source] = lambda: SqlPositionSource(session_factory)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


# ---------- Builders d'enregistrements (tests moteur, sans DB) ----------
@pytest.fixture
def make_transfer():
    ids = count(1)
    line_ids = count(1)

    def _make(kind, *, lines, src=None, dst=None, po_id=None, po_number=None, supplier=None, at=None, number=None):
        transfer_id = next(ids)
        return TransferRecord(
            id=transfer_id,
            transfer_number=number or f"TR-{transfer_id:04d}",
            kind=kind,
            purchase_order_id=po_id,
            po_number=po_number,
            supplier_name=supplier,
            from_location=src,
            to_location=dst,
            created_at=at or T0 + timedelta(hours=transfer_id),
            lines=[
                TransferLineRecord(id=next(line_ids), sku=sku, product_name=f"Product {sku}", quantity=qty, unit="unit")
                for sku, qty in lines
            ],
        )

    return _make


@pytest.fixture
def make_po():
    line_ids = count(1)

    def _make(po_id, status, *, lines, supplier=None, number=None):
        return PurchaseOrderRecord(
            id=po_id,
            po_number=number or f"PO-{po_id}",
            status=status,
            supplier_name=supplier,
            lines=[
                PurchaseOrderLineRecord(id=next(line_ids), sku=sku, product_name=f"Product {sku}", unit="unit", qty_ordered=qty)
                for sku, qty in lines
            ],
        )

    return _make


# ---------- Source en mémoire ----------
class FakeSource:
    """Source de lecture en mémoire ; `fail_on` simule une lecture en échec."""

    def __init__(self, purchase_orders=(), transfers=(), fail_on=()):
        self.purchase_orders = list(purchase_orders)
        self.transfers = list(transfers)
        self.fail_on = set(fail_on)
        self.threads = set()

    def load_purchase_orders(self, owner_id, statuses):
        self.threads.add(threading.get_ident())
        if "purchase_orders" in self.fail_on:
            raise ConnectionError("purchase orders unavailable")
        return self.purchase_orders

    def load_transfers(self, owner_id):
        self.threads.add(threading.get_ident())
        if "transfers" in self.fail_on:
            raise TimeoutError("transfers unavailable")
        return self.transfers


@pytest.fixture
def fake_source():
    return FakeSource
