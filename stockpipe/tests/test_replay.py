from collections import defaultdict
from datetime import datetime, timedelta, timezone

from stockpipe.app.db.models.core_types import TransferKind
from stockpipe.app.schemas.records import TransferLineRecord, TransferRecord
from stockpipe.services.replay import replay_transfers

IN, MOVE, OUT = TransferKind.inbound, TransferKind.move, TransferKind.outbound
T0 = datetime(2026, 3, 1, 8, 0, 0)


def _qty(result, location, sku):
    return result.table.quantities.get(location, {}).get(sku, 0)


def test_inbound_to_decorated_label_attributes_supplier(make_transfer):
    result = replay_transfers([make_transfer(IN, dst="Acme Co (Warehouse)", lines=[("A", 12)])])

    assert _qty(result, "Supplier Warehouse", "A") == 12
    assert result.table.suppliers_for("Supplier Warehouse", "A") == {"Acme Co": 12}


def test_inbound_to_legacy_label_attributes_same_supplier(make_transfer):
    decorated = replay_transfers([make_transfer(IN, dst="Acme Co (Warehouse)", lines=[("A", 12)])])
    legacy = replay_transfers([make_transfer(IN, dst="Acme Co Warehouse", lines=[("A", 12)])])

    assert legacy.table.attributions == decorated.table.attributions


def test_purchase_order_supplier_has_priority(make_transfer):
    result = replay_transfers(
        [make_transfer(IN, po_id=3, supplier="Globex", dst="Acme Co (Warehouse)", lines=[("A", 5)])]
    )
    assert result.table.suppliers_for("Supplier Warehouse", "A") == {"Globex": 5}


def test_inbound_without_destination_defaults_to_supplier_warehouse(make_transfer):
    result = replay_transfers([make_transfer(IN, src="Acme Co", lines=[("A", 5)])])

    assert _qty(result, "Supplier Warehouse", "A") == 5
    # libellé générique par défaut -> contrepartie comme fournisseur
    assert result.table.suppliers_for("Supplier Warehouse", "A") == {"Acme Co": 5}


def test_generic_supplier_warehouse_without_usable_counterpart(make_transfer):
    result = replay_transfers([make_transfer(IN, src="Production", dst="Supplier Warehouse", lines=[("A", 5)])])

    assert _qty(result, "Supplier Warehouse", "A") == 5
    assert result.table.suppliers_for("Supplier Warehouse", "A") == {}


def test_move_releases_supplier_bucket_and_drops_empty_key(make_transfer):
    result = replay_transfers(
        [
            make_transfer(IN, dst="Acme Co (Warehouse)", lines=[("A", 50)]),
            make_transfer(MOVE, src="Acme Co (Warehouse)", dst="Amazon FBA", lines=[("A", 50)]),
        ]
    )

    assert _qty(result, "Supplier Warehouse", "A") == 0
    assert _qty(result, "Amazon FBA", "A") == 50
    assert "Acme Co" not in result.table.suppliers_for("Supplier Warehouse", "A")


def test_move_partial_release(make_transfer):
    result = replay_transfers(
        [
            make_transfer(IN, dst="Acme Co (Warehouse)", lines=[("A", 50)]),
            make_transfer(IN, dst="Globex (Warehouse)", lines=[("A", 10)]),
            make_transfer(MOVE, src="Acme Co Warehouse", dst="3PL Warehouse", lines=[("A", 20)]),
        ]
    )

    assert result.table.suppliers_for("Supplier Warehouse", "A") == {"Acme Co": 30, "Globex": 10}
    assert _qty(result, "Supplier Warehouse", "A") == 40
    assert _qty(result, "3PL Warehouse", "A") == 20


def test_out_reduces_location_only(make_transfer):
    result = replay_transfers(
        [
            make_transfer(IN, dst="Amazon FBA", lines=[("A", 30)]),
            make_transfer(OUT, src="Amazon FBA", dst="Customer", lines=[("A", 10)]),
        ]
    )

    assert _qty(result, "Amazon FBA", "A") == 20
    # aucune destination créée pour un `out`
    assert "Customer" not in result.table.quantities


def test_out_from_supplier_warehouse_keeps_attribution(make_transfer):
    result = replay_transfers(
        [
            make_transfer(IN, dst="Acme Co (Warehouse)", lines=[("A", 30)]),
            make_transfer(OUT, src="Acme Co (Warehouse)", lines=[("A", 10)]),
        ]
    )

    assert _qty(result, "Supplier Warehouse", "A") == 20
    assert result.table.suppliers_for("Supplier Warehouse", "A") == {"Acme Co": 30}


def test_over_drain_is_recorded_as_negative(make_transfer):
    result = replay_transfers([make_transfer(MOVE, src="3PL Warehouse", dst="Amazon FBA", lines=[("A", 7)])])

    assert _qty(result, "3PL Warehouse", "A") == -7
    assert _qty(result, "Amazon FBA", "A") == 7


def test_other_locations_keep_their_raw_label(make_transfer):
    result = replay_transfers(
        [
            make_transfer(IN, dst="Pop-up Store Lyon", lines=[("A", 3)]),
            make_transfer(MOVE, src="Pop-up Store Lyon", dst="Retail Store Paris", lines=[("A", 1)]),
        ]
    )

    assert _qty(result, "Pop-up Store Lyon", "A") == 2
    assert _qty(result, "Retail Store Paris", "A") == 1


def test_move_deltas_sum_to_zero_per_sku(make_transfer):
    moves = [
        make_transfer(MOVE, src="Acme Co (Warehouse)", dst="3PL Warehouse", lines=[("A", 5), ("B", 2)]),
        make_transfer(MOVE, src="3PL Warehouse", dst="Amazon FBA", lines=[("A", 3)]),
        make_transfer(MOVE, src="Production", dst="Store 12", lines=[("B", 9)]),
    ]
    result = replay_transfers(moves)

    totals = defaultdict(int)
    for skus in result.table.quantities.values():
        for sku, qty in skus.items():
            totals[sku] += qty
    assert dict(totals) == {"A": 0, "B": 0}


def test_conservation_in_minus_out(make_transfer):
    transfers = [
        make_transfer(IN, dst="Acme Co (Warehouse)", lines=[("A", 40)]),
        make_transfer(IN, dst="Amazon FBA", lines=[("A", 15)]),
        make_transfer(MOVE, src="Acme Co (Warehouse)", dst="3PL Warehouse", lines=[("A", 25)]),
        make_transfer(MOVE, src="3PL Warehouse", dst="Amazon FBA", lines=[("A", 20)]),
        make_transfer(OUT, src="Amazon FBA", lines=[("A", 12)]),
        make_transfer(OUT, src="3PL Warehouse", lines=[("A", 1)]),
    ]
    result = replay_transfers(transfers)

    on_hand = sum(skus.get("A", 0) for skus in result.table.quantities.values())
    assert on_hand == (40 + 15) - (12 + 1)


def test_transfers_replayed_in_chronological_order(make_transfer):
    late = make_transfer(MOVE, src="Acme Co (Warehouse)", dst="Amazon FBA", lines=[("A", 5)], at=T0 + timedelta(days=2))
    early = make_transfer(IN, dst="Acme Co (Warehouse)", lines=[("A", 5)], at=T0 + timedelta(days=1))

    result = replay_transfers([late, early])

    assert [m.transfer_id for m in result.ledger] == [early.id, late.id]
    assert result.table.suppliers_for("Supplier Warehouse", "A") == {}


def test_ledger_keeps_every_line(make_transfer):
    transfers = [
        make_transfer(IN, po_id=9, po_number="PO-9", supplier="Acme Co", dst="Acme Co (Warehouse)", lines=[("A", 50), ("B", 1)]),
        make_transfer(MOVE, src="Acme Co (Warehouse)", dst="Amazon FBA", lines=[("A", 50)]),
    ]
    result = replay_transfers(transfers)

    assert len(result.ledger) == 3
    first = result.ledger[0]
    assert first.id == f"{transfers[0].id}-{transfers[0].lines[0].id}"
    assert first.transfer_type is IN
    assert first.po_number == "PO-9"
    assert first.supplier == "Acme Co"
    assert first.to_location == "Acme Co (Warehouse)"
    assert result.ledger[2].supplier == "Acme Co"


def test_malformed_lines_are_skipped(caplog):
    transfer = TransferRecord(
        id=1,
        kind=IN,
        to_location="Amazon FBA",
        created_at=T0,
        lines=[
            TransferLineRecord(id=1, sku=None, quantity=3),
            TransferLineRecord(id=2, sku="  ", quantity=3),
            TransferLineRecord(id=3, sku="A", quantity=None),
            TransferLineRecord(id=4, sku="A", quantity=2),
        ],
    )

    with caplog.at_level("WARNING", logger="stockpipe.services.replay"):
        result = replay_transfers([transfer])

    assert result.skipped == 3
    assert len(result.ledger) == 1
    assert _qty(result, "Amazon FBA", "A") == 2
    assert caplog.text.count("missing sku or quantity") == 3


def test_replay_holds_no_state_between_calls(make_transfer):
    transfers = [
        make_transfer(IN, dst="Acme Co (Warehouse)", lines=[("A", 10)]),
        make_transfer(MOVE, src="Acme Co (Warehouse)", dst="3PL Warehouse", lines=[("A", 4)]),
    ]

    first = replay_transfers(transfers)
    second = replay_transfers(transfers)

    assert first.table.quantities == second.table.quantities
    assert first.table.attributions == second.table.attributions
    assert [m.model_dump() for m in first.ledger] == [m.model_dump() for m in second.ledger]


def test_legacy_transfer_kind_replays_as_move(make_transfer):
    assert TransferKind("transfer") is MOVE
    assert TransferKind("IN") is IN

    result = replay_transfers([make_transfer(TransferKind("transfer"), src="3PL Warehouse", dst="Amazon FBA", lines=[("A", 2)])])
    assert _qty(result, "3PL Warehouse", "A") == -2
    assert _qty(result, "Amazon FBA", "A") == 2


def test_naive_and_aware_timestamps_sort_together(make_transfer):
    # naïf = UTC ; 09:00+02:00 == 07:00 UTC, donc avant 08:00 naïf
    naive = make_transfer(IN, dst="Amazon FBA", lines=[("A", 1)], at=datetime(2026, 3, 1, 8, 0))
    aware = make_transfer(
        OUT, src="Amazon FBA", lines=[("A", 1)], at=datetime(2026, 3, 1, 9, 0, tzinfo=timezone(timedelta(hours=2)))
    )

    result = replay_transfers([naive, aware])

    assert [m.transfer_id for m in result.ledger] == [aware.id, naive.id]
    assert aware.created_at.tzinfo is timezone.utc
