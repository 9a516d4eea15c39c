"""
Filtres SKU / emplacement, appliqués APRÈS agrégation (pas de nouveau replay).

Le filtre emplacement reprend la même règle de mots-clés que la
canonicalisation : filtrer sur Supplier Warehouse accepte tout libellé
contenant "warehouse" qui n'est pas un 3PL.
"""

from __future__ import annotations

from stockpipe.app.db.models.core_types import CanonicalLocation
from stockpipe.app.schemas.positions import LocationRead, MovementRead
from stockpipe.services.aggregation import PositionViews
from stockpipe.services.locations import classify

# identifiants des onglets de l'ancienne UI
_UI_STAGE_IDS = {
    "production": CanonicalLocation.production,
    "supplier_warehouse": CanonicalLocation.supplier_warehouse,
    "3pl_warehouse": CanonicalLocation.third_party_warehouse,
    "amazon_fba": CanonicalLocation.fulfillment_center,
}


def stage_aliases(stage: CanonicalLocation) -> list[str]:
    """Toutes les écritures acceptées pour une étape (minuscules)."""
    camel = "".join(part.capitalize() for part in stage.name.split("_"))
    aliases = {stage.name, stage.value.lower(), camel.lower()}
    aliases.update(ui_id for ui_id, s in _UI_STAGE_IDS.items() if s is stage)
    return sorted(aliases)


_ALIASES = {alias: stage for stage in CanonicalLocation for alias in stage_aliases(stage)}


def resolve_location_filter(value: str | None) -> CanonicalLocation | str | None:
    """
    Étape canonique si `value` en est un alias, sinon le texte (minuscule)
    à chercher par sous-chaîne. None / vide : pas de filtre.
    """
    if value is None or not value.strip():
        return None
    key = value.strip().lower()
    return _ALIASES.get(key, key)


def location_matches(label: str | None, wanted: CanonicalLocation | str) -> bool:
    if not label:
        return False
    if isinstance(wanted, CanonicalLocation):
        return classify(label) is wanted
    return wanted in label.lower()


def sku_matches(sku: str | None, needle: str) -> bool:
    return bool(sku) and needle in sku.lower()


def _trim_location(location: LocationRead, needle: str) -> LocationRead | None:
    rows = [row for row in location.skus if sku_matches(row.sku, needle)]
    if not rows:
        return None
    return location.model_copy(
        update={
            "skus": rows,
            "sku_count": len(rows),
            "total_quantity": sum(r.quantity for r in rows),
        }
    )


def _movement_touches(movement: MovementRead, wanted: CanonicalLocation | str) -> bool:
    return location_matches(movement.from_location, wanted) or location_matches(movement.to_location, wanted)


def apply_filters(
    views: PositionViews,
    *,
    sku: str | None = None,
    location: str | None = None,
) -> PositionViews:
    """
    - location : vue par emplacement + ledger
    - sku : les trois vues ; chaque emplacement est re-taillé et son total recalculé
    """
    by_location = list(views.by_location)
    by_sku = list(views.by_sku)
    ledger = list(views.ledger)

    wanted = resolve_location_filter(location)
    if wanted is not None:
        by_location = [loc for loc in by_location if location_matches(loc.location, wanted)]
        ledger = [m for m in ledger if _movement_touches(m, wanted)]

    if sku is not None and sku.strip():
        needle = sku.strip().lower()
        by_sku = [s for s in by_sku if sku_matches(s.sku, needle)]
        ledger = [m for m in ledger if sku_matches(m.sku, needle)]
        trimmed = (_trim_location(loc, needle) for loc in by_location)
        by_location = [loc for loc in trimmed if loc is not None]

    return PositionViews(by_location=by_location, by_sku=by_sku, ledger=ledger, skipped=views.skipped)
