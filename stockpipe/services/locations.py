"""
Canonicalisation des emplacements.

Les libellés d'emplacement sont du texte libre (saisis à la main, anciens
formats, etc.). On les ramène à une étape fixe du pipeline par recherche de
mots-clés, dans cet ordre (premier match gagnant) :

    3PL -> Supplier Warehouse -> Amazon FBA -> Production -> Other

Pour Other, le libellé brut sert de clé (entrepôts ad hoc).

Fonctions pures, aucun accès DB.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from stockpipe.app.db.models.core_types import CanonicalLocation

THIRD_PARTY_MARKERS = ("3pl",)
WAREHOUSE_MARKERS = ("warehouse",)
FULFILLMENT_MARKERS = ("amazon", "fba")
PRODUCTION_MARKERS = ("production",)

# étapes "génériques" : jamais un nom de fournisseur
GENERIC_STAGE_MARKERS = PRODUCTION_MARKERS + THIRD_PARTY_MARKERS + FULFILLMENT_MARKERS

_RULES = (
    (CanonicalLocation.third_party_warehouse, THIRD_PARTY_MARKERS),
    (CanonicalLocation.supplier_warehouse, WAREHOUSE_MARKERS),
    (CanonicalLocation.fulfillment_center, FULFILLMENT_MARKERS),
    (CanonicalLocation.production, PRODUCTION_MARKERS),
)

GENERIC_SUPPLIER_WAREHOUSE = "supplier warehouse"

# valeurs qui ne doivent JAMAIS être écrites comme fournisseur
PLACEHOLDER_SUPPLIERS = frozenset({"supplier", "supplier warehouse", "warehouse"})

# "Acme Co (Warehouse)" : format canonique actuel
_DECORATED_RE = re.compile(r"^\s*(?P<name>.*?)\s*\(\s*warehouse\s*\)\s*$", re.IGNORECASE)
# "Acme Co Warehouse" : ancien format
_LEGACY_RE = re.compile(r"^\s*(?P<name>.*?)\s*warehouse\s*$", re.IGNORECASE)


@dataclass(frozen=True)
class LocationLabel:
    """Étape canonique + libellé brut d'origine (gardé pour l'attribution)."""

    stage: CanonicalLocation
    raw: str

    @property
    def key(self) -> str:
        if self.stage is CanonicalLocation.other:
            return self.raw
        return self.stage.value


def classify(raw: str) -> CanonicalLocation:
    lowered = raw.lower()
    for stage, markers in _RULES:
        if any(marker in lowered for marker in markers):
            return stage
    return CanonicalLocation.other


def canonicalize(raw: str | None) -> LocationLabel | None:
    """None pour un libellé absent ou vide."""
    if raw is None or not raw.strip():
        return None
    return LocationLabel(stage=classify(raw), raw=raw)


def is_generic_label(raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered == GENERIC_SUPPLIER_WAREHOUSE:
        return True
    return any(marker in lowered for marker in GENERIC_STAGE_MARKERS)


# ---------- Cascade d'extraction fournisseur ----------
def _from_purchase_order(raw: str, counterpart: str | None, po_supplier: str | None) -> str | None:
    return po_supplier


def _from_decorated_label(raw: str, counterpart: str | None, po_supplier: str | None) -> str | None:
    m = _DECORATED_RE.match(raw)
    return m.group("name") if m else None


def _from_counterpart(raw: str, counterpart: str | None, po_supplier: str | None) -> str | None:
    if raw.strip().lower() != GENERIC_SUPPLIER_WAREHOUSE:
        return None
    if not counterpart or not counterpart.strip() or is_generic_label(counterpart):
        return None
    return counterpart


def _from_legacy_label(raw: str, counterpart: str | None, po_supplier: str | None) -> str | None:
    m = _LEGACY_RE.match(raw)
    return m.group("name") if m else None


def _from_raw_label(raw: str, counterpart: str | None, po_supplier: str | None) -> str | None:
    lowered = raw.lower()
    if any(marker in lowered for marker in GENERIC_STAGE_MARKERS):
        return None
    return raw


SUPPLIER_CASCADE = (
    _from_purchase_order,
    _from_decorated_label,
    _from_counterpart,
    _from_legacy_label,
    _from_raw_label,
)


def extract_supplier(
    raw: str | None,
    *,
    counterpart: str | None = None,
    po_supplier: str | None = None,
) -> str | None:
    """
    Nom du fournisseur qui détient le stock d'un libellé Supplier Warehouse.

    Premier résultat non vide de la cascade. Un placeholder ("Supplier", ...)
    vaut None : on ne devine pas.
    """
    raw = raw or ""
    for step in SUPPLIER_CASCADE:
        name = step(raw, counterpart, po_supplier)
        name = name.strip() if name else ""
        if name:
            if name.lower() in PLACEHOLDER_SUPPLIERS:
                return None
            return name
    return None


def resolve_supplier(
    label: LocationLabel | None,
    *,
    counterpart: str | None = None,
    po_supplier: str | None = None,
) -> str | None:
    """Attribution uniquement pour l'étape Supplier Warehouse."""
    if label is None or label.stage is not CanonicalLocation.supplier_warehouse:
        return None
    return extract_supplier(label.raw, counterpart=counterpart, po_supplier=po_supplier)


# ---------- Libellés legacy ----------
def decorated_label(raw: str) -> str | None:
    """
    Réécriture "<Nom> Warehouse" -> "<Nom> (Warehouse)".
    None si le libellé est déjà décoré, générique, ou pas au format legacy.
    """
    stripped = raw.strip()
    if _DECORATED_RE.match(stripped) or is_generic_label(stripped):
        return None
    if classify(stripped) is not CanonicalLocation.supplier_warehouse:
        return None
    m = _LEGACY_RE.match(stripped)
    if not m or not m.group("name"):
        return None
    return f"{m.group('name')} (Warehouse)"
