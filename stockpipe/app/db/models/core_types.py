import enum


class POStatus(str, enum.Enum):
    draft = "draft"
    submitted = "submitted"
    approved = "approved"
    in_progress = "in_progress"
    shipped = "shipped"
    complete = "complete"
    cancelled = "cancelled"

    @classmethod
    def _missing_(cls, value):
        # anciens libellés (portail fournisseur / premières versions)
        if isinstance(value, str):
            key = value.strip().lower()
            alias = LEGACY_PO_STATUSES.get(key)
            if alias is not None:
                return cls(alias)
            for member in cls:
                if member.value == key:
                    return member
        return None

    @property
    def terminal(self) -> bool:
        return not PO_TRANSITIONS[self]

    def can_transition(self, target: "POStatus") -> bool:
        return POStatus(target) in PO_TRANSITIONS[self]


LEGACY_PO_STATUSES = {
    "sent_to_supplier": "submitted",
    "accepted": "approved",
    "delivered": "complete",
}

PO_TRANSITIONS = {
    POStatus.draft: {POStatus.submitted, POStatus.cancelled},
    POStatus.submitted: {POStatus.approved, POStatus.cancelled},
    POStatus.approved: {POStatus.in_progress, POStatus.cancelled},
    POStatus.in_progress: {POStatus.shipped, POStatus.cancelled},
    POStatus.shipped: {POStatus.complete, POStatus.cancelled},
    POStatus.complete: set(),
    POStatus.cancelled: set(),
}


class TransferKind(str, enum.Enum):
    inbound = "in"
    move = "move"
    outbound = "out"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            key = value.strip().lower()
            if key == "transfer":
                return cls.move
            for member in cls:
                if member.value == key:
                    return member
        return None


class CanonicalLocation(str, enum.Enum):
    production = "Production"
    supplier_warehouse = "Supplier Warehouse"
    third_party_warehouse = "3PL Warehouse"
    fulfillment_center = "Amazon FBA"
    other = "Other"
