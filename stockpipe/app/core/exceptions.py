"""
Exceptions du moteur de réconciliation.

Les services lèvent ces erreurs, la couche HTTP les traduit en HTTPException.
"""

from __future__ import annotations


class ReconciliationError(Exception):
    """Base de toutes les erreurs du moteur."""


class UpstreamReadError(ReconciliationError):
    """
    Une (ou plusieurs) lecture(s) source a échoué.

    Fatal pour la requête : on ne renvoie jamais une réconciliation partielle,
    les résiduels Production et les positions par emplacement dépendent
    l'un de l'autre.
    """

    def __init__(self, failures: dict[str, BaseException]):
        self.failures = dict(failures)
        names = ", ".join(sorted(self.failures))
        super().__init__(f"Upstream read failed: {names}")


class InvalidStatusTransition(ReconciliationError):
    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot transition from {current} to {target}")
