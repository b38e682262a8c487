"""Erreurs métier du moteur de dossiers.

Les classes héritent des exceptions de Django REST Framework afin que le
gestionnaire d'exceptions de DRF les traduise en réponses HTTP.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from rest_framework import exceptions


class DossierNotFound(exceptions.NotFound):
    """Ressource absente ou n'appartenant pas à l'utilisateur."""

    default_detail = "Ressource introuvable ou accès refusé."


class DossierValidationError(exceptions.ValidationError):
    """Problème structurel dans les données reçues."""


class QuantityExceeded(DossierValidationError):
    """Le nombre de documents dépasse ``quantite_max`` pour la demande."""

    def __init__(
        self,
        *,
        quantite_max: int,
        current_valid: int,
        current_refused: int = 0,
    ) -> None:
        self.quantite_max = quantite_max
        self.current_valid = current_valid
        self.remaining_slots = max(quantite_max - current_valid, 0)

        refused_part = f" et {current_refused} refusé(s)" if current_refused else ""
        message = (
            f"Maximum {quantite_max} document(s) autorisé(s). "
            f"Vous avez déjà {current_valid} document(s) valide(s) uploadé(s)"
            f"{refused_part}. Vous ne pouvez ajouter que "
            f"{self.remaining_slots} document(s) supplémentaire(s)."
        )
        super().__init__(message)


class AuthorizationError(exceptions.PermissionDenied):
    """Identifiants n'appartenant pas au comptable, listés pour l'appelant."""

    def __init__(self, invalid_ids: Iterable[object], label: str = "clients") -> None:
        self.invalid_ids: Sequence[str] = [str(value) for value in invalid_ids]
        super().__init__(
            f"Identifiants {label} invalides: {', '.join(self.invalid_ids)}"
        )


class TransientAggregationError(Exception):
    """Échec du recalcul de progression exécuté après la transaction principale."""

    def __init__(self, dossier_id: object, cause: BaseException) -> None:
        self.dossier_id = dossier_id
        self.cause = cause
        super().__init__(
            f"Recalcul de la progression du dossier {dossier_id} impossible: {cause}"
        )


__all__ = [
    "AuthorizationError",
    "DossierNotFound",
    "DossierValidationError",
    "QuantityExceeded",
    "TransientAggregationError",
]
