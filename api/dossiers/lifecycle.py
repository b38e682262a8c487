"""Règles de calcul du statut des demandes et des dossiers.

Ces fonctions ne touchent pas la base de données: elles reçoivent les
statuts des uploads et retournent la projection à persister. Le statut
stocké en base n'est jamais utilisé comme entrée d'une décision.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

from .models import StatusDocumentRequest, StatusDossier, StatusUpload


@dataclass(frozen=True)
class RequestProgress:
    """Résultat du calcul pour une demande de document."""

    quantite_min: int
    validated_count: int
    review_count: int
    refused_count: int
    status: str
    reset_after_refusal: bool = False

    @property
    def valid_count(self) -> int:
        return self.validated_count + self.review_count

    @property
    def total_count(self) -> int:
        return self.validated_count + self.review_count + self.refused_count

    @property
    def is_completed(self) -> bool:
        """Quantité minimale atteinte, validée ou encore en révision."""

        return (
            self.validated_count >= self.quantite_min
            or self.valid_count >= self.quantite_min
        )


@dataclass(frozen=True)
class DossierProgress:
    """Résultat agrégé pour un dossier."""

    total_requests: int
    completed_requests: int
    pourcentage: int
    valid_upload_count: int
    validated_upload_count: int
    refused_upload_count: int
    has_any_uploads: bool
    has_only_refused_uploads: bool
    status: str


def count_upload_statuses(statuses: Iterable[str]) -> tuple[int, int, int]:
    """Retourne ``(validés, en révision, refusés)``."""

    validated = review = refused = 0
    for status in statuses:
        if status == StatusUpload.VALIDE:
            validated += 1
        elif status == StatusUpload.EN_REVISION:
            review += 1
        elif status == StatusUpload.REFUSE:
            refused += 1
    return validated, review, refused


def compute_request_status(quantite_min: int, statuses: Iterable[str]) -> RequestProgress:
    """Calcule le statut d'une demande à partir des statuts de ses uploads.

    Ordre de priorité:

    1. assez d'uploads validés -> ``VALIDE``;
    2. quantité atteinte avec des uploads en révision -> ``RECU``;
    3. progression partielle -> ``RECU``;
    4. uniquement des refus -> ``EN_ATTENTE`` avec ``reset_after_refusal``;
    5. aucun upload -> ``EN_ATTENTE``.
    """

    validated, review, refused = count_upload_statuses(statuses)
    valid = validated + review
    reset_after_refusal = False

    if validated >= quantite_min:
        status = StatusDocumentRequest.VALIDE
    elif valid >= quantite_min:
        status = StatusDocumentRequest.RECU
    elif review > 0 or validated > 0:
        status = StatusDocumentRequest.RECU
    elif refused > 0 and valid == 0:
        status = StatusDocumentRequest.EN_ATTENTE
        reset_after_refusal = True
    else:
        status = StatusDocumentRequest.EN_ATTENTE

    return RequestProgress(
        quantite_min=quantite_min,
        validated_count=validated,
        review_count=review,
        refused_count=refused,
        status=status,
        reset_after_refusal=reset_after_refusal,
    )


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def completion_percentage(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    return round_half_up(100 * completed / total)


def compute_dossier_progress(requests: Sequence[RequestProgress]) -> DossierProgress:
    """Agrège les demandes d'un dossier.

    Le pourcentage compte une demande comme terminée dès que la quantité
    minimale est déposée, même en révision. Le statut ``COMPLET`` exige en
    plus que tous les uploads comptabilisés soient validés.
    """

    total_requests = len(requests)
    completed_requests = sum(1 for request in requests if request.is_completed)
    pourcentage = completion_percentage(completed_requests, total_requests)

    valid_upload_count = sum(request.valid_count for request in requests)
    validated_upload_count = sum(request.validated_count for request in requests)
    refused_upload_count = sum(request.refused_count for request in requests)
    has_any_uploads = any(request.total_count > 0 for request in requests)
    has_only_refused_uploads = all(request.valid_count == 0 for request in requests)

    if (
        pourcentage == 100
        and validated_upload_count == valid_upload_count
        and valid_upload_count > 0
    ):
        status = StatusDossier.COMPLET
    elif has_any_uploads and not has_only_refused_uploads:
        status = StatusDossier.EN_COURS
    else:
        status = StatusDossier.EN_ATTENTE

    return DossierProgress(
        total_requests=total_requests,
        completed_requests=completed_requests,
        pourcentage=pourcentage,
        valid_upload_count=valid_upload_count,
        validated_upload_count=validated_upload_count,
        refused_upload_count=refused_upload_count,
        has_any_uploads=has_any_uploads,
        has_only_refused_uploads=has_only_refused_uploads,
        status=status,
    )


def is_fully_validated(quantite_min: int, statuses: Iterable[str]) -> bool:
    """Vrai si la demande compte assez d'uploads validés par le comptable."""

    validated, _, _ = count_upload_statuses(statuses)
    return validated >= quantite_min


__all__ = [
    "DossierProgress",
    "RequestProgress",
    "completion_percentage",
    "compute_dossier_progress",
    "compute_request_status",
    "count_upload_statuses",
    "is_fully_validated",
]
