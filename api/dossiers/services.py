"""Services du moteur de cycle de vie des dossiers documentaires."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Iterable, List, Mapping, Optional, Sequence

from django.conf import settings
from django.db import transaction
from django.db.models import Count, Prefetch, Q
from django.utils import timezone
from rest_framework.exceptions import APIException

from . import lifecycle
from .exceptions import (
    AuthorizationError,
    DossierNotFound,
    DossierValidationError,
    QuantityExceeded,
    TransientAggregationError,
)
from .models import (
    Client,
    Comptable,
    Document,
    DocumentRequest,
    DocumentUpload,
    Dossier,
    DossierBatch,
    DossierTemplate,
    Notification,
    NotificationType,
    StatusDocumentRequest,
    StatusDossier,
    StatusUpload,
)
from .notifications import notify, notify_clients
from .storage_service import default_bucket_name

logger = logging.getLogger(__name__)

REQUEST_TEMPLATE_FIELDS = (
    "titre",
    "description",
    "type_document",
    "obligatoire",
    "quantite_min",
    "quantite_max",
    "format_accepte",
    "taille_max_mo",
    "date_echeance",
    "instructions",
)

VALIDATION_ACTIONS = (StatusUpload.VALIDE, StatusUpload.REFUSE)


@dataclass
class UploadedFile:
    """Métadonnées d'un fichier déjà déposé par le client."""

    nom: str
    nom_original: str
    taille: int
    type_fichier: str
    chemin: str
    bucket_name: Optional[str] = None


@dataclass
class OperationResult:
    """Succès d'une opération principale et avertissement éventuel du recalcul."""

    success: bool
    message: str
    progress_warning: Optional[str] = None
    data: dict = field(default_factory=dict)

    @property
    def progress_refreshed(self) -> bool:
        return self.progress_warning is None


@dataclass
class DossierSummary:
    id: object
    nom: str
    client_id: object
    client_name: str
    status: str
    documents_requis: int


@dataclass
class BatchCreationResult:
    batch_id: object
    dossiers_created: int
    dossiers: List[DossierSummary]


def _urgency_days() -> int:
    return getattr(settings, "DOSSIERS_URGENCY_DAYS", 3)


def _now_label(moment=None) -> str:
    return timezone.localtime(moment or timezone.now()).strftime("%d/%m/%Y %H:%M:%S")


def _dossier_queryset():
    return Dossier.objects.prefetch_related(
        Prefetch(
            "document_requests",
            queryset=DocumentRequest.objects.prefetch_related("uploads").order_by(
                "created_at"
            ),
        )
    )


def _request_progresses(dossier: Dossier) -> List[lifecycle.RequestProgress]:
    return [
        lifecycle.compute_request_status(
            request.quantite_min, [upload.status for upload in request.uploads.all()]
        )
        for request in dossier.document_requests.all()
    ]


def live_progress(dossier: Dossier) -> lifecycle.DossierProgress:
    """Progression calculée à partir des uploads préchargés, sans écriture."""

    return lifecycle.compute_dossier_progress(_request_progresses(dossier))


# ---------------------------------------------------------------------------
# Propriété des clients
# ---------------------------------------------------------------------------


def _unique(values: Iterable[object]) -> list:
    seen = set()
    ordered = []
    for value in values:
        key = str(value)
        if key not in seen:
            seen.add(key)
            ordered.append(value)
    return ordered


def get_owned_clients(comptable: Comptable, client_ids: Sequence[object]) -> List[Client]:
    """Retourne les clients demandés, tous rattachés au comptable.

    Lève :class:`AuthorizationError` avec la liste des identifiants étrangers.
    """

    requested = _unique(client_ids)
    clients = {
        str(client.id): client
        for client in Client.objects.filter(comptable=comptable, id__in=requested)
    }
    invalid_ids = [value for value in requested if str(value) not in clients]
    if invalid_ids:
        raise AuthorizationError(invalid_ids)
    return [clients[str(value)] for value in requested]


# ---------------------------------------------------------------------------
# Création et duplication de lots
# ---------------------------------------------------------------------------


def _create_dossier_for_client(
    *,
    batch: DossierBatch,
    client: Client,
    comptable: Comptable,
    nom: str,
    request_templates: Sequence[Mapping[str, object]],
) -> Dossier:
    dossier = Dossier.objects.create(
        nom=f"{nom} - {client.raison_sociale}",
        description=batch.description,
        periode=batch.periode,
        date_echeance=batch.date_echeance,
        status=StatusDossier.EN_ATTENTE,
        pourcentage=0,
        documents_upload=0,
        documents_requis=len(request_templates),
        client=client,
        comptable=comptable,
        dossier_template=batch.dossier_template,
        dossier_batch=batch,
    )
    DocumentRequest.objects.bulk_create(
        [
            DocumentRequest(
                **{key: template[key] for key in REQUEST_TEMPLATE_FIELDS if key in template},
                status=StatusDocumentRequest.EN_ATTENTE,
                client=client,
                comptable=comptable,
                dossier=dossier,
            )
            for template in request_templates
        ]
    )
    return dossier


def _summarize(dossier: Dossier, client: Client) -> DossierSummary:
    return DossierSummary(
        id=dossier.id,
        nom=dossier.nom,
        client_id=client.id,
        client_name=client.raison_sociale,
        status=dossier.status,
        documents_requis=dossier.documents_requis,
    )


def _create_batch(
    *,
    comptable: Comptable,
    clients: Sequence[Client],
    nom: str,
    description: str,
    periode: str,
    date_echeance,
    dossier_template: Optional[DossierTemplate],
    request_templates: Sequence[Mapping[str, object]],
    notification_nom: str,
) -> BatchCreationResult:
    with transaction.atomic():
        batch = DossierBatch.objects.create(
            nom=nom,
            description=description or "",
            periode=periode or "",
            date_echeance=date_echeance,
            comptable=comptable,
            dossier_template=dossier_template,
        )
        summaries = []
        for client in clients:
            dossier = _create_dossier_for_client(
                batch=batch,
                client=client,
                comptable=comptable,
                nom=nom,
                request_templates=request_templates,
            )
            summaries.append(_summarize(dossier, client))

        notify_clients(
            clients,
            titre="Nouveau dossier documentaire",
            message=(
                f'Un nouveau dossier "{notification_nom}" a été créé et '
                "nécessite votre attention."
            ),
        )

    logger.info(
        "Lot %s créé par le comptable %s: %d dossier(s)",
        batch.id,
        comptable.id,
        len(summaries),
    )
    return BatchCreationResult(
        batch_id=batch.id, dossiers_created=len(summaries), dossiers=summaries
    )


def create_multi_client_dossier(
    comptable: Comptable,
    *,
    client_ids: Sequence[object],
    nom: str,
    document_requests: Sequence[Mapping[str, object]],
    description: str = "",
    periode: str = "",
    date_echeance=None,
    dossier_template: Optional[DossierTemplate] = None,
) -> BatchCreationResult:
    """Crée un dossier par client, dans un seul lot, de façon atomique."""

    if not client_ids:
        raise DossierValidationError("Au moins un client doit être sélectionné.")
    if not nom or not nom.strip():
        raise DossierValidationError("Le nom du dossier est obligatoire.")
    if not document_requests:
        raise DossierValidationError("Au moins une demande de document est requise.")
    if dossier_template is not None and dossier_template.comptable_id != comptable.id:
        raise DossierNotFound("Modèle de dossier introuvable ou accès refusé.")

    clients = get_owned_clients(comptable, client_ids)
    nom = nom.strip()

    return _create_batch(
        comptable=comptable,
        clients=clients,
        nom=nom,
        description=description,
        periode=periode,
        date_echeance=date_echeance,
        dossier_template=dossier_template,
        request_templates=document_requests,
        notification_nom=nom,
    )


def duplicate_dossier_to_clients(
    original_dossier_id,
    target_client_ids: Sequence[object],
    comptable: Comptable,
    new_nom: Optional[str] = None,
) -> BatchCreationResult:
    """Recopie la structure d'un dossier (jamais ses uploads) vers d'autres clients."""

    original = (
        Dossier.objects.select_related("dossier_template")
        .prefetch_related("document_requests")
        .filter(id=original_dossier_id, comptable=comptable)
        .first()
    )
    if original is None:
        raise DossierNotFound("Dossier original introuvable.")
    if not target_client_ids:
        raise DossierValidationError("Au moins un client cible doit être sélectionné.")

    clients = get_owned_clients(comptable, target_client_ids)
    request_templates = [
        {key: getattr(request, key) for key in REQUEST_TEMPLATE_FIELDS}
        for request in original.document_requests.all()
    ]
    batch_nom = (new_nom or "").strip() or f"{original.nom} - Copie"

    return _create_batch(
        comptable=comptable,
        clients=clients,
        nom=batch_nom,
        description=original.description,
        periode=original.periode,
        date_echeance=original.date_echeance,
        dossier_template=original.dossier_template,
        request_templates=request_templates,
        notification_nom=batch_nom,
    )


# ---------------------------------------------------------------------------
# Recalcul de la progression
# ---------------------------------------------------------------------------


def update_dossier_progress(dossier_id) -> lifecycle.DossierProgress:
    """Recalcule le statut des demandes puis celui du dossier.

    Les écritures n'ont lieu que si une valeur change, ce qui rend le
    recalcul idempotent (aucune notification n'est réémise).
    """

    now = timezone.now()
    with transaction.atomic():
        # Le verrou sur le dossier sérialise les recalculs concurrents.
        dossier = (
            Dossier.objects.select_for_update(of=("self",))
            .select_related("client")
            .filter(id=dossier_id)
            .first()
        )
        if dossier is None:
            raise DossierNotFound("Dossier introuvable.")

        requests = (
            DocumentRequest.objects.filter(dossier=dossier)
            .prefetch_related("uploads")
            .order_by("created_at")
        )
        progresses = []
        for request in requests:
            progress = lifecycle.compute_request_status(
                request.quantite_min, [upload.status for upload in request.uploads.all()]
            )
            progresses.append(progress)
            if progress.status == request.status:
                continue

            logger.debug(
                "Demande %s: %s -> %s", request.id, request.status, progress.status
            )
            DocumentRequest.objects.filter(id=request.id).update(
                status=progress.status, updated_at=now
            )
            if progress.reset_after_refusal:
                notify(
                    client=dossier.client,
                    titre="Document refusé - Action requise",
                    message=(
                        f'Votre document "{request.titre}" a été refusé. Veuillez '
                        "uploader un nouveau document pour continuer."
                    ),
                )
            request.status = progress.status

        result = lifecycle.compute_dossier_progress(progresses)
        status = result.status
        # Une validation explicite du comptable n'est pas défaite tant que
        # les uploads justifient toujours un dossier complet.
        if dossier.status == StatusDossier.VALIDE and status == StatusDossier.COMPLET:
            status = StatusDossier.VALIDE

        changed = (
            dossier.pourcentage != result.pourcentage
            or dossier.documents_upload != result.valid_upload_count
            or dossier.status != status
        )
        if changed:
            entering_complet = (
                status == StatusDossier.COMPLET and dossier.status != StatusDossier.COMPLET
            )
            logger.info(
                "Dossier %s: %s%% -> %s%%, %s -> %s",
                dossier.id,
                dossier.pourcentage,
                result.pourcentage,
                dossier.status,
                status,
            )
            dossier.pourcentage = result.pourcentage
            dossier.documents_upload = result.valid_upload_count
            dossier.status = status
            if entering_complet:
                dossier.date_completion = now
            dossier.save(
                update_fields=[
                    "pourcentage",
                    "documents_upload",
                    "status",
                    "date_completion",
                    "updated_at",
                ]
            )
        else:
            logger.debug("Dossier %s inchangé", dossier.id)

    return result


def refresh_dossier_progress_safely(dossier_id) -> Optional[str]:
    """Recalcul exécuté après la transaction principale.

    Retourne le message d'erreur au lieu de le propager: l'opération
    principale est déjà validée en base et ne doit pas être annulée.
    """

    try:
        update_dossier_progress(dossier_id)
    except Exception as exc:
        error = TransientAggregationError(dossier_id, exc)
        logger.exception("%s", error)
        return str(error)
    return None


def refresh_all_dossiers(comptable: Optional[Comptable] = None) -> dict:
    """Recalcule tous les dossiers non validés, par exemple depuis une tâche planifiée."""

    queryset = Dossier.objects.exclude(status=StatusDossier.VALIDE)
    if comptable is not None:
        queryset = queryset.filter(comptable=comptable)

    refreshed = 0
    failures = []
    for dossier_id in queryset.values_list("id", flat=True):
        warning = refresh_dossier_progress_safely(dossier_id)
        if warning is None:
            refreshed += 1
        else:
            failures.append(warning)
    return {"refreshed": refreshed, "failed": len(failures), "errors": failures}


# ---------------------------------------------------------------------------
# Validation par le comptable
# ---------------------------------------------------------------------------


def validate_document_upload(
    upload_id,
    action: str,
    comptable: Comptable,
    commentaire: Optional[str] = None,
) -> OperationResult:
    """Valide ou refuse un upload puis rafraîchit la progression du dossier."""

    if action not in VALIDATION_ACTIONS:
        raise DossierValidationError("L'action doit être VALIDE ou REFUSE.")

    label = "validé" if action == StatusUpload.VALIDE else "refusé"
    now = timezone.now()

    with transaction.atomic():
        upload = (
            DocumentUpload.objects.select_for_update(of=("self",))
            .select_related("document", "document_request__client")
            .filter(id=upload_id, document_request__comptable=comptable)
            .first()
        )
        if upload is None:
            raise DossierNotFound("Upload introuvable ou accès refusé.")

        document_request = upload.document_request
        upload.status = action
        upload.date_validation = now
        upload.commentaire = (
            commentaire or f"{label.capitalize()} par le comptable le {_now_label(now)}"
        )
        upload.save(update_fields=["status", "date_validation", "commentaire", "updated_at"])

        comment_part = f" Commentaire: {commentaire}" if commentaire else ""
        notify(
            client=document_request.client,
            titre=f"Document {label}",
            message=(
                f'Votre document "{upload.document.nom_original}" a été {label} '
                f"par votre comptable.{comment_part}"
            ),
        )

    logger.info("Upload %s %s par le comptable %s", upload.id, label, comptable.id)

    warning = refresh_dossier_progress_safely(document_request.dossier_id)
    return OperationResult(
        success=True,
        message=f"Document {label} avec succès",
        progress_warning=warning,
        data={"upload": upload},
    )


def bulk_validate_documents(
    upload_ids: Sequence[object],
    action: str,
    comptable: Comptable,
    commentaire: Optional[str] = None,
) -> dict:
    """Applique la même décision à plusieurs uploads; les échecs sont collectés."""

    validated = 0
    errors = []
    warnings = []
    for upload_id in upload_ids:
        try:
            result = validate_document_upload(upload_id, action, comptable, commentaire)
        except APIException as exc:
            errors.append(f"Upload {upload_id}: {exc.detail}")
            continue
        validated += 1
        if result.progress_warning:
            warnings.append(result.progress_warning)

    return {
        "success": not errors,
        "validated": validated,
        "errors": errors,
        "progress_warnings": warnings,
    }


def _get_complete_dossier(dossier_id, comptable: Comptable) -> Dossier:
    dossier = (
        _dossier_queryset()
        .select_related("client")
        .filter(id=dossier_id, comptable=comptable, status=StatusDossier.COMPLET)
        .first()
    )
    if dossier is None:
        raise DossierNotFound(
            "Dossier introuvable, accès refusé ou dossier incomplet."
        )
    return dossier


def validate_complete_dossier(
    dossier_id, comptable: Comptable, commentaire: Optional[str] = None
) -> OperationResult:
    """Signature finale du comptable: ``COMPLET`` -> ``VALIDE``."""

    dossier = _get_complete_dossier(dossier_id, comptable)

    unsatisfied = [
        request.titre
        for request in dossier.document_requests.all()
        if not lifecycle.is_fully_validated(
            request.quantite_min, [upload.status for upload in request.uploads.all()]
        )
    ]
    if unsatisfied:
        raise DossierValidationError(
            "Impossible de valider le dossier: exigences non satisfaites pour "
            + ", ".join(unsatisfied)
        )

    with transaction.atomic():
        dossier.status = StatusDossier.VALIDE
        dossier.save(update_fields=["status", "updated_at"])

        comment_part = f" Commentaire: {commentaire}" if commentaire else ""
        notify(
            client=dossier.client,
            type=NotificationType.DOSSIER,
            titre="Dossier validé et archivé",
            message=(
                f'Félicitations ! Votre dossier "{dossier.nom}" a été validé et '
                f"archivé par votre comptable.{comment_part}"
            ),
        )

    logger.info("Dossier %s validé par le comptable %s", dossier.id, comptable.id)
    return OperationResult(success=True, message="Dossier validé et archivé avec succès")


def archive_dossier(dossier_id, comptable: Comptable) -> OperationResult:
    dossier = _get_complete_dossier(dossier_id, comptable)

    with transaction.atomic():
        dossier.status = StatusDossier.VALIDE
        dossier.save(update_fields=["status", "updated_at"])
        notify(
            client=dossier.client,
            type=NotificationType.DOSSIER,
            titre="Dossier archivé",
            message=f'Votre dossier "{dossier.nom}" a été validé et archivé.',
        )

    logger.info("Dossier %s archivé par le comptable %s", dossier.id, comptable.id)
    return OperationResult(success=True, message="Dossier archivé avec succès")


# ---------------------------------------------------------------------------
# Dépôt de documents par le client
# ---------------------------------------------------------------------------


def get_client_document_request(dossier_id, request_id, client: Client) -> DocumentRequest:
    document_request = (
        DocumentRequest.objects.select_related("dossier")
        .filter(id=request_id, dossier_id=dossier_id, client=client)
        .first()
    )
    if document_request is None:
        raise DossierNotFound("Demande de document introuvable ou accès refusé.")
    return document_request


def upload_documents_for_request(
    dossier_id,
    request_id,
    client: Client,
    files: Sequence[UploadedFile],
) -> OperationResult:
    """Enregistre les fichiers déposés pour une demande et notifie le comptable.

    Les uploads refusés ne comptent pas dans ``quantite_max``.
    """

    if not files:
        raise DossierValidationError("Aucun fichier fourni.")

    now = timezone.now()
    with transaction.atomic():
        document_request = (
            DocumentRequest.objects.select_for_update(of=("self",))
            .select_related("dossier__comptable", "client")
            .filter(id=request_id, dossier_id=dossier_id, client=client)
            .first()
        )
        if document_request is None:
            raise DossierNotFound("Demande de document introuvable ou accès refusé.")

        validated, review, refused = lifecycle.count_upload_statuses(
            document_request.uploads.values_list("status", flat=True)
        )
        current_valid = validated + review
        quantite_max = document_request.quantite_max
        if quantite_max and current_valid + len(files) > quantite_max:
            logger.info(
                "Dépôt refusé pour la demande %s: %d valide(s) + %d > %d",
                document_request.id,
                current_valid,
                len(files),
                quantite_max,
            )
            raise QuantityExceeded(
                quantite_max=quantite_max,
                current_valid=current_valid,
                current_refused=refused,
            )

        dossier = document_request.dossier
        comptable = dossier.comptable
        uploads = []
        for uploaded in files:
            document = Document.objects.create(
                nom=uploaded.nom,
                nom_original=uploaded.nom_original,
                chemin=uploaded.chemin,
                bucket_name=uploaded.bucket_name or default_bucket_name(),
                taille=uploaded.taille,
                type_document=document_request.type_document,
                type_fichier=uploaded.type_fichier,
                client=client,
                comptable=comptable,
            )
            uploads.append(
                DocumentUpload.objects.create(
                    document=document,
                    document_request=document_request,
                    status=StatusUpload.EN_REVISION,
                    commentaire=f"Uploadé par le client le {_now_label(now)}",
                )
            )

        document_request.status = StatusDocumentRequest.RECU
        document_request.date_completion = now
        document_request.save(update_fields=["status", "date_completion", "updated_at"])

        notify(
            comptable=comptable,
            titre="Nouveaux documents reçus",
            message=(
                f"{len(uploads)} nouveau(x) document(s) reçu(s) de "
                f'{client.raison_sociale} pour "{document_request.titre}" '
                f'dans le dossier "{dossier.nom}"'
            ),
        )

    logger.info(
        "%d document(s) déposé(s) pour la demande %s", len(uploads), document_request.id
    )

    warning = refresh_dossier_progress_safely(dossier_id)
    return OperationResult(
        success=True,
        message=(
            f"{len(uploads)} document(s) uploadé(s) avec succès et en cours de révision"
        ),
        progress_warning=warning,
        data={"uploads": uploads},
    )


# ---------------------------------------------------------------------------
# Lectures côté comptable
# ---------------------------------------------------------------------------


def get_dossier_details(dossier_id, comptable: Comptable) -> Dossier:
    dossier = (
        Dossier.objects.select_related("client", "dossier_batch")
        .prefetch_related(
            Prefetch(
                "document_requests",
                queryset=DocumentRequest.objects.prefetch_related(
                    Prefetch(
                        "uploads",
                        queryset=DocumentUpload.objects.select_related("document"),
                    )
                ).order_by("created_at"),
            )
        )
        .filter(id=dossier_id, comptable=comptable)
        .first()
    )
    if dossier is None:
        raise DossierNotFound("Dossier introuvable ou accès refusé.")
    return dossier


def get_comptable_clients(comptable: Comptable):
    return Client.objects.filter(comptable=comptable).order_by("raison_sociale")


def get_comptable_dossier_templates(comptable: Comptable):
    return (
        DossierTemplate.objects.filter(comptable=comptable, actif=True)
        .prefetch_related("documents_requis")
        .order_by("nom")
    )


def _mean(values: Sequence[int]) -> int:
    if not values:
        return 0
    return lifecycle.round_half_up(sum(values) / len(values))


def _status_counts(statuses: Sequence[str]) -> dict:
    return {
        "completed_dossiers": sum(1 for s in statuses if s == StatusDossier.COMPLET),
        "in_progress_dossiers": sum(1 for s in statuses if s == StatusDossier.EN_COURS),
        "pending_dossiers": sum(1 for s in statuses if s == StatusDossier.EN_ATTENTE),
    }


def get_comptable_dossiers_progress(comptable: Comptable, batch_id=None) -> dict:
    queryset = _dossier_queryset().select_related("client").filter(comptable=comptable)
    if batch_id:
        queryset = queryset.filter(dossier_batch_id=batch_id)

    dossiers = []
    for dossier in queryset.order_by("-created_at"):
        progress = live_progress(dossier)
        dossiers.append(
            {
                "id": dossier.id,
                "nom": dossier.nom,
                "client_name": dossier.client.raison_sociale,
                "progress": progress.pourcentage,
                "documents_upload": dossier.documents_upload,
                "documents_requis": dossier.documents_requis,
                "status": dossier.status,
            }
        )

    return {
        "batch_id": batch_id,
        "total_dossiers": len(dossiers),
        **_status_counts([d["status"] for d in dossiers]),
        "overall_progress": _mean([d["progress"] for d in dossiers]),
        "dossiers": dossiers,
    }


def get_batch_summary(batch_id, comptable: Comptable) -> dict:
    batch = (
        DossierBatch.objects.select_related("dossier_template")
        .prefetch_related(
            Prefetch(
                "dossiers",
                queryset=Dossier.objects.select_related("client").annotate(
                    total_requests=Count("document_requests", distinct=True),
                    completed_requests=Count(
                        "document_requests",
                        filter=Q(document_requests__status=StatusDocumentRequest.VALIDE),
                        distinct=True,
                    ),
                ),
            )
        )
        .filter(id=batch_id, comptable=comptable)
        .first()
    )
    if batch is None:
        raise DossierNotFound("Lot introuvable ou accès refusé.")

    dossiers = [
        {
            "id": dossier.id,
            "nom": dossier.nom,
            "client": {
                "id": dossier.client.id,
                "raison_sociale": dossier.client.raison_sociale,
            },
            "status": dossier.status,
            "progress": lifecycle.completion_percentage(
                dossier.completed_requests, dossier.total_requests
            ),
            "total_requests": dossier.total_requests,
            "completed_requests": dossier.completed_requests,
            "created_at": dossier.created_at,
        }
        for dossier in batch.dossiers.all()
    ]

    return {
        "id": batch.id,
        "nom": batch.nom,
        "description": batch.description,
        "periode": batch.periode,
        "date_echeance": batch.date_echeance,
        "dossier_template": batch.dossier_template.nom if batch.dossier_template else None,
        "created_at": batch.created_at,
        "dossiers": dossiers,
        "summary": {
            "total_dossiers": len(dossiers),
            **_status_counts([d["status"] for d in dossiers]),
            "average_progress": _mean([d["progress"] for d in dossiers]),
        },
    }


def get_comptable_statistics(comptable: Comptable) -> dict:
    dossiers = Dossier.objects.filter(comptable=comptable)
    total = dossiers.count()
    completed = dossiers.filter(status=StatusDossier.COMPLET).count()
    limit = getattr(settings, "DOSSIERS_RECENT_ACTIVITY_LIMIT", 10)

    recent_activity = (
        DocumentUpload.objects.filter(document_request__comptable=comptable)
        .select_related("document", "document_request__client")
        .order_by("-created_at")[:limit]
    )

    return {
        "total_dossiers": total,
        "completed_dossiers": completed,
        "in_progress_dossiers": dossiers.filter(status=StatusDossier.EN_COURS).count(),
        "pending_dossiers": dossiers.filter(status=StatusDossier.EN_ATTENTE).count(),
        "total_clients": Client.objects.filter(comptable=comptable).count(),
        "completion_rate": lifecycle.completion_percentage(completed, total),
        "recent_activity": [
            {
                "id": upload.id,
                "document_name": upload.document.nom_original,
                "client_name": upload.document_request.client.raison_sociale,
                "status": upload.status,
                "date_upload": upload.date_upload,
            }
            for upload in recent_activity
        ],
    }


def get_documents_by_status(comptable: Comptable, status: Optional[str] = None):
    queryset = DocumentUpload.objects.filter(
        document_request__comptable=comptable
    ).select_related(
        "document", "document_request__client", "document_request__dossier"
    )
    if status:
        queryset = queryset.filter(status=status)

    limit = getattr(settings, "DOSSIERS_DOCUMENTS_LIST_LIMIT", 50)
    return queryset.order_by("-created_at")[:limit]


def get_pending_validations(comptable: Comptable):
    return get_documents_by_status(comptable, StatusUpload.EN_REVISION)


def get_comptable_document(document_id, comptable: Comptable) -> Document:
    document = Document.objects.filter(id=document_id, comptable=comptable).first()
    if document is None:
        raise DossierNotFound("Document introuvable ou accès refusé.")
    return document


# ---------------------------------------------------------------------------
# Lectures côté client
# ---------------------------------------------------------------------------


def _urgency_limit(now):
    return now + timedelta(days=_urgency_days())


def _is_urgent(dossier: Dossier, now) -> bool:
    """Échéance dans la fenêtre d'urgence ou déjà dépassée."""

    if dossier.date_echeance is None:
        return False
    return dossier.date_echeance <= _urgency_limit(now)


def _urgent_filter(now) -> Q:
    return Q(date_echeance__isnull=False, date_echeance__lte=_urgency_limit(now))


def _apply_live_progress(dossier: Dossier, now) -> lifecycle.DossierProgress:
    progress = live_progress(dossier)
    # Valeurs d'affichage uniquement, jamais sauvegardées ici.
    dossier.pourcentage = progress.pourcentage
    dossier.documents_upload = progress.valid_upload_count
    dossier.is_urgent = _is_urgent(dossier, now)
    return progress


def _client_dossier_queryset():
    return Dossier.objects.select_related("comptable__user", "dossier_batch").prefetch_related(
        Prefetch(
            "document_requests",
            queryset=DocumentRequest.objects.prefetch_related(
                Prefetch(
                    "uploads",
                    queryset=DocumentUpload.objects.select_related("document").order_by(
                        "-created_at"
                    ),
                )
            ).order_by("created_at"),
        )
    )


def get_client_dossiers(client: Client) -> dict:
    now = timezone.now()
    dossiers = list(
        _client_dossier_queryset().filter(client=client).order_by("-created_at")
    )
    for dossier in dossiers:
        _apply_live_progress(dossier, now)

    statuses = [dossier.status for dossier in dossiers]
    return {
        "dossiers": dossiers,
        "summary": {
            "total": len(dossiers),
            "en_cours": statuses.count(StatusDossier.EN_COURS),
            "en_attente": statuses.count(StatusDossier.EN_ATTENTE),
            "complets": statuses.count(StatusDossier.COMPLET),
            "valides": statuses.count(StatusDossier.VALIDE),
            "urgents": sum(1 for dossier in dossiers if dossier.is_urgent),
        },
    }


def get_client_dossier_details(dossier_id, client: Client) -> Dossier:
    dossier = _client_dossier_queryset().filter(id=dossier_id, client=client).first()
    if dossier is None:
        raise DossierNotFound("Dossier introuvable ou accès refusé.")

    progress = _apply_live_progress(dossier, timezone.now())
    pending_requests = sum(
        1
        for request in dossier.document_requests.all()
        if not request.uploads.all()
    )
    dossier.summary = {
        "total_requests": progress.total_requests,
        "completed_requests": progress.completed_requests,
        "pending_requests": pending_requests,
        "total_uploads": progress.valid_upload_count,
    }
    return dossier


def get_client_statistics(client: Client) -> dict:
    now = timezone.now()
    dossiers = Dossier.objects.filter(client=client)
    total = dossiers.count()
    completed = dossiers.filter(status=StatusDossier.COMPLET).count()

    return {
        "total_dossiers": total,
        "completed_dossiers": completed,
        "in_progress_dossiers": dossiers.filter(status=StatusDossier.EN_COURS).count(),
        "pending_dossiers": dossiers.filter(status=StatusDossier.EN_ATTENTE).count(),
        "total_document_uploads": DocumentUpload.objects.filter(
            document_request__client=client,
            status__in=[StatusUpload.VALIDE, StatusUpload.EN_REVISION],
        ).count(),
        "pending_document_requests": DocumentRequest.objects.filter(
            client=client, status=StatusDocumentRequest.EN_ATTENTE
        ).count(),
        "urgent_dossiers": dossiers.filter(_urgent_filter(now)).count(),
        "completion_rate": lifecycle.completion_percentage(completed, total),
        "recent_notifications": list(
            Notification.objects.filter(client=client).order_by("-created_at")[:5]
        ),
    }


__all__ = [
    "BatchCreationResult",
    "DossierSummary",
    "OperationResult",
    "UploadedFile",
    "archive_dossier",
    "bulk_validate_documents",
    "create_multi_client_dossier",
    "duplicate_dossier_to_clients",
    "get_batch_summary",
    "get_client_document_request",
    "get_client_dossier_details",
    "get_client_dossiers",
    "get_client_statistics",
    "get_comptable_clients",
    "get_comptable_document",
    "get_comptable_dossier_templates",
    "get_comptable_dossiers_progress",
    "get_comptable_statistics",
    "get_documents_by_status",
    "get_dossier_details",
    "get_owned_clients",
    "get_pending_validations",
    "live_progress",
    "refresh_all_dossiers",
    "refresh_dossier_progress_safely",
    "update_dossier_progress",
    "upload_documents_for_request",
    "validate_complete_dossier",
    "validate_document_upload",
]
