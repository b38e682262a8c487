"""Vues de l'API de dossiers pour les comptables et leurs clients."""

from __future__ import annotations

import uuid

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from . import services
from .models import Dossier, StatusUpload
from .notifications import list_client_notifications, mark_notification_as_read
from .permissions import IsClient, IsComptable
from .serializers import (
    BulkValidateDocumentsSerializer,
    ClientDossierDetailSerializer,
    ClientDossierSerializer,
    ClientSerializer,
    CreateMultiClientDossierSerializer,
    DocumentUploadSerializer,
    DossierDetailSerializer,
    DossierSerializer,
    DossierTemplateSerializer,
    DuplicateDossierSerializer,
    NotificationSerializer,
    UploadDocumentsSerializer,
    UploadListSerializer,
    UploadUrlRequestSerializer,
    ValidateDocumentSerializer,
    ValidateDossierSerializer,
    serialize_batch_result,
    serialize_operation_result,
)
from .storage_service import (
    blob_exists,
    build_document_bucket_key,
    default_bucket_name,
    generate_download_signed_url,
    generate_upload_signed_url,
)

UUID_LOOKUP = r"[0-9a-fA-F-]{36}"


def _uuid_param(request, name: str):
    value = request.query_params.get(name)
    if not value:
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        raise ValidationError({name: "Identifiant invalide."})


class ComptableViewMixin:
    permission_classes = [IsAuthenticated, IsComptable]
    lookup_value_regex = UUID_LOOKUP

    def get_comptable(self):
        return self.request.user.comptable


class ClientViewMixin:
    permission_classes = [IsAuthenticated, IsClient]
    lookup_value_regex = UUID_LOOKUP

    def get_client(self):
        return self.request.user.client_profile


class ComptableDossierViewSet(ComptableViewMixin, mixins.ListModelMixin, viewsets.GenericViewSet):
    """Dossiers du comptable: création par lot, suivi et validation."""

    serializer_class = DossierSerializer

    def get_queryset(self):
        queryset = Dossier.objects.filter(comptable=self.get_comptable()).select_related(
            "client", "dossier_batch"
        )
        batch_id = _uuid_param(self.request, "batch")
        if batch_id:
            queryset = queryset.filter(dossier_batch_id=batch_id)
        status_filter = self.request.query_params.get("status")
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset.order_by("-created_at")

    def retrieve(self, request, pk=None):
        dossier = services.get_dossier_details(pk, self.get_comptable())
        return Response(DossierDetailSerializer(dossier).data)

    @action(
        detail=False,
        methods=["post"],
        url_path="multi-client",
        url_name="multi-client",
    )
    def create_multi_client(self, request):
        serializer = CreateMultiClientDossierSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = services.create_multi_client_dossier(
            self.get_comptable(),
            client_ids=data["client_ids"],
            nom=data["nom"],
            description=data["description"],
            periode=data["periode"],
            date_echeance=data["date_echeance"],
            dossier_template=data["dossier_template"],
            document_requests=data["document_requests"],
        )
        return Response(serialize_batch_result(result), status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["get"], url_path="progress", url_name="progress")
    def progress(self, request):
        batch_id = _uuid_param(request, "batch")
        summary = services.get_comptable_dossiers_progress(
            self.get_comptable(), batch_id=batch_id
        )
        return Response(summary)

    @action(detail=False, methods=["get"], url_path="stats", url_name="stats")
    def statistics(self, request):
        return Response(services.get_comptable_statistics(self.get_comptable()))

    @action(detail=False, methods=["get"], url_path="clients", url_name="clients")
    def clients(self, request):
        clients = services.get_comptable_clients(self.get_comptable())
        return Response(ClientSerializer(clients, many=True).data)

    @action(detail=False, methods=["get"], url_path="templates", url_name="templates")
    def templates(self, request):
        templates = services.get_comptable_dossier_templates(self.get_comptable())
        return Response(DossierTemplateSerializer(templates, many=True).data)

    @action(detail=True, methods=["post"], url_path="duplicate", url_name="duplicate")
    def duplicate(self, request, pk=None):
        serializer = DuplicateDossierSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = services.duplicate_dossier_to_clients(
            pk,
            serializer.validated_data["client_ids"],
            self.get_comptable(),
            new_nom=serializer.validated_data["nom"],
        )
        return Response(serialize_batch_result(result), status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="validate", url_name="validate")
    def validate_dossier(self, request, pk=None):
        serializer = ValidateDossierSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = services.validate_complete_dossier(
            pk,
            self.get_comptable(),
            commentaire=serializer.validated_data.get("commentaire"),
        )
        return Response(serialize_operation_result(result))

    @action(detail=True, methods=["post"], url_path="archive", url_name="archive")
    def archive(self, request, pk=None):
        result = services.archive_dossier(pk, self.get_comptable())
        return Response(serialize_operation_result(result))

    @action(
        detail=True,
        methods=["post"],
        url_path="refresh-progress",
        url_name="refresh-progress",
    )
    def refresh_progress(self, request, pk=None):
        services.get_dossier_details(pk, self.get_comptable())
        services.update_dossier_progress(pk)
        dossier = services.get_dossier_details(pk, self.get_comptable())
        return Response(DossierDetailSerializer(dossier).data)


class ComptableBatchViewSet(ComptableViewMixin, viewsets.GenericViewSet):
    def retrieve(self, request, pk=None):
        return Response(services.get_batch_summary(pk, self.get_comptable()))


class ComptableUploadViewSet(ComptableViewMixin, viewsets.GenericViewSet):
    """Uploads à contrôler par le comptable."""

    def list(self, request):
        status_filter = request.query_params.get("status")
        if status_filter and status_filter not in StatusUpload.values:
            raise ValidationError({"status": "Statut d'upload inconnu."})

        uploads = services.get_documents_by_status(self.get_comptable(), status_filter)
        return Response(UploadListSerializer(uploads, many=True).data)

    @action(detail=False, methods=["get"], url_path="pending", url_name="pending")
    def pending(self, request):
        uploads = services.get_pending_validations(self.get_comptable())
        return Response(UploadListSerializer(uploads, many=True).data)

    @action(detail=True, methods=["post"], url_path="validate", url_name="validate")
    def validate_upload(self, request, pk=None):
        serializer = ValidateDocumentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = services.validate_document_upload(
            pk,
            serializer.validated_data["action"],
            self.get_comptable(),
            commentaire=serializer.validated_data.get("commentaire"),
        )
        return Response(serialize_operation_result(result))

    @action(
        detail=False,
        methods=["post"],
        url_path="bulk-validate",
        url_name="bulk-validate",
    )
    def bulk_validate(self, request):
        serializer = BulkValidateDocumentsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = services.bulk_validate_documents(
            data["upload_ids"],
            data["action"],
            self.get_comptable(),
            commentaire=data.get("commentaire"),
        )
        return Response(result)


class ComptableDocumentViewSet(ComptableViewMixin, viewsets.GenericViewSet):
    @action(detail=True, methods=["get"], url_path="download", url_name="download")
    def download(self, request, pk=None):
        document = services.get_comptable_document(pk, self.get_comptable())
        url = generate_download_signed_url(
            bucket_name=document.bucket_name, bucket_key=document.chemin
        )
        return Response(
            {
                "download_url": url,
                "filename": document.nom_original,
                "content_type": document.type_fichier,
                "size": document.taille,
            }
        )


class ClientDossierViewSet(ClientViewMixin, viewsets.GenericViewSet):
    """Dossiers vus par le client et dépôt de ses documents."""

    def list(self, request):
        payload = services.get_client_dossiers(self.get_client())
        return Response(
            {
                "dossiers": ClientDossierSerializer(payload["dossiers"], many=True).data,
                "summary": payload["summary"],
            }
        )

    def retrieve(self, request, pk=None):
        dossier = services.get_client_dossier_details(pk, self.get_client())
        return Response(ClientDossierDetailSerializer(dossier).data)

    @action(detail=False, methods=["get"], url_path="stats", url_name="stats")
    def statistics(self, request):
        stats = services.get_client_statistics(self.get_client())
        stats["recent_notifications"] = NotificationSerializer(
            stats["recent_notifications"], many=True
        ).data
        return Response(stats)

    @action(
        detail=True,
        methods=["post"],
        url_path=r"requests/(?P<request_id>[0-9a-fA-F-]{36})/upload-urls",
        url_name="upload-urls",
    )
    def upload_urls(self, request, pk=None, request_id=None):
        client = self.get_client()
        services.get_client_document_request(pk, request_id, client)

        files = request.data.get("files") if isinstance(request.data, dict) else None
        serializer = UploadUrlRequestSerializer(data=files, many=True)
        serializer.is_valid(raise_exception=True)
        if not serializer.validated_data:
            raise ValidationError({"files": "Aucun fichier fourni."})

        bucket_name = default_bucket_name()
        targets = []
        for item in serializer.validated_data:
            bucket_key = build_document_bucket_key(
                client_id=client.id, filename=item["nom_original"]
            )
            targets.append(
                {
                    "nom_original": item["nom_original"],
                    "bucket_name": bucket_name,
                    "bucket_key": bucket_key,
                    "upload_url": generate_upload_signed_url(
                        bucket_name=bucket_name,
                        bucket_key=bucket_key,
                        mime_type=item["type_fichier"],
                    ),
                }
            )
        return Response({"files": targets}, status=status.HTTP_201_CREATED)

    @action(
        detail=True,
        methods=["post"],
        url_path=r"requests/(?P<request_id>[0-9a-fA-F-]{36})/upload",
        url_name="upload",
    )
    def upload(self, request, pk=None, request_id=None):
        client = self.get_client()
        document_request = services.get_client_document_request(pk, request_id, client)

        serializer = UploadDocumentsSerializer(
            data=request.data,
            context={"request": request, "document_request": document_request},
        )
        serializer.is_valid(raise_exception=True)
        files = serializer.uploaded_files()

        missing = [
            uploaded.nom_original
            for uploaded in files
            if not blob_exists(
                bucket_key=uploaded.chemin, bucket_name=uploaded.bucket_name
            )
        ]
        if missing:
            raise ValidationError(
                {
                    "files": (
                        "Fichier(s) absent(s) du stockage: " + ", ".join(missing)
                    )
                }
            )

        result = services.upload_documents_for_request(pk, request_id, client, files)
        uploads = result.data["uploads"]
        return Response(
            {
                **serialize_operation_result(result),
                "uploaded_count": len(uploads),
                "document_uploads": DocumentUploadSerializer(uploads, many=True).data,
            },
            status=status.HTTP_201_CREATED,
        )


class ClientNotificationViewSet(ClientViewMixin, viewsets.GenericViewSet):
    def list(self, request):
        try:
            limit = int(request.query_params.get("limit", 10))
            offset = int(request.query_params.get("offset", 0))
        except ValueError:
            raise ValidationError("Les paramètres limit et offset doivent être des entiers.")
        if limit <= 0 or offset < 0:
            raise ValidationError("Les paramètres limit et offset sont invalides.")

        payload = list_client_notifications(self.get_client(), limit=limit, offset=offset)
        payload["notifications"] = NotificationSerializer(
            payload["notifications"], many=True
        ).data
        return Response(payload)

    @action(detail=True, methods=["post"], url_path="read", url_name="read")
    def read(self, request, pk=None):
        notification = mark_notification_as_read(pk, self.get_client())
        return Response(NotificationSerializer(notification).data)
