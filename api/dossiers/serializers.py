"""Sérialiseurs de l'application de dossiers."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List

from django.conf import settings
from rest_framework import serializers

from .models import (
    Client,
    DocumentRequest,
    DocumentTemplateRequis,
    DocumentUpload,
    Dossier,
    DossierTemplate,
    Notification,
    StatusUpload,
    TypeDocument,
)
from .services import UploadedFile
from .storage_service import default_bucket_name

DEFAULT_ALLOWED_MIME_TYPES: Iterable[str] = (
    "application/pdf",
    "image/jpeg",
    "image/png",
)
DEFAULT_MAX_FILE_SIZE: int = 20 * 1024 * 1024  # 20 Mo


# ---------------------------------------------------------------------------
# Entrées
# ---------------------------------------------------------------------------


class DocumentRequestTemplateSerializer(serializers.Serializer):
    """Pièce demandée, recopiée dans chaque dossier du lot."""

    titre = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    type_document = serializers.ChoiceField(choices=TypeDocument.choices)
    obligatoire = serializers.BooleanField()
    quantite_min = serializers.IntegerField(min_value=1, max_value=50)
    quantite_max = serializers.IntegerField(
        min_value=1, max_value=100, required=False, allow_null=True, default=None
    )
    format_accepte = serializers.ListField(
        child=serializers.CharField(max_length=50), min_length=1, max_length=10
    )
    taille_max_mo = serializers.IntegerField(min_value=1, max_value=500)
    date_echeance = serializers.DateTimeField(required=False, allow_null=True, default=None)
    instructions = serializers.CharField(
        required=False, allow_blank=True, max_length=2000, default=""
    )

    def validate(self, attrs: dict) -> dict:
        quantite_max = attrs.get("quantite_max")
        if quantite_max is not None and quantite_max < attrs["quantite_min"]:
            raise serializers.ValidationError(
                {"quantite_max": "Doit être supérieure ou égale à quantite_min."}
            )
        return attrs


class CreateMultiClientDossierSerializer(serializers.Serializer):
    nom = serializers.CharField(min_length=3, max_length=100)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    periode = serializers.CharField(required=False, allow_blank=True, default="")
    date_echeance = serializers.DateTimeField(required=False, allow_null=True, default=None)
    client_ids = serializers.ListField(child=serializers.UUIDField(), min_length=1)
    dossier_template = serializers.PrimaryKeyRelatedField(
        queryset=DossierTemplate.objects.all(), required=False, allow_null=True, default=None
    )
    document_requests = DocumentRequestTemplateSerializer(many=True)

    def validate_document_requests(self, value: List[dict]) -> List[dict]:
        """Au moins une demande, sans titres en double."""

        if not value:
            raise serializers.ValidationError(
                "Au moins une demande de document est requise."
            )

        titres = [item["titre"].strip().lower() for item in value]
        if len(titres) != len(set(titres)):
            raise serializers.ValidationError(
                "Le titre de chaque demande doit être unique."
            )
        return value


class DuplicateDossierSerializer(serializers.Serializer):
    client_ids = serializers.ListField(child=serializers.UUIDField(), min_length=1)
    nom = serializers.CharField(
        min_length=3, max_length=100, required=False, allow_null=True, default=None
    )


class ValidateDocumentSerializer(serializers.Serializer):
    action = serializers.ChoiceField(
        choices=[StatusUpload.VALIDE, StatusUpload.REFUSE],
        error_messages={"invalid_choice": "L'action doit être VALIDE ou REFUSE."},
    )
    commentaire = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class BulkValidateDocumentsSerializer(ValidateDocumentSerializer):
    upload_ids = serializers.ListField(child=serializers.UUIDField(), min_length=1)


class ValidateDossierSerializer(serializers.Serializer):
    commentaire = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class UploadUrlRequestSerializer(serializers.Serializer):
    """Fichiers pour lesquels le client demande une URL de dépôt signée."""

    nom_original = serializers.CharField(max_length=255)
    type_fichier = serializers.CharField(max_length=100)


class UploadedFileSerializer(serializers.Serializer):
    """Métadonnées d'un fichier déposé, contrôlées par rapport à la demande.

    La demande de document est attendue dans le contexte sous la clé
    ``document_request``.
    """

    nom = serializers.CharField(max_length=255)
    nom_original = serializers.CharField(max_length=255)
    taille = serializers.IntegerField()
    type_fichier = serializers.CharField(max_length=100)
    bucket_key = serializers.CharField(max_length=500)
    bucket_name = serializers.CharField(max_length=255, required=False, allow_blank=True)

    def _document_request(self):
        return self.context.get("document_request")

    def _allowed_mime_types(self) -> Iterable[str]:
        return getattr(
            settings, "DOCUMENTS_ALLOWED_MIME_TYPES", DEFAULT_ALLOWED_MIME_TYPES
        )

    def _max_file_size(self) -> int:
        document_request = self._document_request()
        if document_request is not None and document_request.taille_max_mo:
            return document_request.taille_max_mo * 1024 * 1024
        return getattr(settings, "DOCUMENTS_MAX_FILE_SIZE", DEFAULT_MAX_FILE_SIZE)

    def validate_bucket_name(self, value: str) -> str:
        if value and value != default_bucket_name():
            raise serializers.ValidationError("Bucket de stockage inconnu.")
        return value

    def validate_taille(self, value: int) -> int:
        if value <= 0:
            raise serializers.ValidationError(
                "La taille du fichier doit être un entier positif."
            )

        max_size = self._max_file_size()
        if value > max_size:
            raise serializers.ValidationError(
                f"La taille du fichier dépasse le maximum autorisé de {max_size} octets."
            )
        return value

    def validate(self, attrs: dict) -> dict:
        document_request = self._document_request()
        formats = [
            item.lower().lstrip(".")
            for item in getattr(document_request, "format_accepte", None) or []
        ]
        mime_type = attrs["type_fichier"].lower()
        extension = Path(attrs["nom_original"]).suffix.lower().lstrip(".")

        if formats:
            if extension not in formats and mime_type not in formats:
                raise serializers.ValidationError(
                    {
                        "type_fichier": (
                            "Format non accepté. Formats acceptés: "
                            f"{', '.join(sorted(formats))}."
                        )
                    }
                )
        elif mime_type not in set(self._allowed_mime_types()):
            allowed_display = ", ".join(sorted(self._allowed_mime_types()))
            raise serializers.ValidationError(
                {"type_fichier": f"Type MIME non autorisé. Types autorisés: {allowed_display}."}
            )

        if document_request is not None:
            expected_prefix = f"clients/{document_request.client_id}/"
            if not attrs["bucket_key"].startswith(expected_prefix):
                raise serializers.ValidationError(
                    {"bucket_key": "Le fichier n'appartient pas à ce client."}
                )
        return attrs

    def to_uploaded_file(self, attrs: dict) -> UploadedFile:
        return UploadedFile(
            nom=attrs["nom"],
            nom_original=attrs["nom_original"],
            taille=attrs["taille"],
            type_fichier=attrs["type_fichier"],
            chemin=attrs["bucket_key"],
            bucket_name=attrs.get("bucket_name") or None,
        )


class UploadDocumentsSerializer(serializers.Serializer):
    files = UploadedFileSerializer(many=True)

    def validate_files(self, value: List[dict]) -> List[dict]:
        if not value:
            raise serializers.ValidationError("Aucun fichier fourni.")
        keys = [item["bucket_key"] for item in value]
        if len(keys) != len(set(keys)):
            raise serializers.ValidationError("Chaque fichier doit être unique.")
        return value

    def uploaded_files(self) -> List[UploadedFile]:
        child = self.fields["files"].child
        return [child.to_uploaded_file(item) for item in self.validated_data["files"]]


# ---------------------------------------------------------------------------
# Sorties
# ---------------------------------------------------------------------------


class ClientSerializer(serializers.ModelSerializer):
    class Meta:
        model = Client
        fields = [
            "id",
            "raison_sociale",
            "type_activite",
            "regime_fiscal",
            "derniere_connexion",
        ]
        read_only_fields = fields


class DocumentTemplateRequisSerializer(serializers.ModelSerializer):
    class Meta:
        model = DocumentTemplateRequis
        fields = [
            "type_document",
            "obligatoire",
            "quantite_min",
            "quantite_max",
            "format_accepte",
            "taille_max_mo",
        ]
        read_only_fields = fields


class DossierTemplateSerializer(serializers.ModelSerializer):
    documents_requis = DocumentTemplateRequisSerializer(many=True, read_only=True)

    class Meta:
        model = DossierTemplate
        fields = ["id", "nom", "description", "periode", "actif", "documents_requis"]
        read_only_fields = fields


class DocumentUploadSerializer(serializers.ModelSerializer):
    document = serializers.SerializerMethodField()
    date_upload = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = DocumentUpload
        fields = [
            "id",
            "status",
            "date_upload",
            "date_validation",
            "commentaire",
            "document",
        ]
        read_only_fields = fields

    def get_document(self, obj: DocumentUpload) -> dict:
        document = obj.document
        return {
            "id": str(document.id),
            "nom": document.nom,
            "nom_original": document.nom_original,
            "taille": document.taille,
            "type_fichier": document.type_fichier,
            "date_upload": document.created_at,
        }


class UploadListSerializer(DocumentUploadSerializer):
    """Upload avec son contexte (client, dossier, demande) pour le comptable."""

    client = serializers.SerializerMethodField()
    dossier = serializers.SerializerMethodField()
    request_title = serializers.CharField(source="document_request.titre", read_only=True)

    class Meta(DocumentUploadSerializer.Meta):
        fields = DocumentUploadSerializer.Meta.fields + [
            "client",
            "dossier",
            "request_title",
        ]
        read_only_fields = fields

    def get_client(self, obj: DocumentUpload) -> dict:
        client = obj.document_request.client
        return {"id": str(client.id), "raison_sociale": client.raison_sociale}

    def get_dossier(self, obj: DocumentUpload) -> dict:
        dossier = obj.document_request.dossier
        return {"id": str(dossier.id), "nom": dossier.nom}


class DocumentRequestSerializer(serializers.ModelSerializer):
    uploads = DocumentUploadSerializer(many=True, read_only=True)

    class Meta:
        model = DocumentRequest
        fields = [
            "id",
            "titre",
            "description",
            "type_document",
            "obligatoire",
            "quantite_min",
            "quantite_max",
            "format_accepte",
            "taille_max_mo",
            "status",
            "date_echeance",
            "date_completion",
            "instructions",
            "created_at",
            "uploads",
        ]
        read_only_fields = fields


class DossierSerializer(serializers.ModelSerializer):
    client = ClientSerializer(read_only=True)
    dossier_batch = serializers.SerializerMethodField()

    class Meta:
        model = Dossier
        fields = [
            "id",
            "nom",
            "description",
            "periode",
            "date_echeance",
            "status",
            "pourcentage",
            "documents_upload",
            "documents_requis",
            "date_completion",
            "created_at",
            "updated_at",
            "client",
            "dossier_batch",
        ]
        read_only_fields = fields

    def get_dossier_batch(self, obj: Dossier):
        batch = obj.dossier_batch
        if batch is None:
            return None
        return {"id": str(batch.id), "nom": batch.nom}


class DossierDetailSerializer(DossierSerializer):
    document_requests = DocumentRequestSerializer(many=True, read_only=True)

    class Meta(DossierSerializer.Meta):
        fields = DossierSerializer.Meta.fields + ["document_requests"]
        read_only_fields = fields


class ClientDossierSerializer(DossierDetailSerializer):
    """Dossier vu par le client, avec la progression recalculée à la lecture."""

    is_urgent = serializers.BooleanField(read_only=True)
    comptable = serializers.SerializerMethodField()

    class Meta(DossierDetailSerializer.Meta):
        fields = [
            field
            for field in DossierDetailSerializer.Meta.fields
            if field != "client"
        ] + ["is_urgent", "comptable"]
        read_only_fields = fields

    def get_comptable(self, obj: Dossier) -> dict:
        comptable = obj.comptable
        return {
            "id": str(comptable.id),
            "cabinet": comptable.cabinet,
            "nom": comptable.user.get_full_name() or comptable.user.get_username(),
            "email": comptable.user.email,
        }


class ClientDossierDetailSerializer(ClientDossierSerializer):
    summary = serializers.DictField(read_only=True)

    class Meta(ClientDossierSerializer.Meta):
        fields = ClientDossierSerializer.Meta.fields + ["summary"]
        read_only_fields = fields


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ["id", "titre", "message", "type", "lu", "date_lecture", "created_at"]
        read_only_fields = fields


def serialize_batch_result(result) -> dict:
    return {
        "batch_id": str(result.batch_id),
        "dossiers_created": result.dossiers_created,
        "dossiers": [
            {
                "id": str(summary.id),
                "nom": summary.nom,
                "client_id": str(summary.client_id),
                "client_name": summary.client_name,
                "status": summary.status,
                "documents_requis": summary.documents_requis,
            }
            for summary in result.dossiers
        ],
    }


def serialize_operation_result(result) -> dict:
    return {
        "success": result.success,
        "message": result.message,
        "progress_refreshed": result.progress_refreshed,
        "progress_warning": result.progress_warning,
    }
