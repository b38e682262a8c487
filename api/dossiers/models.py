"""Modèles de l'application de dossiers documentaires."""

import uuid

from django.conf import settings
from django.db import models


class TimeStampedUUIDModel(models.Model):
    """Modèle de base avec clé primaire UUID et champs d'audit."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class StatusUpload(models.TextChoices):
    EN_REVISION = "EN_REVISION", "En révision"
    VALIDE = "VALIDE", "Validé"
    REFUSE = "REFUSE", "Refusé"


class StatusDocumentRequest(models.TextChoices):
    EN_ATTENTE = "EN_ATTENTE", "En attente"
    RECU = "RECU", "Reçu"
    VALIDE = "VALIDE", "Validé"


class StatusDossier(models.TextChoices):
    EN_ATTENTE = "EN_ATTENTE", "En attente"
    EN_COURS = "EN_COURS", "En cours"
    COMPLET = "COMPLET", "Complet"
    VALIDE = "VALIDE", "Validé"


class TypeDocument(models.TextChoices):
    FACTURE = "FACTURE", "Facture"
    RELEVE_BANCAIRE = "RELEVE_BANCAIRE", "Relevé bancaire"
    BULLETIN_PAIE = "BULLETIN_PAIE", "Bulletin de paie"
    DECLARATION_FISCALE = "DECLARATION_FISCALE", "Déclaration fiscale"
    CONTRAT = "CONTRAT", "Contrat"
    JUSTIFICATIF = "JUSTIFICATIF", "Justificatif"
    AUTRE = "AUTRE", "Autre"


class NotificationType(models.TextChoices):
    DOCUMENT_RECU = "DOCUMENT_RECU", "Document reçu"
    DOSSIER = "DOSSIER", "Dossier"


class Comptable(TimeStampedUUIDModel):
    """Expert-comptable propriétaire d'un portefeuille de clients."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="comptable"
    )
    cabinet = models.CharField(max_length=255, blank=True)

    def __str__(self) -> str:  # pragma: no cover - représentation simple
        return self.cabinet or str(self.user)


class Client(TimeStampedUUIDModel):
    """Client d'un comptable. Seules les données utiles au moteur sont gardées ici."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="client_profile",
    )
    comptable = models.ForeignKey(
        Comptable, on_delete=models.CASCADE, related_name="clients"
    )
    raison_sociale = models.CharField(max_length=255)
    type_activite = models.CharField(max_length=255, blank=True)
    regime_fiscal = models.CharField(max_length=255, blank=True)
    derniere_connexion = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ["raison_sociale"]

    def __str__(self) -> str:  # pragma: no cover - représentation simple
        return self.raison_sociale


class DossierTemplate(TimeStampedUUIDModel):
    """Modèle de dossier réutilisable par un comptable."""

    comptable = models.ForeignKey(
        Comptable, on_delete=models.CASCADE, related_name="dossier_templates"
    )
    nom = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    periode = models.CharField(max_length=100, blank=True)
    actif = models.BooleanField(default=True)

    class Meta:
        ordering = ["nom"]

    def __str__(self) -> str:  # pragma: no cover - représentation simple
        return self.nom


class DocumentTemplateRequis(TimeStampedUUIDModel):
    """Pièce attendue par un modèle de dossier."""

    template = models.ForeignKey(
        DossierTemplate, on_delete=models.CASCADE, related_name="documents_requis"
    )
    type_document = models.CharField(max_length=50, choices=TypeDocument.choices)
    obligatoire = models.BooleanField(default=True)
    quantite_min = models.PositiveIntegerField(default=1)
    quantite_max = models.PositiveIntegerField(blank=True, null=True)
    format_accepte = models.JSONField(default=list, blank=True)
    taille_max_mo = models.PositiveIntegerField(default=10)


class DossierBatch(TimeStampedUUIDModel):
    """Lot de dossiers créés ensemble pour plusieurs clients."""

    nom = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    periode = models.CharField(max_length=100, blank=True)
    date_echeance = models.DateTimeField(blank=True, null=True)
    comptable = models.ForeignKey(
        Comptable, on_delete=models.CASCADE, related_name="dossier_batches"
    )
    dossier_template = models.ForeignKey(
        DossierTemplate,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="batches",
    )

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:  # pragma: no cover - représentation simple
        return self.nom


class Dossier(TimeStampedUUIDModel):
    """Dossier documentaire d'un client.

    ``pourcentage``, ``documents_upload`` et ``status`` sont une projection
    calculée à partir des demandes et de leurs uploads; ils ne sont écrits
    que par le moteur de cycle de vie.
    """

    nom = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    periode = models.CharField(max_length=100, blank=True)
    date_echeance = models.DateTimeField(blank=True, null=True)
    status = models.CharField(
        max_length=20, choices=StatusDossier.choices, default=StatusDossier.EN_ATTENTE
    )
    pourcentage = models.PositiveSmallIntegerField(default=0)
    documents_upload = models.PositiveIntegerField(default=0)
    documents_requis = models.PositiveIntegerField(default=0)
    date_completion = models.DateTimeField(blank=True, null=True)
    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name="dossiers")
    comptable = models.ForeignKey(
        Comptable, on_delete=models.CASCADE, related_name="dossiers"
    )
    dossier_template = models.ForeignKey(
        DossierTemplate,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="dossiers",
    )
    dossier_batch = models.ForeignKey(
        DossierBatch,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="dossiers",
    )

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:  # pragma: no cover - représentation simple
        return self.nom


class DocumentRequest(TimeStampedUUIDModel):
    """Pièce demandée au client dans un dossier."""

    titre = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    type_document = models.CharField(max_length=50, choices=TypeDocument.choices)
    obligatoire = models.BooleanField(default=True)
    quantite_min = models.PositiveIntegerField(default=1)
    quantite_max = models.PositiveIntegerField(blank=True, null=True)
    format_accepte = models.JSONField(default=list, blank=True)
    taille_max_mo = models.PositiveIntegerField(default=10)
    date_echeance = models.DateTimeField(blank=True, null=True)
    instructions = models.TextField(blank=True)
    status = models.CharField(
        max_length=20,
        choices=StatusDocumentRequest.choices,
        default=StatusDocumentRequest.EN_ATTENTE,
    )
    date_completion = models.DateTimeField(blank=True, null=True)
    client = models.ForeignKey(
        Client, on_delete=models.CASCADE, related_name="document_requests"
    )
    comptable = models.ForeignKey(
        Comptable, on_delete=models.CASCADE, related_name="document_requests"
    )
    dossier = models.ForeignKey(
        Dossier, on_delete=models.CASCADE, related_name="document_requests"
    )

    class Meta:
        ordering = ["created_at"]

    def __str__(self) -> str:  # pragma: no cover - représentation simple
        return self.titre


class Document(TimeStampedUUIDModel):
    """Métadonnées d'un fichier déjà stocké dans le bucket."""

    nom = models.CharField(max_length=255)
    nom_original = models.CharField(max_length=255)
    chemin = models.CharField(max_length=500)
    bucket_name = models.CharField(max_length=255)
    taille = models.PositiveBigIntegerField()
    type_document = models.CharField(max_length=50, choices=TypeDocument.choices)
    type_fichier = models.CharField(max_length=100)
    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name="documents")
    comptable = models.ForeignKey(
        Comptable, on_delete=models.CASCADE, related_name="documents"
    )

    def __str__(self) -> str:  # pragma: no cover - représentation simple
        return self.nom_original


class DocumentUpload(TimeStampedUUIDModel):
    """Dépôt d'un fichier contre une demande; porte le statut de validation."""

    document = models.OneToOneField(
        Document, on_delete=models.CASCADE, related_name="upload"
    )
    document_request = models.ForeignKey(
        DocumentRequest, on_delete=models.CASCADE, related_name="uploads"
    )
    status = models.CharField(
        max_length=20, choices=StatusUpload.choices, default=StatusUpload.EN_REVISION
    )
    date_validation = models.DateTimeField(blank=True, null=True)
    commentaire = models.TextField(blank=True, null=True)

    class Meta:
        ordering = ["-created_at"]

    @property
    def date_upload(self):
        return self.created_at

    def __str__(self) -> str:  # pragma: no cover - représentation simple
        return f"{self.document_id} ({self.get_status_display()})"


class Notification(TimeStampedUUIDModel):
    """Notification destinée à un client ou à un comptable."""

    titre = models.CharField(max_length=255)
    message = models.TextField()
    type = models.CharField(
        max_length=30,
        choices=NotificationType.choices,
        default=NotificationType.DOCUMENT_RECU,
    )
    client = models.ForeignKey(
        Client,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="notifications",
    )
    comptable = models.ForeignKey(
        Comptable,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="notifications",
    )
    lu = models.BooleanField(default=False)
    date_lecture = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:  # pragma: no cover - représentation simple
        return self.titre
