import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


TYPE_DOCUMENT_CHOICES = [
    ("FACTURE", "Facture"),
    ("RELEVE_BANCAIRE", "Relevé bancaire"),
    ("BULLETIN_PAIE", "Bulletin de paie"),
    ("DECLARATION_FISCALE", "Déclaration fiscale"),
    ("CONTRAT", "Contrat"),
    ("JUSTIFICATIF", "Justificatif"),
    ("AUTRE", "Autre"),
]


def _base_fields():
    return [
        (
            "id",
            models.UUIDField(
                default=uuid.uuid4, editable=False, primary_key=True, serialize=False
            ),
        ),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Comptable",
            fields=_base_fields()
            + [
                ("cabinet", models.CharField(blank=True, max_length=255)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="comptable",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"abstract": False},
        ),
        migrations.CreateModel(
            name="Client",
            fields=_base_fields()
            + [
                ("raison_sociale", models.CharField(max_length=255)),
                ("type_activite", models.CharField(blank=True, max_length=255)),
                ("regime_fiscal", models.CharField(blank=True, max_length=255)),
                ("derniere_connexion", models.DateTimeField(blank=True, null=True)),
                (
                    "comptable",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="clients",
                        to="dossiers.comptable",
                    ),
                ),
                (
                    "user",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="client_profile",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["raison_sociale"]},
        ),
        migrations.CreateModel(
            name="DossierTemplate",
            fields=_base_fields()
            + [
                ("nom", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("periode", models.CharField(blank=True, max_length=100)),
                ("actif", models.BooleanField(default=True)),
                (
                    "comptable",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="dossier_templates",
                        to="dossiers.comptable",
                    ),
                ),
            ],
            options={"ordering": ["nom"]},
        ),
        migrations.CreateModel(
            name="DocumentTemplateRequis",
            fields=_base_fields()
            + [
                (
                    "type_document",
                    models.CharField(choices=TYPE_DOCUMENT_CHOICES, max_length=50),
                ),
                ("obligatoire", models.BooleanField(default=True)),
                ("quantite_min", models.PositiveIntegerField(default=1)),
                ("quantite_max", models.PositiveIntegerField(blank=True, null=True)),
                ("format_accepte", models.JSONField(blank=True, default=list)),
                ("taille_max_mo", models.PositiveIntegerField(default=10)),
                (
                    "template",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="documents_requis",
                        to="dossiers.dossiertemplate",
                    ),
                ),
            ],
            options={"abstract": False},
        ),
        migrations.CreateModel(
            name="DossierBatch",
            fields=_base_fields()
            + [
                ("nom", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("periode", models.CharField(blank=True, max_length=100)),
                ("date_echeance", models.DateTimeField(blank=True, null=True)),
                (
                    "comptable",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="dossier_batches",
                        to="dossiers.comptable",
                    ),
                ),
                (
                    "dossier_template",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="batches",
                        to="dossiers.dossiertemplate",
                    ),
                ),
            ],
            options={"ordering": ["-created_at"]},
        ),
        migrations.CreateModel(
            name="Dossier",
            fields=_base_fields()
            + [
                ("nom", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("periode", models.CharField(blank=True, max_length=100)),
                ("date_echeance", models.DateTimeField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("EN_ATTENTE", "En attente"),
                            ("EN_COURS", "En cours"),
                            ("COMPLET", "Complet"),
                            ("VALIDE", "Validé"),
                        ],
                        default="EN_ATTENTE",
                        max_length=20,
                    ),
                ),
                ("pourcentage", models.PositiveSmallIntegerField(default=0)),
                ("documents_upload", models.PositiveIntegerField(default=0)),
                ("documents_requis", models.PositiveIntegerField(default=0)),
                ("date_completion", models.DateTimeField(blank=True, null=True)),
                (
                    "client",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="dossiers",
                        to="dossiers.client",
                    ),
                ),
                (
                    "comptable",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="dossiers",
                        to="dossiers.comptable",
                    ),
                ),
                (
                    "dossier_batch",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="dossiers",
                        to="dossiers.dossierbatch",
                    ),
                ),
                (
                    "dossier_template",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="dossiers",
                        to="dossiers.dossiertemplate",
                    ),
                ),
            ],
            options={"ordering": ["-created_at"]},
        ),
        migrations.CreateModel(
            name="DocumentRequest",
            fields=_base_fields()
            + [
                ("titre", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                (
                    "type_document",
                    models.CharField(choices=TYPE_DOCUMENT_CHOICES, max_length=50),
                ),
                ("obligatoire", models.BooleanField(default=True)),
                ("quantite_min", models.PositiveIntegerField(default=1)),
                ("quantite_max", models.PositiveIntegerField(blank=True, null=True)),
                ("format_accepte", models.JSONField(blank=True, default=list)),
                ("taille_max_mo", models.PositiveIntegerField(default=10)),
                ("date_echeance", models.DateTimeField(blank=True, null=True)),
                ("instructions", models.TextField(blank=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("EN_ATTENTE", "En attente"),
                            ("RECU", "Reçu"),
                            ("VALIDE", "Validé"),
                        ],
                        default="EN_ATTENTE",
                        max_length=20,
                    ),
                ),
                ("date_completion", models.DateTimeField(blank=True, null=True)),
                (
                    "client",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="document_requests",
                        to="dossiers.client",
                    ),
                ),
                (
                    "comptable",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="document_requests",
                        to="dossiers.comptable",
                    ),
                ),
                (
                    "dossier",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="document_requests",
                        to="dossiers.dossier",
                    ),
                ),
            ],
            options={"ordering": ["created_at"]},
        ),
        migrations.CreateModel(
            name="Document",
            fields=_base_fields()
            + [
                ("nom", models.CharField(max_length=255)),
                ("nom_original", models.CharField(max_length=255)),
                ("chemin", models.CharField(max_length=500)),
                ("bucket_name", models.CharField(max_length=255)),
                ("taille", models.PositiveBigIntegerField()),
                (
                    "type_document",
                    models.CharField(choices=TYPE_DOCUMENT_CHOICES, max_length=50),
                ),
                ("type_fichier", models.CharField(max_length=100)),
                (
                    "client",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="documents",
                        to="dossiers.client",
                    ),
                ),
                (
                    "comptable",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="documents",
                        to="dossiers.comptable",
                    ),
                ),
            ],
            options={"abstract": False},
        ),
        migrations.CreateModel(
            name="DocumentUpload",
            fields=_base_fields()
            + [
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("EN_REVISION", "En révision"),
                            ("VALIDE", "Validé"),
                            ("REFUSE", "Refusé"),
                        ],
                        default="EN_REVISION",
                        max_length=20,
                    ),
                ),
                ("date_validation", models.DateTimeField(blank=True, null=True)),
                ("commentaire", models.TextField(blank=True, null=True)),
                (
                    "document",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="upload",
                        to="dossiers.document",
                    ),
                ),
                (
                    "document_request",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="uploads",
                        to="dossiers.documentrequest",
                    ),
                ),
            ],
            options={"ordering": ["-created_at"]},
        ),
        migrations.CreateModel(
            name="Notification",
            fields=_base_fields()
            + [
                ("titre", models.CharField(max_length=255)),
                ("message", models.TextField()),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("DOCUMENT_RECU", "Document reçu"),
                            ("DOSSIER", "Dossier"),
                        ],
                        default="DOCUMENT_RECU",
                        max_length=30,
                    ),
                ),
                ("lu", models.BooleanField(default=False)),
                ("date_lecture", models.DateTimeField(blank=True, null=True)),
                (
                    "client",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="notifications",
                        to="dossiers.client",
                    ),
                ),
                (
                    "comptable",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="notifications",
                        to="dossiers.comptable",
                    ),
                ),
            ],
            options={"ordering": ["-created_at"]},
        ),
    ]
