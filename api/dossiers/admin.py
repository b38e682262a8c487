from django.contrib import admin

from .models import (
    Client,
    Comptable,
    DocumentRequest,
    DocumentTemplateRequis,
    DocumentUpload,
    Dossier,
    DossierBatch,
    DossierTemplate,
    Notification,
)


class ClientInline(admin.TabularInline):
    """Permet de gérer les clients directement depuis le comptable."""

    model = Client
    extra = 0
    fields = ("raison_sociale", "type_activite", "regime_fiscal")
    verbose_name = "Client"
    verbose_name_plural = "Clients"


@admin.register(Comptable)
class ComptableAdmin(admin.ModelAdmin):
    list_display = ("id", "cabinet", "user", "created_at")
    search_fields = ("cabinet", "user__username", "user__email")
    autocomplete_fields = ("user",)
    inlines = (ClientInline,)


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ("id", "raison_sociale", "comptable", "derniere_connexion")
    search_fields = ("raison_sociale",)
    autocomplete_fields = ("comptable", "user")


class DocumentTemplateRequisInline(admin.TabularInline):
    model = DocumentTemplateRequis
    extra = 0


@admin.register(DossierTemplate)
class DossierTemplateAdmin(admin.ModelAdmin):
    list_display = ("id", "nom", "comptable", "actif")
    list_filter = ("actif",)
    search_fields = ("nom",)
    inlines = (DocumentTemplateRequisInline,)


@admin.register(DossierBatch)
class DossierBatchAdmin(admin.ModelAdmin):
    list_display = ("id", "nom", "comptable", "periode", "created_at")
    search_fields = ("nom",)
    readonly_fields = ("created_at", "updated_at")


class DocumentRequestInline(admin.TabularInline):
    model = DocumentRequest
    extra = 0
    fields = ("titre", "type_document", "quantite_min", "quantite_max", "status")
    readonly_fields = ("status",)

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Dossier)
class DossierAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "nom",
        "client",
        "status",
        "pourcentage",
        "documents_upload",
        "documents_requis",
        "date_echeance",
    )
    list_filter = ("status", "created_at")
    search_fields = ("nom", "client__raison_sociale")
    # La progression est calculée par le moteur, jamais saisie.
    readonly_fields = ("status", "pourcentage", "documents_upload", "date_completion")
    inlines = (DocumentRequestInline,)


class DocumentUploadInline(admin.TabularInline):
    model = DocumentUpload
    extra = 0
    fields = ("document", "status", "date_validation", "commentaire")
    readonly_fields = ("document", "status", "date_validation")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(DocumentRequest)
class DocumentRequestAdmin(admin.ModelAdmin):
    list_display = ("id", "titre", "dossier", "status", "quantite_min", "quantite_max")
    list_filter = ("status", "type_document")
    search_fields = ("titre", "dossier__nom")
    readonly_fields = ("status", "date_completion")
    inlines = (DocumentUploadInline,)


@admin.register(DocumentUpload)
class DocumentUploadAdmin(admin.ModelAdmin):
    list_display = ("id", "document", "document_request", "status", "date_validation")
    list_filter = ("status", "created_at", "date_validation")
    search_fields = ("document__nom_original", "document_request__titre")


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("id", "titre", "type", "client", "comptable", "lu", "created_at")
    list_filter = ("type", "lu")
    search_fields = ("titre", "message")
