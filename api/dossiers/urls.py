"""Routes de l'application de dossiers."""

from rest_framework.routers import DefaultRouter

from .views import (
    ClientDossierViewSet,
    ClientNotificationViewSet,
    ComptableBatchViewSet,
    ComptableDocumentViewSet,
    ComptableDossierViewSet,
    ComptableUploadViewSet,
)


router = DefaultRouter()
router.register(r"comptable/dossiers", ComptableDossierViewSet, basename="comptable-dossier")
router.register(r"comptable/batches", ComptableBatchViewSet, basename="comptable-batch")
router.register(r"comptable/uploads", ComptableUploadViewSet, basename="comptable-upload")
router.register(
    r"comptable/documents", ComptableDocumentViewSet, basename="comptable-document"
)
router.register(r"client/dossiers", ClientDossierViewSet, basename="client-dossier")
router.register(
    r"client/notifications", ClientNotificationViewSet, basename="client-notification"
)

urlpatterns = router.urls
