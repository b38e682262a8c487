"""Tests des services du cycle de vie des dossiers."""

from __future__ import annotations

import uuid
from datetime import timedelta
from io import StringIO
from unittest.mock import patch

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from django.utils import timezone

from .. import services
from ..exceptions import (
    AuthorizationError,
    DossierNotFound,
    DossierValidationError,
    QuantityExceeded,
)
from ..models import (
    DocumentRequest,
    DocumentUpload,
    Dossier,
    DossierBatch,
    Notification,
    StatusDocumentRequest,
    StatusDossier,
    StatusUpload,
    TypeDocument,
)
from ..notifications import list_client_notifications, mark_notification_as_read
from .factories import DossierFixturesMixin

REFUS_TITRE = "Document refusé - Action requise"


def _request_template(titre: str, **overrides) -> dict:
    template = {
        "titre": titre,
        "description": "",
        "type_document": TypeDocument.FACTURE,
        "obligatoire": True,
        "quantite_min": 1,
        "quantite_max": None,
        "format_accepte": ["pdf"],
        "taille_max_mo": 10,
        "date_echeance": None,
        "instructions": "",
    }
    template.update(overrides)
    return template


class ServiceTestCase(DossierFixturesMixin, TestCase):
    def setUp(self) -> None:
        self.comptable = self.create_comptable()
        self.client_a = self.create_client(self.comptable, "Alpha SARL")
        self.client_b = self.create_client(self.comptable, "Beta SAS")

    def uploaded_files(self, client, count: int) -> list:
        files = []
        for _ in range(count):
            payload = self.uploaded_file_payload(client)
            files.append(
                services.UploadedFile(
                    nom=payload["nom"],
                    nom_original=payload["nom_original"],
                    taille=payload["taille"],
                    type_fichier=payload["type_fichier"],
                    chemin=payload["bucket_key"],
                )
            )
        return files


class CreateMultiClientDossierTests(ServiceTestCase):
    def test_cree_un_dossier_par_client(self) -> None:
        result = services.create_multi_client_dossier(
            self.comptable,
            client_ids=[self.client_a.id, self.client_b.id, self.client_a.id],
            nom="  Bilan 2024  ",
            periode="2024",
            document_requests=[_request_template("Factures"), _request_template("Relevés")],
        )

        self.assertEqual(result.dossiers_created, 2)
        batch = DossierBatch.objects.get(id=result.batch_id)
        self.assertEqual(batch.nom, "Bilan 2024")
        self.assertEqual(batch.dossiers.count(), 2)

        dossier = Dossier.objects.get(client=self.client_a)
        self.assertEqual(dossier.nom, "Bilan 2024 - Alpha SARL")
        self.assertEqual(dossier.status, StatusDossier.EN_ATTENTE)
        self.assertEqual(dossier.documents_requis, 2)
        self.assertEqual(
            set(dossier.document_requests.values_list("status", flat=True)),
            {StatusDocumentRequest.EN_ATTENTE},
        )
        self.assertEqual(
            Notification.objects.filter(titre="Nouveau dossier documentaire").count(), 2
        )

    def test_client_etranger_ne_cree_rien(self) -> None:
        other = self.create_comptable("autre")
        foreign = self.create_client(other, "Gamma SA")

        with self.assertRaises(AuthorizationError) as ctx:
            services.create_multi_client_dossier(
                self.comptable,
                client_ids=[self.client_a.id, foreign.id],
                nom="Bilan 2024",
                document_requests=[_request_template("Factures")],
            )

        self.assertEqual(ctx.exception.invalid_ids, [str(foreign.id)])
        self.assertEqual(DossierBatch.objects.count(), 0)
        self.assertEqual(Dossier.objects.count(), 0)
        self.assertEqual(Notification.objects.count(), 0)

    def test_echec_en_cours_de_creation_annule_le_lot(self) -> None:
        with patch(
            "dossiers.services.notify_clients", side_effect=RuntimeError("smtp")
        ):
            with self.assertRaises(RuntimeError):
                services.create_multi_client_dossier(
                    self.comptable,
                    client_ids=[self.client_a.id, self.client_b.id],
                    nom="Bilan 2024",
                    document_requests=[_request_template("Factures")],
                )

        self.assertEqual(DossierBatch.objects.count(), 0)
        self.assertEqual(Dossier.objects.count(), 0)
        self.assertEqual(DocumentRequest.objects.count(), 0)

    def test_sans_demande_de_document(self) -> None:
        with self.assertRaises(DossierValidationError):
            services.create_multi_client_dossier(
                self.comptable,
                client_ids=[self.client_a.id],
                nom="Bilan 2024",
                document_requests=[],
            )


class DuplicateDossierTests(ServiceTestCase):
    def test_duplique_la_structure_sans_les_uploads(self) -> None:
        original = self.create_dossier(self.client_a, nom="TVA T1", periode="T1")
        request = self.create_request(original, "Factures", quantite_min=2, quantite_max=5)
        self.create_request(original, "Relevés")
        self.add_upload(request, StatusUpload.VALIDE)
        client_c = self.create_client(self.comptable, "Gamma SA")

        result = services.duplicate_dossier_to_clients(
            original.id, [self.client_b.id, client_c.id], self.comptable
        )

        self.assertEqual(result.dossiers_created, 2)
        copy = Dossier.objects.get(client=self.client_b)
        self.assertEqual(copy.nom, "TVA T1 - Copie - Beta SAS")
        self.assertEqual(copy.periode, "T1")
        self.assertEqual(copy.documents_requis, 2)
        copied_request = copy.document_requests.get(titre="Factures")
        self.assertEqual(copied_request.quantite_min, 2)
        self.assertEqual(copied_request.quantite_max, 5)
        self.assertEqual(copied_request.status, StatusDocumentRequest.EN_ATTENTE)
        self.assertFalse(DocumentUpload.objects.filter(document_request__dossier=copy).exists())

    def test_dossier_d_un_autre_comptable(self) -> None:
        other = self.create_comptable("autre")
        foreign_dossier = self.create_dossier(self.create_client(other, "Gamma SA"))

        with self.assertRaises(DossierNotFound):
            services.duplicate_dossier_to_clients(
                foreign_dossier.id, [self.client_a.id], self.comptable
            )


class UpdateDossierProgressTests(ServiceTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.dossier = self.create_dossier(self.client_a)
        self.request = self.create_request(self.dossier)

    def test_refus_unique_reinitialise_et_notifie_une_fois(self) -> None:
        """Demande à quantite_min=2 avec un seul upload, refusé: retour en attente."""

        request = self.create_request(self.dossier, "Relevés", quantite_min=2)
        upload = self.add_upload(request)
        services.update_dossier_progress(self.dossier.id)
        request.refresh_from_db()
        self.assertEqual(request.status, StatusDocumentRequest.RECU)

        result = services.validate_document_upload(
            upload.id, StatusUpload.REFUSE, self.comptable
        )
        self.assertTrue(result.success)
        self.assertTrue(result.progress_refreshed)

        request.refresh_from_db()
        self.dossier.refresh_from_db()
        self.assertEqual(request.status, StatusDocumentRequest.EN_ATTENTE)
        self.assertEqual(self.dossier.status, StatusDossier.EN_ATTENTE)
        self.assertEqual(self.dossier.pourcentage, 0)
        notifications = Notification.objects.filter(titre=REFUS_TITRE)
        self.assertEqual(notifications.count(), 1)
        self.assertEqual(notifications.get().client, self.client_a)

        services.update_dossier_progress(self.dossier.id)
        services.update_dossier_progress(self.dossier.id)
        self.assertEqual(Notification.objects.filter(titre=REFUS_TITRE).count(), 1)

    def test_recalcul_verrouille_le_dossier(self) -> None:
        with patch.object(
            Dossier.objects, "select_for_update", wraps=Dossier.objects.select_for_update
        ) as mocked_lock:
            services.update_dossier_progress(self.dossier.id)

        mocked_lock.assert_called_once_with(of=("self",))

    def test_recalcul_relit_les_statuts_persistes(self) -> None:
        """Un statut déjà réinitialisé par un autre recalcul ne renotifie pas."""

        self.add_upload(self.request, StatusUpload.REFUSE)
        DocumentRequest.objects.filter(id=self.request.id).update(
            status=StatusDocumentRequest.EN_ATTENTE
        )

        services.update_dossier_progress(self.dossier.id)

        self.assertFalse(Notification.objects.filter(titre=REFUS_TITRE).exists())

    def test_trois_demandes_dont_une_en_revision_reste_en_cours(self) -> None:
        second = self.create_request(self.dossier, "Relevés")
        third = self.create_request(self.dossier, "Bulletins")
        self.add_upload(self.request, StatusUpload.VALIDE)
        self.add_upload(second, StatusUpload.VALIDE)
        self.add_upload(third)

        progress = services.update_dossier_progress(self.dossier.id)

        statuses = dict(
            DocumentRequest.objects.filter(dossier=self.dossier).values_list("titre", "status")
        )
        self.assertEqual(
            statuses,
            {
                "Factures": StatusDocumentRequest.VALIDE,
                "Relevés": StatusDocumentRequest.VALIDE,
                "Bulletins": StatusDocumentRequest.RECU,
            },
        )
        self.dossier.refresh_from_db()
        self.assertEqual(progress.pourcentage, 100)
        self.assertEqual(self.dossier.pourcentage, 100)
        self.assertEqual(self.dossier.status, StatusDossier.EN_COURS)

    def test_en_revision_a_cent_pour_cent_reste_en_cours(self) -> None:
        self.add_upload(self.request)

        progress = services.update_dossier_progress(self.dossier.id)

        self.dossier.refresh_from_db()
        self.assertEqual(progress.pourcentage, 100)
        self.assertEqual(self.dossier.pourcentage, 100)
        self.assertEqual(self.dossier.status, StatusDossier.EN_COURS)
        self.assertIsNone(self.dossier.date_completion)

    def test_passage_a_complet_date_la_completion(self) -> None:
        self.add_upload(self.request, StatusUpload.VALIDE)

        services.update_dossier_progress(self.dossier.id)
        self.dossier.refresh_from_db()
        completed_at = self.dossier.date_completion

        self.assertEqual(self.dossier.status, StatusDossier.COMPLET)
        self.assertEqual(self.dossier.documents_upload, 1)
        self.assertIsNotNone(completed_at)

        services.update_dossier_progress(self.dossier.id)
        self.dossier.refresh_from_db()
        self.assertEqual(self.dossier.date_completion, completed_at)

    def test_dossier_valide_conserve_son_statut(self) -> None:
        self.add_upload(self.request, StatusUpload.VALIDE)
        services.update_dossier_progress(self.dossier.id)
        services.validate_complete_dossier(self.dossier.id, self.comptable)

        services.update_dossier_progress(self.dossier.id)

        self.dossier.refresh_from_db()
        self.assertEqual(self.dossier.status, StatusDossier.VALIDE)

    def test_dossier_inexistant(self) -> None:
        with self.assertRaises(DossierNotFound):
            services.update_dossier_progress(uuid.uuid4())

    def test_echec_du_recalcul_retourne_un_avertissement(self) -> None:
        with patch(
            "dossiers.services.update_dossier_progress",
            side_effect=RuntimeError("base indisponible"),
        ):
            with self.assertLogs("dossiers.services", level="ERROR"):
                warning = services.refresh_dossier_progress_safely(self.dossier.id)

        self.assertIn("base indisponible", warning)
        self.assertIn(str(self.dossier.id), warning)


class UploadDocumentsTests(ServiceTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.dossier = self.create_dossier(self.client_a)
        self.request = self.create_request(self.dossier, quantite_min=1, quantite_max=2)

    def test_depot_enregistre_les_uploads_en_revision(self) -> None:
        result = services.upload_documents_for_request(
            self.dossier.id, self.request.id, self.client_a, self.uploaded_files(self.client_a, 2)
        )

        self.assertTrue(result.success)
        self.assertEqual(len(result.data["uploads"]), 2)
        self.assertTrue(
            all(upload.status == StatusUpload.EN_REVISION for upload in result.data["uploads"])
        )
        self.request.refresh_from_db()
        self.assertEqual(self.request.status, StatusDocumentRequest.RECU)
        self.assertIsNotNone(self.request.date_completion)
        self.assertTrue(
            Notification.objects.filter(
                comptable=self.comptable, titre="Nouveaux documents reçus"
            ).exists()
        )
        self.dossier.refresh_from_db()
        self.assertEqual(self.dossier.status, StatusDossier.EN_COURS)
        self.assertEqual(self.dossier.documents_upload, 2)

    def test_limite_de_quantite_ignore_les_refus(self) -> None:
        services.upload_documents_for_request(
            self.dossier.id, self.request.id, self.client_a, self.uploaded_files(self.client_a, 2)
        )

        with self.assertRaises(QuantityExceeded) as ctx:
            services.upload_documents_for_request(
                self.dossier.id,
                self.request.id,
                self.client_a,
                self.uploaded_files(self.client_a, 1),
            )
        self.assertEqual(ctx.exception.remaining_slots, 0)
        self.assertEqual(DocumentUpload.objects.count(), 2)

        refused = DocumentUpload.objects.filter(document_request=self.request).first()
        services.validate_document_upload(refused.id, StatusUpload.REFUSE, self.comptable)

        result = services.upload_documents_for_request(
            self.dossier.id, self.request.id, self.client_a, self.uploaded_files(self.client_a, 1)
        )
        self.assertTrue(result.success)
        self.assertEqual(DocumentUpload.objects.count(), 3)

    def test_demande_d_un_autre_client(self) -> None:
        with self.assertRaises(DossierNotFound):
            services.upload_documents_for_request(
                self.dossier.id,
                self.request.id,
                self.client_b,
                self.uploaded_files(self.client_b, 1),
            )

    def test_echec_du_recalcul_ne_perd_pas_le_depot(self) -> None:
        with patch(
            "dossiers.services.update_dossier_progress",
            side_effect=RuntimeError("base indisponible"),
        ):
            with self.assertLogs("dossiers.services", level="ERROR"):
                result = services.upload_documents_for_request(
                    self.dossier.id,
                    self.request.id,
                    self.client_a,
                    self.uploaded_files(self.client_a, 1),
                )

        self.assertTrue(result.success)
        self.assertFalse(result.progress_refreshed)
        self.assertIn("base indisponible", result.progress_warning)
        self.assertEqual(DocumentUpload.objects.count(), 1)
        self.dossier.refresh_from_db()
        self.assertEqual(self.dossier.status, StatusDossier.EN_ATTENTE)


class ValidationTests(ServiceTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.dossier = self.create_dossier(self.client_a)
        self.request = self.create_request(self.dossier)

    def test_validation_d_un_upload(self) -> None:
        upload = self.add_upload(self.request)

        result = services.validate_document_upload(
            upload.id, StatusUpload.VALIDE, self.comptable, commentaire="Conforme"
        )

        upload.refresh_from_db()
        self.assertEqual(result.message, "Document validé avec succès")
        self.assertEqual(upload.status, StatusUpload.VALIDE)
        self.assertEqual(upload.commentaire, "Conforme")
        self.assertIsNotNone(upload.date_validation)
        notification = Notification.objects.get(titre="Document validé")
        self.assertEqual(notification.client, self.client_a)
        self.assertIn("Conforme", notification.message)
        self.dossier.refresh_from_db()
        self.assertEqual(self.dossier.status, StatusDossier.COMPLET)

    def test_validation_verrouille_l_upload(self) -> None:
        upload = self.add_upload(self.request)

        with patch.object(
            DocumentUpload.objects,
            "select_for_update",
            wraps=DocumentUpload.objects.select_for_update,
        ) as mocked_lock:
            services.validate_document_upload(upload.id, StatusUpload.VALIDE, self.comptable)

        mocked_lock.assert_called_once_with(of=("self",))

    def test_echec_du_recalcul_ne_perd_pas_la_decision(self) -> None:
        upload = self.add_upload(self.request)

        with patch(
            "dossiers.services.update_dossier_progress",
            side_effect=RuntimeError("base indisponible"),
        ):
            with self.assertLogs("dossiers.services", level="ERROR"):
                result = services.validate_document_upload(
                    upload.id, StatusUpload.VALIDE, self.comptable
                )

        self.assertTrue(result.success)
        self.assertFalse(result.progress_refreshed)
        self.assertIn("base indisponible", result.progress_warning)
        upload.refresh_from_db()
        self.assertEqual(upload.status, StatusUpload.VALIDE)
        self.assertIsNotNone(upload.date_validation)
        self.dossier.refresh_from_db()
        self.assertEqual(self.dossier.status, StatusDossier.EN_ATTENTE)

    def test_commentaire_par_defaut(self) -> None:
        upload = self.add_upload(self.request)

        services.validate_document_upload(upload.id, StatusUpload.REFUSE, self.comptable)

        upload.refresh_from_db()
        self.assertTrue(upload.commentaire.startswith("Refusé par le comptable le "))

    def test_action_invalide(self) -> None:
        upload = self.add_upload(self.request)

        with self.assertRaises(DossierValidationError):
            services.validate_document_upload(upload.id, "ARCHIVE", self.comptable)

    def test_upload_d_un_autre_comptable(self) -> None:
        upload = self.add_upload(self.request)
        other = self.create_comptable("autre")

        with self.assertRaises(DossierNotFound):
            services.validate_document_upload(upload.id, StatusUpload.VALIDE, other)

    def test_validation_groupee_collecte_les_erreurs(self) -> None:
        first = self.add_upload(self.request)
        second = self.add_upload(self.request)

        result = services.bulk_validate_documents(
            [first.id, second.id, uuid.uuid4()], StatusUpload.VALIDE, self.comptable
        )

        self.assertFalse(result["success"])
        self.assertEqual(result["validated"], 2)
        self.assertEqual(len(result["errors"]), 1)
        self.assertEqual(
            DocumentUpload.objects.filter(status=StatusUpload.VALIDE).count(), 2
        )

    def test_validation_d_un_dossier_incomplet(self) -> None:
        self.add_upload(self.request)
        services.update_dossier_progress(self.dossier.id)

        with self.assertRaises(DossierNotFound):
            services.validate_complete_dossier(self.dossier.id, self.comptable)

        self.dossier.refresh_from_db()
        self.assertEqual(self.dossier.status, StatusDossier.EN_COURS)

    def test_validation_reverifie_les_uploads(self) -> None:
        self.add_upload(self.request)
        Dossier.objects.filter(id=self.dossier.id).update(status=StatusDossier.COMPLET)

        with self.assertRaises(DossierValidationError):
            services.validate_complete_dossier(self.dossier.id, self.comptable)

    def test_validation_d_un_dossier_complet(self) -> None:
        self.add_upload(self.request, StatusUpload.VALIDE)
        services.update_dossier_progress(self.dossier.id)

        result = services.validate_complete_dossier(
            self.dossier.id, self.comptable, commentaire="RAS"
        )

        self.assertTrue(result.success)
        self.dossier.refresh_from_db()
        self.assertEqual(self.dossier.status, StatusDossier.VALIDE)
        notification = Notification.objects.get(titre="Dossier validé et archivé")
        self.assertIn("RAS", notification.message)

    def test_archivage(self) -> None:
        self.add_upload(self.request, StatusUpload.VALIDE)
        services.update_dossier_progress(self.dossier.id)

        services.archive_dossier(self.dossier.id, self.comptable)

        self.dossier.refresh_from_db()
        self.assertEqual(self.dossier.status, StatusDossier.VALIDE)
        self.assertTrue(Notification.objects.filter(titre="Dossier archivé").exists())


class ReadServicesTests(ServiceTestCase):
    def test_progression_des_dossiers_du_comptable(self) -> None:
        complete = self.create_dossier(self.client_a, nom="Complet")
        self.add_upload(self.create_request(complete), StatusUpload.VALIDE)
        partial = self.create_dossier(self.client_b, nom="Partiel")
        self.add_upload(self.create_request(partial, "Factures"))
        self.create_request(partial, "Relevés")
        services.update_dossier_progress(complete.id)
        services.update_dossier_progress(partial.id)

        summary = services.get_comptable_dossiers_progress(self.comptable)

        self.assertEqual(summary["total_dossiers"], 2)
        self.assertEqual(summary["completed_dossiers"], 1)
        self.assertEqual(summary["in_progress_dossiers"], 1)
        self.assertEqual(summary["overall_progress"], 75)

    def test_resume_d_un_lot(self) -> None:
        result = services.create_multi_client_dossier(
            self.comptable,
            client_ids=[self.client_a.id, self.client_b.id],
            nom="Bilan",
            document_requests=[_request_template("Factures"), _request_template("Relevés")],
        )
        dossier = Dossier.objects.get(client=self.client_a)
        request = dossier.document_requests.get(titre="Factures")
        self.add_upload(request, StatusUpload.VALIDE)
        services.update_dossier_progress(dossier.id)

        summary = services.get_batch_summary(result.batch_id, self.comptable)

        progress = {item["client"]["raison_sociale"]: item["progress"] for item in summary["dossiers"]}
        self.assertEqual(progress, {"Alpha SARL": 50, "Beta SAS": 0})
        self.assertEqual(summary["summary"]["average_progress"], 25)

    def test_lot_d_un_autre_comptable(self) -> None:
        with self.assertRaises(DossierNotFound):
            services.get_batch_summary(uuid.uuid4(), self.comptable)

    def test_dossiers_client_avec_urgence_et_progression_a_jour(self) -> None:
        now = timezone.now()
        urgent = self.create_dossier(
            self.client_a, nom="Urgent", date_echeance=now + timedelta(days=1)
        )
        self.add_upload(self.create_request(urgent))
        self.create_dossier(self.client_a, nom="Lointain", date_echeance=now + timedelta(days=30))

        payload = services.get_client_dossiers(self.client_a)

        dossiers = {dossier.nom: dossier for dossier in payload["dossiers"]}
        self.assertTrue(dossiers["Urgent"].is_urgent)
        self.assertEqual(dossiers["Urgent"].pourcentage, 100)
        self.assertFalse(dossiers["Lointain"].is_urgent)
        self.assertEqual(payload["summary"]["total"], 2)
        self.assertEqual(payload["summary"]["urgents"], 1)
        # Lecture seule: la valeur stockée n'est pas modifiée.
        urgent.refresh_from_db()
        self.assertEqual(urgent.pourcentage, 0)

    def test_dossier_en_retard_compte_comme_urgent_partout(self) -> None:
        now = timezone.now()
        self.create_dossier(self.client_a, nom="En retard", date_echeance=now - timedelta(days=2))
        self.create_dossier(self.client_a, nom="Lointain", date_echeance=now + timedelta(days=30))
        self.create_dossier(self.client_a, nom="Sans échéance")

        payload = services.get_client_dossiers(self.client_a)
        stats = services.get_client_statistics(self.client_a)

        urgents = [dossier.nom for dossier in payload["dossiers"] if dossier.is_urgent]
        self.assertEqual(urgents, ["En retard"])
        self.assertEqual(payload["summary"]["urgents"], 1)
        self.assertEqual(stats["urgent_dossiers"], 1)

    def test_statistiques_client(self) -> None:
        dossier = self.create_dossier(self.client_a)
        request = self.create_request(dossier)
        self.add_upload(request, StatusUpload.REFUSE)
        self.add_upload(request)

        stats = services.get_client_statistics(self.client_a)

        self.assertEqual(stats["total_dossiers"], 1)
        self.assertEqual(stats["total_document_uploads"], 1)
        self.assertEqual(stats["pending_document_requests"], 1)


class NotificationTests(ServiceTestCase):
    def test_liste_et_lecture(self) -> None:
        for index in range(3):
            Notification.objects.create(
                titre=f"Message {index}", message="...", client=self.client_a
            )

        payload = list_client_notifications(self.client_a, limit=2)

        self.assertEqual(len(payload["notifications"]), 2)
        self.assertEqual(payload["total_count"], 3)
        self.assertEqual(payload["unread_count"], 3)
        self.assertTrue(payload["has_more"])

        notification = mark_notification_as_read(
            payload["notifications"][0].id, self.client_a
        )
        self.assertTrue(notification.lu)
        self.assertIsNotNone(notification.date_lecture)
        self.assertEqual(list_client_notifications(self.client_a)["unread_count"], 2)

    def test_notification_d_un_autre_client(self) -> None:
        notification = Notification.objects.create(
            titre="Privé", message="...", client=self.client_b
        )

        with self.assertRaises(DossierNotFound):
            mark_notification_as_read(notification.id, self.client_a)


class RefreshCommandTests(ServiceTestCase):
    def test_commande_recalcule_les_dossiers_non_valides(self) -> None:
        dossier = self.create_dossier(self.client_a)
        self.add_upload(self.create_request(dossier))
        self.create_dossier(self.client_b, status=StatusDossier.VALIDE)
        out = StringIO()

        call_command("refresh_dossier_progress", stdout=out)

        self.assertIn("1 dossier(s) recalculé(s), 0 échec(s).", out.getvalue())
        dossier.refresh_from_db()
        self.assertEqual(dossier.status, StatusDossier.EN_COURS)

    def test_commande_comptable_inconnu(self) -> None:
        with self.assertRaises(CommandError):
            call_command("refresh_dossier_progress", comptable_id=str(uuid.uuid4()))
