"""Recalcule la progression des dossiers non validés."""

import uuid

from django.core.management.base import BaseCommand, CommandError

from dossiers.models import Comptable
from dossiers.services import refresh_all_dossiers


class Command(BaseCommand):
    help = "Recalcule statut et pourcentage des dossiers à partir des uploads."

    def add_arguments(self, parser):
        parser.add_argument(
            "--comptable",
            dest="comptable_id",
            help="Limite le recalcul aux dossiers d'un comptable.",
        )

    def handle(self, *args, **options):
        comptable = None
        comptable_id = options.get("comptable_id")
        if comptable_id:
            try:
                comptable_id = uuid.UUID(comptable_id)
            except ValueError:
                raise CommandError(f"Identifiant de comptable invalide: {comptable_id}")
            comptable = Comptable.objects.filter(id=comptable_id).first()
            if comptable is None:
                raise CommandError(f"Comptable {comptable_id} introuvable.")

        result = refresh_all_dossiers(comptable)
        for error in result["errors"]:
            self.stderr.write(error)

        self.stdout.write(
            self.style.SUCCESS(
                f"{result['refreshed']} dossier(s) recalculé(s), "
                f"{result['failed']} échec(s)."
            )
        )
