"""Accès au bucket Google Cloud Storage qui contient les pièces des clients.

Les fichiers ne transitent jamais par l'API: le client dépose directement
dans le bucket via une URL signée, puis l'API vérifie la présence du blob
avant d'enregistrer ses métadonnées.
"""

from __future__ import annotations

import uuid
from datetime import timedelta
from pathlib import Path
from typing import Optional

from django.conf import settings
from google.cloud import storage

SIGNED_URL_VERSION = "v4"


def default_bucket_name() -> str:
    return settings.GS_BUCKET_NAME


def build_document_bucket_key(*, client_id, filename: str) -> str:
    """Chemin ``clients/<client>/documents/<jeton><extension>`` du fichier."""

    extension = Path(filename).suffix.lower()
    return f"clients/{client_id}/documents/{uuid.uuid4().hex}{extension}"


def _blob(bucket_key: str, bucket_name: Optional[str] = None) -> storage.Blob:
    options = {}
    if getattr(settings, "GS_PROJECT_ID", None) is not None:
        options["project"] = settings.GS_PROJECT_ID
    if getattr(settings, "GS_CREDENTIALS", None) is not None:
        options["credentials"] = settings.GS_CREDENTIALS

    gcs = storage.Client(**options)
    return gcs.bucket(bucket_name or default_bucket_name()).blob(bucket_key)


def _signed_url(
    *,
    bucket_key: str,
    method: str,
    bucket_name: Optional[str],
    expires_in: Optional[int],
    content_type: Optional[str] = None,
) -> str:
    lifetime = expires_in or getattr(settings, "GS_EXPIRATION", 900)
    return _blob(bucket_key, bucket_name).generate_signed_url(
        version=SIGNED_URL_VERSION,
        expiration=timedelta(seconds=lifetime),
        method=method,
        content_type=content_type,
    )


def generate_upload_signed_url(
    *,
    bucket_key: str,
    mime_type: Optional[str] = None,
    expires_in: Optional[int] = None,
    bucket_name: Optional[str] = None,
) -> str:
    """URL de dépôt (PUT); le client doit envoyer le même ``Content-Type``."""

    return _signed_url(
        bucket_key=bucket_key,
        method="PUT",
        bucket_name=bucket_name,
        expires_in=expires_in,
        content_type=mime_type,
    )


def generate_download_signed_url(
    *, bucket_key: str, expires_in: Optional[int] = None, bucket_name: Optional[str] = None
) -> str:
    return _signed_url(
        bucket_key=bucket_key,
        method="GET",
        bucket_name=bucket_name,
        expires_in=expires_in,
    )


def blob_exists(*, bucket_key: str, bucket_name: Optional[str] = None) -> bool:
    return _blob(bucket_key, bucket_name).exists()


__all__ = [
    "blob_exists",
    "build_document_bucket_key",
    "default_bucket_name",
    "generate_download_signed_url",
    "generate_upload_signed_url",
]
