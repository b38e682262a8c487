"""Création et lecture des notifications clients/comptables."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from django.utils import timezone

from .exceptions import DossierNotFound
from .models import Client, Comptable, Notification, NotificationType

logger = logging.getLogger(__name__)


def notify(
    *,
    titre: str,
    message: str,
    client: Optional[Client] = None,
    comptable: Optional[Comptable] = None,
    type: str = NotificationType.DOCUMENT_RECU,
) -> Notification:
    """Enregistre une notification pour un client ou un comptable."""

    if client is None and comptable is None:
        raise ValueError("Une notification doit cibler un client ou un comptable.")

    notification = Notification.objects.create(
        titre=titre,
        message=message,
        type=type,
        client=client,
        comptable=comptable,
    )
    logger.debug(
        "Notification %s créée (client=%s, comptable=%s)",
        notification.id,
        getattr(client, "id", None),
        getattr(comptable, "id", None),
    )
    return notification


def notify_clients(
    clients: Iterable[Client],
    *,
    titre: str,
    message: str,
    type: str = NotificationType.DOSSIER,
) -> list[Notification]:
    return Notification.objects.bulk_create(
        [
            Notification(titre=titre, message=message, type=type, client=client)
            for client in clients
        ]
    )


def list_client_notifications(client: Client, *, limit: int = 10, offset: int = 0) -> dict:
    queryset = Notification.objects.filter(client=client)
    notifications = list(queryset.order_by("-created_at")[offset : offset + limit])
    total_count = queryset.count()

    return {
        "notifications": notifications,
        "total_count": total_count,
        "unread_count": queryset.filter(lu=False).count(),
        "has_more": offset + len(notifications) < total_count,
    }


def mark_notification_as_read(notification_id, client: Client) -> Notification:
    notification = Notification.objects.filter(id=notification_id, client=client).first()
    if notification is None:
        raise DossierNotFound("Notification introuvable ou accès refusé.")

    notification.lu = True
    notification.date_lecture = timezone.now()
    notification.save(update_fields=["lu", "date_lecture", "updated_at"])
    return notification


__all__ = [
    "list_client_notifications",
    "mark_notification_as_read",
    "notify",
    "notify_clients",
]
