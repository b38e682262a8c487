"""Permissions par rôle pour l'API de dossiers."""

from __future__ import annotations

from rest_framework.permissions import BasePermission

from .models import Client, Comptable


class IsComptable(BasePermission):
    """Accès réservé aux utilisateurs disposant d'un profil comptable."""

    message = "Cette ressource est réservée aux comptables."

    def has_permission(self, request, view) -> bool:
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return Comptable.objects.filter(user=user).exists()


class IsClient(BasePermission):
    """Accès réservé aux utilisateurs rattachés à un client."""

    message = "Cette ressource est réservée aux clients."

    def has_permission(self, request, view) -> bool:
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return Client.objects.filter(user=user).exists()
