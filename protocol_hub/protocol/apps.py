from __future__ import annotations

from django.apps import AppConfig


class ProtocolConfig(AppConfig):
    """Configuration for the protocol app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'protocol'
