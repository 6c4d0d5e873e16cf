"""URL configuration for protocol_hub.

Only the JSON API of the Timeline engine is exposed. The Django admin
surface is not mounted; founders manage timelines through the founder
endpoints or the management commands.
"""
from __future__ import annotations

from django.urls import include, path

urlpatterns = [
    path('', include(('protocol.urls', 'protocol'), namespace='protocol')),
]
