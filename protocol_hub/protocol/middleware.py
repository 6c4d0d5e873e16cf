from __future__ import annotations

import logging

from django.conf import settings

from protocol.models import Agent

logger = logging.getLogger(__name__)


class AgentIdentityMiddleware:
    """Attach the calling agent, resolved from the Bungie id header, to requests.

    Authentication happens upstream; this only maps the forwarded Bungie id to
    an ``Agent`` row. ``request.protocol_agent`` is None when the header is
    missing or unknown.
    """

    def __init__(self, get_response):
        self.get_response = get_response
        self._header = getattr(settings, "PROTOCOL_AGENT_HEADER", "HTTP_X_AGENT_ID")

    def __call__(self, request):
        request.protocol_agent = self._resolve_agent(request)
        return self.get_response(request)

    def _resolve_agent(self, request) -> Agent | None:
        bungie_id = str(request.META.get(self._header, "") or "").strip()
        if not bungie_id:
            return None
        agent = Agent.objects.filter(bungie_id=bungie_id).first()
        if agent is None:
            logger.debug("Unknown agent header %s", bungie_id)
        return agent
