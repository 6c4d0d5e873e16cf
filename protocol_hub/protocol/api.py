from __future__ import annotations

import json
from typing import Any

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from .models import Agent
from .services import interaction as interaction_service
from .services import navigation as navigation_service
from .services import timelines as timeline_service


def _parse_body(request: HttpRequest) -> tuple[dict[str, Any] | None, JsonResponse | None]:
    if not request.body:
        return {}, None
    try:
        payload = json.loads(request.body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None, JsonResponse({"error": "Request body must be valid JSON."}, status=400)
    if not isinstance(payload, dict):
        return None, JsonResponse({"error": "Request body must be a JSON object."}, status=400)
    return payload, None


def _require_agent(request: HttpRequest) -> tuple[Agent | None, JsonResponse | None]:
    agent = getattr(request, "protocol_agent", None)
    if agent is None:
        return None, JsonResponse({"error": "Agent authentication required."}, status=401)
    return agent, None


def _require_founder(request: HttpRequest) -> tuple[Agent | None, JsonResponse | None]:
    agent, error = _require_agent(request)
    if error:
        return None, error
    if not agent.is_founder():
        return None, JsonResponse({"error": "Founder access required."}, status=403)
    return agent, None


def _context(payload: dict[str, Any]) -> dict[str, Any]:
    raw = payload.get("context") or {}
    if not isinstance(raw, dict):
        return {}
    return {
        "timeline_id": raw.get("timeline_id") or None,
        "entry_id": raw.get("entry_id") or None,
    }


def _result_response(result: dict[str, Any], failure_status: int = 400, success_status: int = 200) -> JsonResponse:
    return JsonResponse(result, status=success_status if result.get("success") else failure_status)


@require_GET
def available_timelines(request: HttpRequest) -> JsonResponse:
    return JsonResponse(timeline_service.list_open_timelines())


@csrf_exempt
@require_POST
def interact(request: HttpRequest) -> JsonResponse:
    agent, error = _require_agent(request)
    if error:
        return error
    payload, error = _parse_body(request)
    if error:
        return error
    text = payload.get("input")
    if not isinstance(text, str) or not text.strip():
        return JsonResponse({"error": "Parameter 'input' is required."}, status=400)
    result = interaction_service.process_interaction(agent.pk, text, _context(payload))
    return _result_response(result)


@csrf_exempt
@require_POST
def go_home(request: HttpRequest) -> JsonResponse:
    agent, error = _require_agent(request)
    if error:
        return error
    return JsonResponse(navigation_service.go_home(agent.pk))


@csrf_exempt
@require_POST
def go_back(request: HttpRequest) -> JsonResponse:
    agent, error = _require_agent(request)
    if error:
        return error
    payload, error = _parse_body(request)
    if error:
        return error
    return _result_response(navigation_service.go_back(agent.pk, _context(payload)))


@require_GET
def agent_progress(request: HttpRequest, timeline_id: str) -> JsonResponse:
    agent, error = _require_agent(request)
    if error:
        return error
    return _result_response(timeline_service.get_agent_progress(agent.pk, timeline_id), failure_status=404)


@csrf_exempt
@require_http_methods(["GET", "POST"])
def founder_timelines(request: HttpRequest) -> JsonResponse:
    _, error = _require_founder(request)
    if error:
        return error
    if request.method == "GET":
        return JsonResponse(timeline_service.list_timelines())
    payload, error = _parse_body(request)
    if error:
        return error
    return _result_response(timeline_service.create_timeline(payload), success_status=201)


@csrf_exempt
@require_http_methods(["GET", "PATCH", "DELETE"])
def founder_timeline_detail(request: HttpRequest, timeline_id: str) -> JsonResponse:
    _, error = _require_founder(request)
    if error:
        return error
    if request.method == "GET":
        return _result_response(timeline_service.get_timeline(timeline_id), failure_status=404)
    if request.method == "DELETE":
        return _result_response(timeline_service.delete_timeline(timeline_id), failure_status=404)
    payload, error = _parse_body(request)
    if error:
        return error
    result = timeline_service.update_timeline(timeline_id, payload)
    failure_status = 404 if result.get("message") == "Timeline not found" else 400
    return _result_response(result, failure_status=failure_status)
