"""Minimal deterministic OpenAPI document for the events service.

The Event schema carries ``x-transitions`` (status -> reachable statuses, with
labels) read straight from the workflow table, so the document cannot drift from
what the engine enforces.
"""
from typing import Any, Dict
from portal.workflow.engine import TRANSITIONS
from portal.workflow.states import ALL_ROLE_VALUES, ALL_STATUS_VALUES

__all__ = ["build_openapi_spec"]


def caching_headers() -> Dict[str, Any]:
    return {
        "ETag": {"schema": {"type": "string"}},
        "Last-Modified": {"schema": {"type": "string"}},
        "X-Last-Modified-ISO": {"schema": {"type": "string"}},
    }


def _transitions() -> Dict[str, Any]:
    return {
        status.value: [
            {
                "to": edge.to_status.value,
                "label": edge.label,
                "requires_comment": edge.requires_comment,
                "requires_ready": edge.requires_ready,
            }
            for edge in edges
        ]
        for status, edges in TRANSITIONS.items()
    }


def _event_schema() -> Dict[str, Any]:
    num = {"type": "number", "nullable": True}
    integer = {"type": "integer", "nullable": True}
    return {
        "type": "object",
        "properties": {
            "id": {"type": "integer"},
            "title": {"type": "string"},
            "description": {"type": "string", "nullable": True},
            "location": {"type": "string"},
            "event_type": {"type": "string", "nullable": True},
            "is_planned": {"type": "boolean"},
            "start_date": {"type": "string", "format": "date-time"},
            "end_date": {"type": "string", "format": "date-time"},
            "status": {"type": "string", "enum": list(ALL_STATUS_VALUES)},
            "creator_id": {"type": "integer"},
            "branch_id": {"type": "integer"},
            "budget": {"type": "number"},
            "planned_budget": num,
            "planned_enquiries": integer,
            "planned_orders": integer,
            "actual_budget": num,
            "actual_enquiries": integer,
            "actual_orders": integer,
            "version": {"type": "integer"},
        },
        "required": ["id", "title", "status", "creator_id", "branch_id", "version"],
        "x-transitions": _transitions(),
    }


def _op(summary: str, ok: str = "200", **extra) -> Dict[str, Any]:
    op = {"summary": summary, "responses": {ok: {"description": "OK"}}}
    op.update(extra)
    return op


def build_openapi_spec() -> Dict[str, Any]:
    list_params = [
        {"$ref": "#/components/parameters/LimitParam"},
        {"$ref": "#/components/parameters/OffsetParam"},
        {"name": "sort", "in": "query", "schema": {"type": "string"},
         "description": "title,start_date,end_date,budget,status,created_at,updated_at,id (prefix - for desc)"},
        {"name": "status", "in": "query", "schema": {"type": "string", "enum": list(ALL_STATUS_VALUES)}},
        {"name": "branch_id", "in": "query", "schema": {"type": "integer"}},
        {"name": "creator_id", "in": "query", "schema": {"type": "integer"}},
        {"name": "search", "in": "query", "schema": {"type": "string"}},
        {"name": "min_budget", "in": "query", "schema": {"type": "number"}},
        {"name": "max_budget", "in": "query", "schema": {"type": "number"}},
    ]
    if_match = {"name": "If-Match", "in": "header", "schema": {"type": "string"}}
    single = {
        "get": _op("Get event"),
        "head": _op("Event headers"),
        "put": _op("Edit event details", parameters=[if_match]),
        "delete": _op("Delete event", ok="204", parameters=[if_match]),
    }
    single["get"]["responses"]["200"]["headers"] = caching_headers()
    paths: Dict[str, Any] = {
        "/api/auth/me": {"get": _op("Current actor")},
        "/api/events": {
            "get": _op("List events", parameters=list_params),
            "head": _op("List events headers", parameters=list_params),
            "post": _op("Create draft event", ok="201"),
        },
        "/api/events/pending-approvals": {"get": _op("Events awaiting the caller's decision")},
        "/api/events/{event_id}": single,
        "/api/events/{event_id}/permissions": {"get": _op("Permission summary and available actions")},
        "/api/events/{event_id}/metrics": {"put": _op("Record actual values", parameters=[if_match])},
        "/api/events/{event_id}/status": {"patch": _op("Apply a status transition", parameters=[if_match])},
        "/api/events/{event_id}/comments": {
            "get": _op("List comments"),
            "post": _op("Add comment", ok="201"),
        },
    }
    for path, ops in paths.items():
        tag = path.split("/")[2].capitalize()
        for method, od in ops.items():
            rid = path.strip("/").replace("/", "_").replace("{", "").replace("}", "").replace("-", "_")
            od["operationId"] = f"{method}_{rid}"
            od["tags"] = [tag]
            if "{event_id}" in path:
                od.setdefault("parameters", [])
                od["parameters"] = [{"name": "event_id", "in": "path", "required": True, "schema": {"type": "integer"}}] + od["parameters"]

    components: Dict[str, Any] = {
        "schemas": {
            "Event": _event_schema(),
            "Actor": {
                "type": "object",
                "properties": {
                    "id": {"type": "integer"},
                    "role": {"type": "string", "enum": list(ALL_ROLE_VALUES)},
                    "branch_id": {"type": "integer", "nullable": True},
                },
            },
            "Pagination": {
                "type": "object",
                "properties": {
                    "total": {"type": "integer"},
                    "limit": {"type": "integer"},
                    "offset": {"type": "integer"},
                    "returned": {"type": "integer"},
                },
                "required": ["total", "limit", "offset", "returned"],
            },
            "Error": {
                "type": "object",
                "properties": {
                    "error": {
                        "type": "object",
                        "properties": {
                            "status": {"type": "integer"},
                            "title": {"type": "string"},
                            "detail": {"type": "string"},
                        },
                    }
                },
                "required": ["error"],
            },
        },
        "securitySchemes": {"BearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}},
        "parameters": {
            "LimitParam": {"name": "limit", "in": "query", "schema": {"type": "integer", "default": 50}},
            "OffsetParam": {"name": "offset", "in": "query", "schema": {"type": "integer", "default": 0}},
        },
    }
    return {
        "openapi": "3.0.3",
        "info": {"title": "Dealer Events Portal API", "version": "0.1.0"},
        "paths": paths,
        "components": components,
        "security": [{"BearerAuth": []}],
        "tags": [{"name": "Auth", "description": "Auth endpoints"}, {"name": "Events", "description": "Event approval workflow"}],
    }
