"""Domain endpoints.

- ``GET    /domains``: paginated listing (query ``status``,
  ``domain_name``, ``user_id``, ``page``, ``page_size``)
- ``POST   /domains``: create a domain and issue its certificate
- ``DELETE /domains``: soft-delete by ``domain_id`` or ``domain_name``

Any other method yields a 405 problem.
"""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING, Any

from flask import Blueprint, current_app, g, jsonify, request
from jsonschema import Draft7Validator

from certsmith.api.serializers import serialize_page
from certsmith.app.context import get_container
from certsmith.app.errors import MALFORMED, ApiProblem
from certsmith.core.types import DomainStatus, VerificationMethod
from certsmith.models.requests import CreateDomainRequest, DeleteDomainRequest, DomainQuery

if TYPE_CHECKING:
    from contextlib import AbstractContextManager

domains_bp = Blueprint("domains", __name__)

_HOSTNAME = (
    r"^(\*\.)?([A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?\.)+"
    r"[A-Za-z0-9]([A-Za-z0-9-]{0,61}[A-Za-z0-9])?$"
)

CREATE_DOMAIN_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["domain"],
    "additionalProperties": False,
    "properties": {
        "domain": {"type": "string", "maxLength": 253, "pattern": _HOSTNAME},
        "alternative_domains": {
            "type": "array",
            "maxItems": 100,
            "items": {"type": "string", "maxLength": 253, "pattern": _HOSTNAME},
        },
        "verification_method": {"enum": [m.value for m in VerificationMethod]},
        "auto_renew": {"type": "boolean"},
        "nginx_container_name": {"type": "string", "maxLength": 255},
        "dns_provider": {"type": "string", "minLength": 1, "maxLength": 100},
    },
}

_create_validator = Draft7Validator(CREATE_DOMAIN_SCHEMA)


def _actor() -> str:
    settings = current_app.config["CERTSMITH_SETTINGS"]
    return g.get("user_id") or settings.api.default_actor


def _tracked(name: str) -> AbstractContextManager:
    coordinator = get_container().shutdown_coordinator
    if coordinator is None:
        return contextlib.nullcontext()
    return coordinator.track(name)


def _int_arg(name: str, default: int) -> int:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ApiProblem(MALFORMED, f"'{name}' must be an integer") from None
    if value < 1:
        raise ApiProblem(MALFORMED, f"'{name}' must be at least 1")
    return value


def parse_create_body(body: Any) -> CreateDomainRequest:  # noqa: ANN401
    """Validate a POST body and turn it into a :class:`CreateDomainRequest`."""
    if not isinstance(body, dict):
        raise ApiProblem(MALFORMED, "Request body must be a JSON object")
    errors = sorted(_create_validator.iter_errors(body), key=lambda e: list(e.path))
    if errors:
        first = errors[0]
        where = ".".join(str(p) for p in first.path) or "body"
        raise ApiProblem(MALFORMED, f"Invalid request at '{where}': {first.message}")

    return CreateDomainRequest(
        domain=body["domain"].strip().lower(),
        user_id=_actor(),
        alternative_domains=tuple(
            name.strip().lower() for name in body.get("alternative_domains", ())
        ),
        verification_method=body.get("verification_method", VerificationMethod.DNS_01.value),
        auto_renew=body.get("auto_renew", True),
        nginx_container_name=body.get("nginx_container_name", "").strip(),
        dns_provider=body.get("dns_provider", "no").strip(),
    )


@domains_bp.route("", methods=["GET"], endpoint="list_domains")
def list_domains():
    """GET /domains: one page of domains."""
    container = get_container()
    api = container.settings.api

    status = request.args.get("status") or None
    if status is not None and status not in {s.value for s in DomainStatus}:
        raise ApiProblem(MALFORMED, f"Unknown status '{status}'")

    query = DomainQuery(
        status=status,
        domain_name=(request.args.get("domain_name") or "").strip() or None,
        user_id=(request.args.get("user_id") or "").strip() or None,
        page=_int_arg("page", 1),
        page_size=_int_arg("page_size", api.default_page_size),
    )
    page = container.domain_service.list_domains(query)
    return jsonify(serialize_page(page)), 200


@domains_bp.route("", methods=["POST"], endpoint="create_domain")
def create_domain():
    """POST /domains: issue a certificate and register the domain."""
    container = get_container()
    body = request.get_json(silent=True)
    if body is None:
        raise ApiProblem(MALFORMED, "Request body is not valid JSON")
    create_request = parse_create_body(body)

    with _tracked(f"create {create_request.domain}"):
        domain_id = container.domain_service.create_domain(create_request)
    return jsonify({"id": domain_id}), 201


@domains_bp.route("", methods=["DELETE"], endpoint="delete_domain")
def delete_domain():
    """DELETE /domains: soft-delete one domain."""
    container = get_container()
    domain_id = (request.args.get("domain_id") or "").strip()
    domain_name = (request.args.get("domain_name") or "").strip().lower()
    if not domain_id and not domain_name:
        raise ApiProblem(MALFORMED, "Either 'domain_id' or 'domain_name' is required")

    user = (request.args.get("user") or "").strip() or _actor()
    delete_request = DeleteDomainRequest(
        user_id=user,
        domain_id=domain_id,
        domain_name=domain_name,
    )
    with _tracked(f"delete {delete_request.selector}"):
        container.domain_service.delete_domain(delete_request)
    return "", 204
