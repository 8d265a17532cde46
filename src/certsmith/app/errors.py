"""RFC 7807 Problem Details for the domain API.

Provides :class:`ApiProblem`, an exception that renders itself as an
``application/problem+json`` response, plus the problem-type URNs and
a Flask error-handler registration function that maps workflow errors
onto HTTP statuses.

Only the client-facing half of an error ever leaves the process:
already-exists and not-found carry a short detail, everything else is
reported as a generic 500.

Usage::

    raise ApiProblem(MALFORMED, "Request body is not valid JSON", 400)
"""

from __future__ import annotations

import logging
from typing import Any

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from certsmith.core.errors import AlreadyExists, NotFound, WorkflowError

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Problem-type URNs
# ---------------------------------------------------------------------------
_P = "urn:certsmith:error:"

ALREADY_EXISTS = _P + "alreadyExists"
MALFORMED = _P + "malformed"
NOT_FOUND = _P + "notFound"
SERVER_INTERNAL = _P + "serverInternal"

PROBLEM_CONTENT_TYPE = "application/problem+json"

_GENERIC_DETAIL = "An internal error occurred while processing the request"


class ApiProblem(Exception):
    """An RFC 7807 *problem details* object that doubles as an exception.

    Parameters
    ----------
    error_type:
        A URN string (one of the constants above) or ``"about:blank"``
        for generic HTTP errors.
    detail:
        Human-readable explanation of the problem.
    status:
        HTTP status code (default 400).
    title:
        Short summary; omitted when *error_type* is self-explanatory.
    headers:
        Extra HTTP headers to include on the response (e.g. ``Allow``).
    """

    def __init__(
        self,
        error_type: str,
        detail: str,
        status: int = 400,
        *,
        title: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.error_type = error_type
        self.detail = detail
        self.status = status
        self.title = title
        self.extra_headers = headers or {}
        super().__init__(detail)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "type": self.error_type,
            "detail": self.detail,
            "status": self.status,
        }
        if self.title is not None:
            body["title"] = self.title
        return body

    def to_response(self):
        """Build a Flask :class:`~flask.Response`."""
        resp = jsonify(self.to_dict())
        resp.status_code = self.status
        resp.headers["Content-Type"] = PROBLEM_CONTENT_TYPE
        resp.headers["Cache-Control"] = "no-store"
        for key, value in self.extra_headers.items():
            resp.headers[key] = value
        return resp


def problem_for(exc: WorkflowError) -> ApiProblem:
    """Translate a workflow error into the problem returned to the client."""
    if isinstance(exc, AlreadyExists):
        return ApiProblem(ALREADY_EXISTS, f"domain {exc.domain} already exists", 409)
    if isinstance(exc, NotFound):
        return ApiProblem(NOT_FOUND, "domain not found", 404)
    return ApiProblem(SERVER_INTERNAL, _GENERIC_DETAIL, 500)


# ---------------------------------------------------------------------------
# Flask error handler registration
# ---------------------------------------------------------------------------


def register_error_handlers(app: Flask) -> None:
    """Attach handlers that produce RFC 7807 responses for all errors."""

    @app.errorhandler(ApiProblem)
    def _handle_api_problem(exc: ApiProblem):
        return exc.to_response()

    @app.errorhandler(WorkflowError)
    def _handle_workflow_error(exc: WorkflowError):
        problem = problem_for(exc)
        if problem.status >= 500:
            log.error("Workflow failed: %s", exc)
        return problem.to_response()

    @app.errorhandler(HTTPException)
    def _handle_http_exception(exc: HTTPException):
        headers = {}
        allowed = getattr(exc, "valid_methods", None)
        if allowed:
            headers["Allow"] = ", ".join(allowed)
        problem = ApiProblem(
            "about:blank",
            exc.description or "An error occurred",
            exc.code or 500,
            title=exc.name,
            headers=headers,
        )
        return problem.to_response()

    @app.errorhandler(Exception)
    def _handle_unhandled(exc: Exception):
        log.exception("Unhandled exception during request")
        return ApiProblem(SERVER_INTERNAL, _GENERIC_DETAIL, 500).to_response()
