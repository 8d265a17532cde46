"""Workflow error taxonomy.

Every lifecycle workflow (create, delete, renew) aborts with exactly one
:class:`WorkflowError` subclass naming the step that failed.  The
underlying cause is always chained with ``raise ... from exc`` so the
original database / provider / OS error stays available to logs while
the HTTP layer only ever sees the wrapper.

Usage::

    try:
        material = provider.issue(name, alternatives)
    except ProviderError as exc:
        raise IssuanceFailed("issue", name, "certificate issuance failed") from exc
"""

from __future__ import annotations


class WorkflowError(Exception):
    """Base class for all lifecycle workflow failures.

    Parameters
    ----------
    step:
        Short identifier of the workflow step that failed
        (e.g. ``"issue"``, ``"persist_artifacts"``, ``"commit"``).
    domain:
        The primary domain name the workflow was operating on, or an
        empty string when unknown.
    detail:
        Human-readable message.  Safe to log; never returned to HTTP
        clients verbatim for 5xx errors.
    """

    default_detail = "workflow failed"

    def __init__(self, step: str = "", domain: str = "", detail: str = "") -> None:
        self.step = step
        self.domain = domain
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def __str__(self) -> str:
        parts = [self.detail]
        if self.step:
            parts.append(f"step={self.step}")
        if self.domain:
            parts.append(f"domain={self.domain}")
        return " ".join(parts)


class AlreadyExists(WorkflowError):
    default_detail = "a non-deleted domain with this name already exists"


class NotFound(WorkflowError):
    default_detail = "domain not found"


class IssuanceFailed(WorkflowError):
    default_detail = "certificate issuance failed"


class StorageFailed(WorkflowError):
    default_detail = "certificate artifacts could not be stored"


class PersistenceFailed(WorkflowError):
    default_detail = "database write failed"


class CommitFailed(WorkflowError):
    default_detail = "transaction commit failed"


class ReloadFailed(WorkflowError):
    default_detail = "certificate renewed but reload failed"


class ConfigurationError(WorkflowError):
    default_detail = "configuration error"


class EntityValueError(ConfigurationError, TypeError):
    """An :class:`~certsmith.core.entity.Entity` was built with a value of
    an unsupported kind.

    This is a programming error, not a runtime condition: workflows
    never catch it, and it propagates up to abort the request (or the
    process, for the scheduler thread) instead of corrupting a write.
    """

    default_detail = "unsupported entity attribute value"

    def __init__(self, table: str, column: str, value: object) -> None:
        self.table = table
        self.column = column
        self.value_type = type(value).__name__
        super().__init__(
            "build_entity",
            "",
            f"unsupported value of type {self.value_type} for {table}.{column}",
        )
