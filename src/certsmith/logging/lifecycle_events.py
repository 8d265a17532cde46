"""Structured lifecycle audit events.

Every domain / certificate state change and every workflow failure is
emitted on the ``certsmith.audit`` logger with a stable ``event_id``
so operators can filter and alert on them.  These records complement
the ``events`` table: they are written even when the database is the
thing that failed.

Extra fields pass through :func:`~certsmith.logging.sanitize.sanitize_for_logs`
before emission.
"""

from __future__ import annotations

import logging
from typing import Any

from certsmith.logging.sanitize import sanitize_for_logs

audit_log = logging.getLogger("certsmith.audit")


def _emit(
    event_id: str,
    message: str,
    *args: Any,  # noqa: ANN401
    severity: str = "INFO",
    **extra: Any,  # noqa: ANN401
) -> None:
    data: dict[str, object] = {"event_id": event_id, "severity": severity}
    data.update(sanitize_for_logs(extra))
    level = getattr(logging, severity.upper(), logging.INFO)
    audit_log.log(level, message, *args, extra=data)


def domain_created(
    domain_id: str,
    domain_name: str,
    alternative_domains: list[str],
    dns_provider: str,
    actor: str,
) -> None:
    _emit(
        "certsmith.audit.domain_created",
        "Domain created: %s (%s)",
        domain_name,
        domain_id,
        domain_id=domain_id,
        domain_name=domain_name,
        alternative_domains=alternative_domains,
        dns_provider=dns_provider,
        actor=actor,
    )


def domain_deleted(domain_id: str, domain_name: str, actor: str) -> None:
    _emit(
        "certsmith.audit.domain_deleted",
        "Domain deleted: %s (%s)",
        domain_name,
        domain_id,
        domain_id=domain_id,
        domain_name=domain_name,
        actor=actor,
        severity="WARNING",
    )


def certificate_renewed(
    domain_id: str,
    domain_name: str,
    valid_to: object,
    actor: str,
) -> None:
    _emit(
        "certsmith.audit.certificate_renewed",
        "Certificate renewed for %s, valid until %s",
        domain_name,
        valid_to,
        domain_id=domain_id,
        domain_name=domain_name,
        actor=actor,
    )


def workflow_failed(
    workflow: str,
    step: str,
    domain_name: str,
    reason: str,
    actor: str = "",
) -> None:
    """A workflow aborted at *step*."""
    _emit(
        "certsmith.audit.workflow_failed",
        "%s failed for %s at step %s: %s",
        workflow,
        domain_name,
        step,
        reason,
        workflow=workflow,
        step=step,
        domain_name=domain_name,
        actor=actor,
        severity="ERROR",
    )


def reconciliation_required(
    domain_name: str,
    step: str,
    artifact_dir: str,
    detail: str,
) -> None:
    """An issued certificate is not (or no longer) linked to any database row.

    Raised on every path where issuance succeeded but persistence did
    not: operators must reconcile the artifact directory by hand.
    """
    _emit(
        "certsmith.audit.reconciliation_required",
        "Issued certificate for %s orphaned after %s; artifacts: %s",
        domain_name,
        step,
        artifact_dir or "-",
        domain_name=domain_name,
        step=step,
        artifact_dir=artifact_dir,
        detail=detail,
        severity="CRITICAL",
    )
