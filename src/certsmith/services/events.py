"""Append-only audit event writer.

Events are written either inside the caller's transaction
(:meth:`EventRecorder.write`, failure propagates and rolls the caller
back) or on their own (:meth:`EventRecorder.write_safely`, failure is
logged and reported as ``False`` so it never changes a workflow's
outcome).
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from certsmith.core.entity import Entity, EntityBuilder
from certsmith.core.errors import EntityValueError

if TYPE_CHECKING:
    from collections.abc import Callable

    from certsmith.core.types import EventType
    from certsmith.db.unit_of_work import UnitOfWork

log = logging.getLogger(__name__)

_MAX_MESSAGE_LENGTH = 2000


class EventRecorder:
    """Builds and writes ``events`` rows.

    Parameters
    ----------
    uow_factory:
        Zero-argument callable returning a fresh :class:`UnitOfWork`;
        used by :meth:`write_safely`.
    """

    def __init__(self, uow_factory: Callable[[], UnitOfWork]) -> None:
        self._uow_factory = uow_factory

    @staticmethod
    def build(
        event_type: EventType,
        message: str,
        actor: str,
        domain_id: str = "",
        now: datetime | None = None,
    ) -> Entity:
        builder = (
            EntityBuilder("events")
            .text("event_type", event_type.value)
            .text("message", message[:_MAX_MESSAGE_LENGTH])
            .text("actor", actor)
            .timestamp("created_at", now or datetime.now(UTC))
        )
        # domain-less failures leave domain_id NULL
        if domain_id:
            builder.text("domain_id", domain_id)
        return builder.build()

    def write(
        self,
        uow: UnitOfWork,
        event_type: EventType,
        message: str,
        actor: str,
        domain_id: str = "",
        now: datetime | None = None,
    ) -> str:
        """Insert an event inside *uow*; errors propagate."""
        return uow.insert(self.build(event_type, message, actor, domain_id, now))

    def write_safely(
        self,
        event_type: EventType,
        message: str,
        actor: str,
        domain_id: str = "",
    ) -> bool:
        """Insert an event in its own transaction; never raises for I/O errors."""
        entity = self.build(event_type, message, actor, domain_id)
        try:
            with self._uow_factory() as uow:
                uow.insert(entity)
                uow.commit()
        except EntityValueError:
            raise
        except Exception:  # noqa: BLE001
            log.exception(
                "Could not record %s event for %s (actor=%s): %s",
                event_type.value,
                domain_id or "<no domain>",
                actor,
                message,
            )
            return False
        return True
