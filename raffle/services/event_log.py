from __future__ import annotations

from typing import Dict, List, Optional

from ..db import session_scope
from ..models import RaffleEvent
from ..types import RaffleEventBase


class EventRepository:
    """Indexes emitted raffle events for the HTTP surface."""

    def record(self, event: RaffleEventBase) -> None:
        with session_scope() as session:
            row = RaffleEvent(name=event.name, round_number=event.round_number)
            row.set_payload(event.payload())
            session.add(row)

    def list_events(
        self, name: Optional[str] = None, limit: Optional[int] = None
    ) -> List[Dict[str, object]]:
        with session_scope() as session:
            query = session.query(RaffleEvent).order_by(RaffleEvent.id.desc())
            if name:
                query = query.filter(RaffleEvent.name == name)
            if limit:
                query = query.limit(limit)
            return [row.to_dict() for row in query.all()]
