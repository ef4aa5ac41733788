from __future__ import annotations

import datetime as dt
import json
from typing import Any, Dict

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class RaffleEvent(Base):
    __tablename__ = "raffle_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(64), nullable=False, index=True)
    round_number = Column(Integer, nullable=False, index=True)
    payload = Column(Text, nullable=False, default="{}")
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    def set_payload(self, payload: Dict[str, Any]) -> None:
        self.payload = json.dumps(payload)

    def get_payload(self) -> Dict[str, Any]:
        return json.loads(self.payload)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "round_number": self.round_number,
            "payload": self.get_payload(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
