from __future__ import annotations

import logging
from decimal import Decimal

from ..errors import InsufficientFee
from ..types import EntrantAdmitted
from .state_machine import RoundStateMachine

logger = logging.getLogger("raffle.entry_pool")


class EntryPool:
    """Admission control for the current round.

    The fee is a floor: overpayment stays in the pool and no change is returned.
    Repeat entries by the same player are independent entries.
    """

    def __init__(self, machine: RoundStateMachine, entrance_fee: Decimal) -> None:
        self._machine = machine
        self._entrance_fee = Decimal(entrance_fee)

    @property
    def entrance_fee(self) -> Decimal:
        return self._entrance_fee

    def admit(self, player: str, paid_amount: Decimal) -> EntrantAdmitted:
        paid = Decimal(paid_amount)
        if paid < self._entrance_fee:
            raise InsufficientFee(paid, self._entrance_fee)
        self._machine.require_open()

        current = self._machine.round
        current.entrants.append(player)
        current.pool_balance += paid
        logger.info(
            "Admitted %s to round %s (paid=%s, pool=%s)",
            player,
            current.round_number,
            paid,
            current.pool_balance,
        )
        return EntrantAdmitted(round_number=current.round_number, player=player, amount=paid)
