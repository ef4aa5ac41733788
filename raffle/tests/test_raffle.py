import unittest
from decimal import Decimal

from raffle.config import RaffleSettings, VRFSettings
from raffle.errors import (
    InsufficientFee,
    InvalidRandomWords,
    OnlyCoordinatorCanFulfill,
    PayoutTransferFailed,
    RoundNotOpen,
    UnknownOrExpiredRequest,
    UpkeepNotNeeded,
)
from raffle.services.coordinator import VRFCoordinatorMock
from raffle.services.payouts import LedgerPayoutGateway
from raffle.services.raffle import Raffle
from raffle.types import RaffleState

INTERVAL = 30
START = 1_700_000_000


class FakeClock:
    def __init__(self, now: int = START) -> None:
        self.now = now

    def __call__(self) -> float:
        return float(self.now)

    def advance(self, seconds: int) -> None:
        self.now += seconds


class FailingPayouts:
    def __init__(self) -> None:
        self.attempts = []

    def transfer(self, recipient, amount):
        self.attempts.append((recipient, amount))
        raise RuntimeError("recipient rejected transfer")


class RaffleTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()
        self.coordinator = VRFCoordinatorMock()
        self.payouts = LedgerPayoutGateway()
        self.events = []
        self.raffle = self._make_raffle(self.payouts)

    def _make_raffle(self, payouts) -> Raffle:
        raffle = Raffle(
            RaffleSettings(network="localhost", entrance_fee=Decimal("1.0"), interval_seconds=INTERVAL),
            VRFSettings(key_hash="0xabc", subscription_id=7, request_confirmations=3),
            coordinator=self.coordinator,
            payouts=payouts,
            clock=self.clock,
        )
        raffle.events.subscribe(self.events.append)
        return raffle

    def _fill(self, *players: str) -> None:
        for player in players:
            self.raffle.enter(player, Decimal("1.0"))

    def _event_names(self):
        return [event.name for event in self.events]

    # ------------------------------------------------------------------ #
    # Admission
    # ------------------------------------------------------------------ #

    def test_admissions_accumulate_pool_and_players(self) -> None:
        self.raffle.enter("A", Decimal("1.0"))
        self.raffle.enter("B", Decimal("2.5"))
        self.raffle.enter("A", Decimal("1.0"))

        self.assertEqual(self.raffle.pool_balance, Decimal("4.5"))
        self.assertEqual(self.raffle.number_of_players, 3)
        self.assertEqual(self.raffle.get_player(0), "A")
        self.assertEqual(self.raffle.get_player(2), "A")
        self.assertEqual(self._event_names(), ["RaffleEnter"] * 3)
        self.assertEqual(self.events[1].amount, Decimal("2.5"))

    def test_underpayment_is_rejected_without_effect(self) -> None:
        self._fill("A")
        with self.assertRaises(InsufficientFee) as ctx:
            self.raffle.enter("B", Decimal("0.99"))

        self.assertEqual(ctx.exception.required, Decimal("1.0"))
        self.assertEqual(self.raffle.pool_balance, Decimal("1.0"))
        self.assertEqual(self.raffle.number_of_players, 1)
        self.assertEqual(len(self.events), 1)

    def test_entry_rejected_while_calculating(self) -> None:
        self._fill("A")
        self.clock.advance(INTERVAL)
        self.raffle.perform_close()

        with self.assertRaises(RoundNotOpen):
            self.raffle.enter("B", Decimal("1.0"))
        self.assertEqual(self.raffle.number_of_players, 1)

    def test_get_player_out_of_range(self) -> None:
        with self.assertRaises(IndexError):
            self.raffle.get_player(0)

    # ------------------------------------------------------------------ #
    # Upkeep
    # ------------------------------------------------------------------ #

    def test_check_ready_requires_every_condition(self) -> None:
        self.assertFalse(self.raffle.check_ready())

        self._fill("A")
        self.clock.advance(INTERVAL - 1)
        status = self.raffle.check_upkeep()
        self.assertFalse(status.ready)
        self.assertFalse(status.time_passed)
        self.assertTrue(status.has_players)
        self.assertTrue(status.has_balance)

        self.clock.advance(1)
        self.assertTrue(self.raffle.check_ready())

        self.raffle.perform_close()
        status = self.raffle.check_upkeep()
        self.assertFalse(status.ready)
        self.assertFalse(status.is_open)

    def test_check_ready_false_without_players(self) -> None:
        self.clock.advance(INTERVAL * 10)
        status = self.raffle.check_upkeep()
        self.assertFalse(status.ready)
        self.assertFalse(status.has_players)
        self.assertFalse(status.has_balance)

        with self.assertRaises(UpkeepNotNeeded):
            self.raffle.perform_close()
        self.assertIsNone(self.coordinator.last_request_id)

    def test_perform_close_not_ready_reports_diagnostics(self) -> None:
        self._fill("A", "B")

        with self.assertRaises(UpkeepNotNeeded) as ctx:
            self.raffle.perform_close()

        self.assertEqual(ctx.exception.balance, Decimal("2.0"))
        self.assertEqual(ctx.exception.num_players, 2)
        self.assertEqual(ctx.exception.state, int(RaffleState.OPEN))
        self.assertEqual(self.raffle.state, RaffleState.OPEN)
        self.assertEqual(self.coordinator.pending_requests(), {})

    def test_perform_close_issues_single_request(self) -> None:
        self._fill("A")
        self.clock.advance(INTERVAL)

        outstanding = self.raffle.perform_close()
        request_id = outstanding.request_id

        self.assertEqual(outstanding.round_number, 1)
        self.assertEqual(self.raffle.state, RaffleState.CALCULATING)
        self.assertEqual(self.raffle.pending_request_id, request_id)
        pending = self.coordinator.pending_requests()
        self.assertEqual(list(pending), [request_id])
        sent = pending[request_id]
        self.assertEqual(sent.num_words, 1)
        self.assertEqual(sent.key_hash, "0xabc")
        self.assertEqual(sent.subscription_id, 7)
        self.assertEqual(sent.request_confirmations, 3)
        self.assertEqual(self._event_names()[-1], "RequestedRaffleWinner")
        self.assertEqual(self.events[-1].request_id, request_id)

        with self.assertRaises(UpkeepNotNeeded) as ctx:
            self.raffle.perform_close()
        self.assertEqual(ctx.exception.state, int(RaffleState.CALCULATING))
        self.assertEqual(len(self.coordinator.pending_requests()), 1)

    def test_coordinator_failure_keeps_round_open(self) -> None:
        class BrokenCoordinator(VRFCoordinatorMock):
            def request_random_words(self, request):
                raise ConnectionError("oracle unreachable")

        self.coordinator = BrokenCoordinator()
        self.raffle = self._make_raffle(self.payouts)
        self._fill("A")
        self.clock.advance(INTERVAL)

        with self.assertRaises(ConnectionError):
            self.raffle.perform_close()
        self.assertEqual(self.raffle.state, RaffleState.OPEN)
        self.assertIsNone(self.raffle.pending_request_id)

    # ------------------------------------------------------------------ #
    # Resolution
    # ------------------------------------------------------------------ #

    def test_end_to_end_draw_pays_winner(self) -> None:
        self._fill("A", "B", "C")
        self.assertEqual(self.raffle.pool_balance, Decimal("3.0"))
        self.clock.advance(INTERVAL)
        request_id = self.raffle.perform_close().request_id
        self.clock.advance(5)

        picked = self.coordinator.fulfill_random_words(request_id, self.raffle, [7])

        self.assertEqual(picked.winner, "B")
        self.assertEqual(picked.winner_index, 1)
        self.assertEqual(picked.amount, Decimal("3.0"))
        self.assertEqual(self.raffle.recent_winner, "B")
        self.assertEqual(self.raffle.state, RaffleState.OPEN)
        self.assertEqual(self.raffle.pool_balance, Decimal(0))
        self.assertEqual(self.raffle.number_of_players, 0)
        self.assertIsNone(self.raffle.pending_request_id)
        self.assertEqual(self.raffle.last_close_timestamp, START + INTERVAL + 5)
        self.assertEqual(self.payouts.balance_of("B"), Decimal("3.0"))
        self.assertEqual(self.payouts.balance_of("A"), Decimal(0))
        self.assertEqual(self._event_names()[-1], "WinnerPicked")

    def test_fresh_round_starts_from_zero(self) -> None:
        self._fill("A", "B")
        self.clock.advance(INTERVAL)
        request_id = self.raffle.perform_close().request_id
        self.coordinator.fulfill_random_words(request_id, self.raffle, [0])

        self.raffle.enter("C", Decimal("1.5"))

        snapshot = self.raffle.snapshot()
        self.assertEqual(snapshot.round_number, 2)
        self.assertEqual(snapshot.entrants, ("C",))
        self.assertEqual(snapshot.pool_balance, Decimal("1.5"))
        self.assertEqual(self.payouts.balance_of("A"), Decimal("2.0"))
        self.assertFalse(self.raffle.check_ready())

    def test_duplicate_entrant_counts_twice(self) -> None:
        self._fill("A", "B", "A")
        self.clock.advance(INTERVAL)
        request_id = self.raffle.perform_close().request_id

        picked = self.coordinator.fulfill_random_words(request_id, self.raffle, [5])

        self.assertEqual(picked.winner_index, 2)
        self.assertEqual(picked.winner, "A")

    def test_unknown_request_rejected(self) -> None:
        with self.assertRaises(UnknownOrExpiredRequest):
            self.raffle.raw_fulfill_random_words(self.coordinator.address, 1, [7])

        self._fill("A")
        self.clock.advance(INTERVAL)
        request_id = self.raffle.perform_close().request_id

        with self.assertRaises(UnknownOrExpiredRequest):
            self.raffle.raw_fulfill_random_words(self.coordinator.address, request_id + 1, [7])
        self.assertEqual(self.raffle.state, RaffleState.CALCULATING)

    def test_replayed_request_rejected_after_resolution(self) -> None:
        self._fill("A")
        self.clock.advance(INTERVAL)
        request_id = self.raffle.perform_close().request_id
        self.raffle.raw_fulfill_random_words(self.coordinator.address, request_id, [1])
        self.raffle.enter("B", Decimal("1.0"))

        with self.assertRaises(UnknownOrExpiredRequest):
            self.raffle.raw_fulfill_random_words(self.coordinator.address, request_id, [1])
        self.assertEqual(self.raffle.number_of_players, 1)
        self.assertEqual(self.payouts.balance_of("A"), Decimal("1.0"))

    def test_fulfil_requires_coordinator_identity(self) -> None:
        self._fill("A")
        self.clock.advance(INTERVAL)
        request_id = self.raffle.perform_close().request_id

        with self.assertRaises(OnlyCoordinatorCanFulfill):
            self.raffle.raw_fulfill_random_words("mallory", request_id, [7])
        self.assertEqual(self.raffle.state, RaffleState.CALCULATING)

    def test_empty_random_words_rejected(self) -> None:
        self._fill("A")
        self.clock.advance(INTERVAL)
        request_id = self.raffle.perform_close().request_id

        with self.assertRaises(InvalidRandomWords):
            self.raffle.raw_fulfill_random_words(self.coordinator.address, request_id, [])
        self.assertEqual(self.raffle.pending_request_id, request_id)

    def test_mock_coordinator_derives_words(self) -> None:
        self._fill("A", "B", "C", "D")
        self.clock.advance(INTERVAL)
        request_id = self.raffle.perform_close().request_id

        picked = self.coordinator.fulfill_random_words(request_id, self.raffle)

        self.assertIn(picked.winner, {"A", "B", "C", "D"})
        with self.assertRaises(ValueError):
            self.coordinator.fulfill_random_words(request_id, self.raffle)

    def test_failed_payout_keeps_reset_round(self) -> None:
        payouts = FailingPayouts()
        self.raffle = self._make_raffle(payouts)
        self._fill("A", "B", "C")
        self.clock.advance(INTERVAL)
        request_id = self.raffle.perform_close().request_id

        with self.assertRaises(PayoutTransferFailed) as ctx:
            self.raffle.raw_fulfill_random_words(self.coordinator.address, request_id, [7])

        self.assertEqual(ctx.exception.winner, "B")
        self.assertEqual(ctx.exception.amount, Decimal("3.0"))
        self.assertEqual(payouts.attempts, [("B", Decimal("3.0"))])
        self.assertEqual(self.raffle.state, RaffleState.OPEN)
        self.assertEqual(self.raffle.recent_winner, "B")
        self.assertEqual(self.raffle.pool_balance, Decimal(0))
        self.assertEqual(self._event_names()[-2:], ["WinnerPicked", "PayoutFailed"])

        self.raffle.enter("D", Decimal("1.0"))
        self.assertEqual(self.raffle.number_of_players, 1)

    def test_accessors_expose_configuration(self) -> None:
        self.assertEqual(self.raffle.entrance_fee, Decimal("1.0"))
        self.assertEqual(self.raffle.interval, INTERVAL)
        self.assertEqual(self.raffle.num_words, 1)
        self.assertEqual(self.raffle.request_confirmations, 3)
        self.assertEqual(self.raffle.last_close_timestamp, START)
        self.assertIsNone(self.raffle.recent_winner)


if __name__ == "__main__":
    unittest.main()
