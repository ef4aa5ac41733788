from __future__ import annotations

from functools import lru_cache

from flask import Blueprint, jsonify, request

from ..config import load_settings
from ..schemas import EnterRaffleRequest, EnterRaffleResponse, RaffleStateResponse
from ..services.coordinator import build_coordinator
from ..services.event_log import EventRepository
from ..services.payouts import build_payout_gateway
from ..services.raffle import Raffle
from ..types import utc_from_timestamp

bp = Blueprint("raffle", __name__)
event_repo = EventRepository()


@lru_cache(maxsize=1)
def get_raffle() -> Raffle:
    settings = load_settings()
    raffle = Raffle(
        settings.raffle,
        settings.vrf,
        coordinator=build_coordinator(settings.vrf),
        payouts=build_payout_gateway(settings.payout),
    )
    raffle.events.subscribe(event_repo.record)
    return raffle


@bp.get("")
def get_state():
    raffle = get_raffle()
    snapshot = raffle.snapshot()
    response = RaffleStateResponse(
        round_number=snapshot.round_number,
        state=snapshot.state.name,
        entrance_fee=str(raffle.entrance_fee),
        interval=raffle.interval,
        number_of_players=len(snapshot.entrants),
        pool_balance=str(snapshot.pool_balance),
        last_close_timestamp=snapshot.last_close_timestamp,
        last_close_at=utc_from_timestamp(snapshot.last_close_timestamp).isoformat(),
        recent_winner=snapshot.recent_winner,
        pending_request_id=snapshot.pending_request_id,
        num_words=raffle.num_words,
        request_confirmations=raffle.request_confirmations,
    )
    return jsonify(response.model_dump())


@bp.post("/enter")
def enter_raffle():
    payload = request.get_json(force=True, silent=True) or {}
    data = EnterRaffleRequest(**payload)

    raffle = get_raffle()
    admitted = raffle.enter(data.player, data.amount)

    response = EnterRaffleResponse(
        round_number=admitted.round_number,
        player=admitted.player,
        amount=str(admitted.amount),
        number_of_players=raffle.number_of_players,
        pool_balance=str(raffle.pool_balance),
    )
    return jsonify(response.model_dump()), 201


@bp.get("/players/<int:index>")
def get_player(index: int):
    try:
        player = get_raffle().get_player(index)
    except IndexError:
        return jsonify({"error": "player not found"}), 404
    return jsonify({"index": index, "player": player})


@bp.get("/events")
def list_events():
    name = request.args.get("name")
    limit = request.args.get("limit", type=int)
    return jsonify(event_repo.list_events(name=name, limit=limit))
