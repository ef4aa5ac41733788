from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from ..schemas import PerformUpkeepResponse, UpkeepResponse
from .raffle import get_raffle

bp = Blueprint("upkeep", __name__)


@bp.get("")
def check_upkeep():
    raffle = get_raffle()
    status = raffle.check_upkeep()
    response = UpkeepResponse(
        upkeep_needed=status.ready,
        time_passed=status.time_passed,
        is_open=status.is_open,
        has_balance=status.has_balance,
        has_players=status.has_players,
        state=raffle.state.name,
        pending_request_id=raffle.pending_request_id,
    )
    return jsonify(response.model_dump())


@bp.post("/perform")
def perform_upkeep():
    raffle = get_raffle()
    outstanding = raffle.perform_close()
    current_app.logger.info(
        "Round %s closed; randomness request %s", outstanding.round_number, outstanding.request_id
    )
    response = PerformUpkeepResponse(
        request_id=outstanding.request_id,
        round_number=outstanding.round_number,
        state=raffle.state.name,
    )
    return jsonify(response.model_dump()), 202
