from __future__ import annotations

import hmac
from typing import Optional

from flask import Blueprint, jsonify, request

from ..config import load_settings
from ..schemas import FulfillRandomWordsRequest, WinnerPickedResponse
from .raffle import get_raffle

bp = Blueprint("vrf", __name__)


def _caller_identity() -> Optional[str]:
    """Map the oracle's shared secret to the coordinator identity; anything else is anonymous."""
    vrf = load_settings().vrf
    provided = request.headers.get("X-Oracle-Token")
    if vrf.callback_token and provided and hmac.compare_digest(provided, vrf.callback_token):
        return vrf.coordinator_address
    return None


@bp.post("/fulfill")
def fulfill_random_words():
    payload = request.get_json(force=True, silent=True) or {}
    data = FulfillRandomWordsRequest(**payload)

    picked = get_raffle().raw_fulfill_random_words(
        _caller_identity(), data.request_id, data.random_words
    )
    response = WinnerPickedResponse(
        round_number=picked.round_number,
        winner=picked.winner,
        amount=str(picked.amount),
        request_id=picked.request_id,
        winner_index=picked.winner_index,
    )
    return jsonify(response.model_dump())
