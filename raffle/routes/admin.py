from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..config import load_settings
from ..schemas import MockFulfillRequest, WinnerPickedResponse
from ..services.coordinator import VRFCoordinatorMock
from ..types import PayoutFailed
from .raffle import event_repo, get_raffle

bp = Blueprint("admin", __name__)


def _require_admin() -> bool:
    settings = load_settings()
    api_key = settings.admin_api_key
    if api_key:
        provided = request.headers.get("X-Admin-Token")
        if provided != api_key:
            return False
    return True


@bp.before_request
def verify_admin():
    if not _require_admin():
        return jsonify({"error": "unauthorized"}), 401
    return None


@bp.get("/payouts/failed")
def list_failed_payouts():
    return jsonify(event_repo.list_events(name=PayoutFailed.name))


@bp.post("/vrf/mock/fulfill")
def mock_fulfill():
    """Drive the in-process coordinator on local networks."""
    payload = request.get_json(force=True, silent=True) or {}
    data = MockFulfillRequest(**payload)

    raffle = get_raffle()
    coordinator = raffle.coordinator
    if not isinstance(coordinator, VRFCoordinatorMock):
        return jsonify({"error": "mock coordinator not in use"}), 400

    try:
        picked = coordinator.fulfill_random_words(data.request_id, raffle, data.random_words)
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 404

    response = WinnerPickedResponse(
        round_number=picked.round_number,
        winner=picked.winner,
        amount=str(picked.amount),
        request_id=picked.request_id,
        winner_index=picked.winner_index,
    )
    return jsonify(response.model_dump())
