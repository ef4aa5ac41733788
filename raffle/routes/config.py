from __future__ import annotations

from typing import Any, Dict

from flask import Blueprint, jsonify

from ..config import load_settings

bp = Blueprint("config", __name__)


def _public_settings() -> Dict[str, Any]:
    settings = load_settings()
    return {
        "network": settings.raffle.network,
        "entrance_fee": str(settings.raffle.entrance_fee),
        "interval_seconds": settings.raffle.interval_seconds,
        "vrf": {
            "key_hash": settings.vrf.key_hash,
            "subscription_id": settings.vrf.subscription_id,
            "request_confirmations": settings.vrf.request_confirmations,
            "callback_gas_limit": settings.vrf.callback_gas_limit,
            "native_payment": settings.vrf.native_payment,
            "coordinator": settings.vrf.coordinator_address,
            "mock": not settings.vrf.coordinator_url,
        },
        "payout_mode": settings.payout.mode,
    }


@bp.get("/config")
def get_config():
    return jsonify(_public_settings())
