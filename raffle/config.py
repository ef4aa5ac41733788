from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Dict, Optional

from dotenv import load_dotenv

LOCAL_NETWORKS = {"localhost", "hardhat"}

# Per-network defaults; environment variables override them.
NETWORK_PRESETS: Dict[str, Dict[str, object]] = {
    "localhost": {
        "entrance_fee": "0.01",
        "interval_seconds": 30,
        "key_hash": "0x474e34a077df58807dbe9c96d3c009b23b3c6d0cce433e59bbf5b34f823bc56c",
        "callback_gas_limit": 500000,
    },
    "hardhat": {
        "entrance_fee": "0.01",
        "interval_seconds": 30,
        "key_hash": "0x474e34a077df58807dbe9c96d3c009b23b3c6d0cce433e59bbf5b34f823bc56c",
        "callback_gas_limit": 500000,
    },
    "sepolia": {
        "entrance_fee": "0.01",
        "interval_seconds": 30,
        "key_hash": "0x787d74caea10b2b357790d5b5247c2f63d1d91572a9846f780606e4d953677ae",
        "callback_gas_limit": 500000,
    },
}


def _bool_from_env(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _int_from_env(value: Optional[str], default: int) -> int:
    if value is None or value == "":
        return default
    return int(value)


def _decimal_from_env(key: str, default: str) -> Decimal:
    raw = os.getenv(key) or default
    try:
        return Decimal(raw)
    except InvalidOperation as exc:
        raise RuntimeError(f"Invalid decimal in environment variable {key}: {raw!r}") from exc


def _require(key: str) -> str:
    value = os.getenv(key)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {key}")
    return value


@dataclass(frozen=True)
class FlaskSettings:
    secret_key: str = "raffle-dev-secret"
    debug: bool = True


@dataclass(frozen=True)
class RaffleSettings:
    network: str
    entrance_fee: Decimal
    interval_seconds: int

    @property
    def is_local(self) -> bool:
        return self.network in LOCAL_NETWORKS


@dataclass(frozen=True)
class VRFSettings:
    key_hash: str
    subscription_id: int = 0
    request_confirmations: int = 3
    callback_gas_limit: int = 500000
    native_payment: bool = False
    coordinator_url: str = ""
    coordinator_address: str = "vrf-coordinator-mock"
    callback_token: Optional[str] = None
    callback_url: str = ""
    timeout_seconds: int = 10


@dataclass(frozen=True)
class PayoutSettings:
    mode: str = "ledger"
    rpc_url: str = ""
    private_key: Optional[str] = None
    chain_id: Optional[int] = None
    gas_limit: int = 21000


@dataclass(frozen=True)
class AppSettings:
    flask: FlaskSettings
    raffle: RaffleSettings
    vrf: VRFSettings
    payout: PayoutSettings
    database_url: str
    admin_api_key: Optional[str]


def load_from_environment() -> AppSettings:
    network = os.getenv("RAFFLE_NETWORK", "localhost")
    preset = NETWORK_PRESETS.get(network)
    if preset is None:
        raise RuntimeError(f"Unknown RAFFLE_NETWORK: {network}")

    flask_settings = FlaskSettings(
        secret_key=os.getenv("FLASK_SECRET_KEY", "raffle-dev-secret"),
        debug=os.getenv("FLASK_DEBUG", "1") == "1",
    )

    raffle_settings = RaffleSettings(
        network=network,
        entrance_fee=_decimal_from_env("ENTRANCE_FEE", str(preset["entrance_fee"])),
        interval_seconds=_int_from_env(os.getenv("INTERVAL_SECONDS"), int(preset["interval_seconds"])),
    )
    if raffle_settings.entrance_fee <= 0:
        raise RuntimeError("ENTRANCE_FEE must be positive")

    coordinator_url = os.getenv("VRF__COORDINATOR_URL", "")
    if not coordinator_url and not raffle_settings.is_local:
        raise RuntimeError(f"VRF__COORDINATOR_URL is required on network {network}")

    vrf_settings = VRFSettings(
        key_hash=os.getenv("VRF__KEY_HASH", str(preset["key_hash"])),
        subscription_id=_int_from_env(os.getenv("VRF__SUBSCRIPTION_ID"), 0),
        request_confirmations=_int_from_env(os.getenv("VRF__REQUEST_CONFIRMATIONS"), 3),
        callback_gas_limit=_int_from_env(
            os.getenv("VRF__CALLBACK_GAS_LIMIT"), int(preset["callback_gas_limit"])
        ),
        native_payment=_bool_from_env(os.getenv("VRF__NATIVE_PAYMENT"), False),
        coordinator_url=coordinator_url,
        coordinator_address=os.getenv("VRF__COORDINATOR_ADDRESS", "vrf-coordinator-mock"),
        callback_token=os.getenv("VRF__CALLBACK_TOKEN"),
        callback_url=os.getenv("VRF__CALLBACK_URL", ""),
        timeout_seconds=_int_from_env(os.getenv("VRF__TIMEOUT_SECONDS"), 10),
    )

    payout_mode = os.getenv("PAYOUT__MODE", "ledger")
    chain_id = os.getenv("PAYOUT__CHAIN_ID")
    if payout_mode == "web3":
        payout_settings = PayoutSettings(
            mode=payout_mode,
            rpc_url=_require("PAYOUT__RPC_URL"),
            private_key=_require("PAYOUT__PRIVATE_KEY"),
            chain_id=int(chain_id) if chain_id else None,
            gas_limit=_int_from_env(os.getenv("PAYOUT__GAS_LIMIT"), 21000),
        )
    elif payout_mode == "ledger":
        payout_settings = PayoutSettings(mode=payout_mode)
    else:
        raise RuntimeError(f"Unknown PAYOUT__MODE: {payout_mode}")

    return AppSettings(
        flask=flask_settings,
        raffle=raffle_settings,
        vrf=vrf_settings,
        payout=payout_settings,
        database_url=os.getenv("DATABASE_URL", "sqlite:///raffle.db"),
        admin_api_key=os.getenv("ADMIN_API_KEY"),
    )


@lru_cache(maxsize=1)
def load_settings(dotenv_path: Optional[str] = None) -> AppSettings:
    if dotenv_path:
        load_dotenv(dotenv_path)
    else:
        load_dotenv()
    return load_from_environment()
