from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, Optional, Protocol

from ..config import PayoutSettings

if TYPE_CHECKING:  # pragma: no cover
    from web3 import Web3

logger = logging.getLogger("raffle.payouts")


class PayoutGateway(Protocol):
    def transfer(self, recipient: str, amount: Decimal) -> Optional[str]:
        ...


class LedgerPayoutGateway:
    """In-memory balances; used on local networks and in tests."""

    def __init__(self) -> None:
        self._balances: Dict[str, Decimal] = {}

    def balance_of(self, account: str) -> Decimal:
        return self._balances.get(account, Decimal(0))

    def transfer(self, recipient: str, amount: Decimal) -> Optional[str]:
        if amount < 0:
            raise ValueError("Cannot transfer a negative amount")
        self._balances[recipient] = self.balance_of(recipient) + Decimal(amount)
        return None


class Web3PayoutGateway:
    """Sends the prize as a plain value transfer signed by the raffle wallet."""

    def __init__(self, web3: "Web3", private_key: str, settings: PayoutSettings) -> None:
        self._web3 = web3
        self._settings = settings
        self._account = web3.eth.account.from_key(private_key)

    @classmethod
    def from_settings(cls, settings: PayoutSettings) -> "Web3PayoutGateway":
        from web3 import Web3
        from web3.middleware import ExtraDataToPOAMiddleware

        if not settings.private_key:
            raise RuntimeError("Payout signer not configured; set PAYOUT__PRIVATE_KEY")

        web3 = Web3(Web3.HTTPProvider(settings.rpc_url))
        if not web3.is_connected():
            raise ConnectionError(f"Cannot connect to RPC endpoint: {settings.rpc_url}")

        # PoA networks (Hardhat, Sepolia forks) need the extra-data middleware.
        web3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
        return cls(web3, settings.private_key, settings)

    @property
    def address(self) -> str:
        return self._account.address

    def transfer(self, recipient: str, amount: Decimal) -> Optional[str]:
        web3 = self._web3
        settings = self._settings
        value = web3.to_wei(amount, "ether")

        tx: Dict[str, Any] = {
            "from": self._account.address,
            "to": web3.to_checksum_address(recipient),
            "value": value,
            "nonce": web3.eth.get_transaction_count(self._account.address),
            "gas": settings.gas_limit,
            "gasPrice": web3.eth.gas_price,
        }
        if settings.chain_id is not None:
            tx["chainId"] = settings.chain_id

        signed = self._account.sign_transaction(tx)
        tx_hash = web3.eth.send_raw_transaction(signed.raw_transaction)
        receipt = web3.eth.wait_for_transaction_receipt(tx_hash, timeout=180, poll_latency=2)
        if receipt["status"] != 1:
            raise RuntimeError(f"Payout transaction reverted: {tx_hash.hex()}")
        logger.info("Paid %s to %s in tx %s", amount, recipient, tx_hash.hex())
        return tx_hash.hex()


def build_payout_gateway(settings: PayoutSettings) -> PayoutGateway:
    if settings.mode == "web3":
        return Web3PayoutGateway.from_settings(settings)
    return LedgerPayoutGateway()
