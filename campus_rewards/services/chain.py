"""
Chain gateway: the only seam between the off-chain ledger and the token contracts.

Ledger amounts are whole tokens. Scaling to the contract's smallest unit
(``10 ** decimals``) happens here and nowhere else.
"""

import logging
import secrets
import threading
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Protocol

from fastapi import Request
from web3 import Web3

from campus_rewards.core.config import Settings, get_settings
from campus_rewards.core.errors import ChainGatewayError

logger = logging.getLogger(__name__)

TOKEN_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "balanceOf",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "decimals",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint8"}],
    },
]

DISTRIBUTOR_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "distributeTokens",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
            {"name": "activityType", "type": "string"},
            {"name": "description", "type": "string"},
        ],
        "outputs": [],
    },
]

MARKETPLACE_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "redeemTokens",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "rewardId", "type": "string"},
            {"name": "tokenAmount", "type": "uint256"},
            {"name": "quantity", "type": "uint256"},
        ],
        "outputs": [],
    },
]


@dataclass(frozen=True)
class TokenBalance:
    raw: int
    formatted: str


# Web3.to_wei/from_wei only accept named ether units, and token_decimals is configurable.
def format_units(raw: int, decimals: int) -> str:
    return format(Decimal(raw).scaleb(-decimals).normalize(), "f")


def parse_units(amount: int, decimals: int) -> int:
    return int(amount) * 10**decimals


class ChainGateway(Protocol):
    def get_balance(self, address: str) -> TokenBalance: ...

    def mint(self, address: str, amount: int, activity_type: str, description: str) -> str: ...

    def redeem(self, address: str, reward_id: str, amount: int, quantity: int) -> str: ...


class Web3ChainGateway:
    """Talks to the deployed token, distributor and marketplace contracts."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.web3 = Web3(Web3.HTTPProvider(settings.rpc_url))
        if not self.web3.is_connected():
            raise ConnectionError(f"Failed to connect to Web3 provider: {settings.rpc_url}")

        self.token = self.web3.eth.contract(address=Web3.to_checksum_address(settings.token_address), abi=TOKEN_ABI)
        self.distributor = self.web3.eth.contract(
            address=Web3.to_checksum_address(settings.distributor_address),
            abi=DISTRIBUTOR_ABI,
        )
        self.marketplace = self.web3.eth.contract(
            address=Web3.to_checksum_address(settings.marketplace_address),
            abi=MARKETPLACE_ABI,
        )
        self.account = self.web3.eth.account.from_key(settings.signer_private_key)
        self._decimals: int | None = None
        self._send_lock = threading.Lock()
        logger.info(
            "Chain gateway connected to %s (token=%s signer=%s)",
            settings.rpc_url,
            self.token.address,
            self.account.address,
        )

    @property
    def decimals(self) -> int:
        if self._decimals is None:
            try:
                self._decimals = int(self.token.functions.decimals().call())
            except Exception as exc:
                raise ChainGatewayError(f"Failed to read token decimals: {exc}") from exc
        return self._decimals

    def checksum(self, address: str) -> str:
        return Web3.to_checksum_address(address)

    def _send(self, function) -> str:
        # Serialised so concurrent requests do not race on the signer nonce.
        with self._send_lock:
            try:
                sender = self.account.address
                transaction = function.build_transaction(
                    {
                        "from": sender,
                        "nonce": self.web3.eth.get_transaction_count(sender, "pending"),
                        "chainId": self.web3.eth.chain_id,
                    }
                )
                signed = self.account.sign_transaction(transaction)
                tx_hash = self.web3.eth.send_raw_transaction(signed.raw_transaction)
                tx_hash_hex = Web3.to_hex(tx_hash)
                logger.info("Transaction sent: %s", tx_hash_hex)
                receipt = self.web3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.settings.chain_tx_timeout)
            except Exception as exc:
                logger.error("Chain transaction failed: %s", exc)
                raise ChainGatewayError(f"Chain transaction failed: {exc}") from exc

        if receipt["status"] == 0:
            logger.error("Transaction %s reverted in block %s", tx_hash_hex, receipt["blockNumber"])
            raise ChainGatewayError(f"Transaction {tx_hash_hex} reverted")
        logger.info("Transaction %s confirmed in block %s", tx_hash_hex, receipt["blockNumber"])
        return tx_hash_hex

    def get_balance(self, address: str) -> TokenBalance:
        try:
            raw = int(self.token.functions.balanceOf(self.checksum(address)).call())
        except Exception as exc:
            logger.error("Failed to get token balance for %s: %s", address, exc)
            raise ChainGatewayError(f"Failed to get token balance for {address}") from exc
        return TokenBalance(raw=raw, formatted=format_units(raw, self.decimals))

    def mint(self, address: str, amount: int, activity_type: str, description: str) -> str:
        logger.info("Distributing %s %s to %s (%s)", amount, self.settings.token_symbol, address, activity_type)
        function = self.distributor.functions.distributeTokens(
            self.checksum(address),
            parse_units(amount, self.decimals),
            activity_type,
            description,
        )
        return self._send(function)

    def redeem(self, address: str, reward_id: str, amount: int, quantity: int) -> str:
        logger.info("Redeeming %s %s for %s (reward=%s qty=%s)", amount, self.settings.token_symbol, address, reward_id, quantity)
        function = self.marketplace.functions.redeemTokens(reward_id, parse_units(amount, self.decimals), quantity)
        return self._send(function)


class InMemoryChainGateway:
    """Process-local token ledger for development and tests."""

    def __init__(self, decimals: int = 18) -> None:
        self.decimals = decimals
        self.balances: dict[str, int] = {}
        self.minted: list[tuple[str, int, str]] = []
        self.redeemed: list[tuple[str, str, int, int]] = []
        self._lock = threading.Lock()

    @staticmethod
    def _tx_hash() -> str:
        return "0x" + secrets.token_hex(32)

    def get_balance(self, address: str) -> TokenBalance:
        with self._lock:
            raw = self.balances.get(address.lower(), 0)
        return TokenBalance(raw=raw, formatted=format_units(raw, self.decimals))

    def mint(self, address: str, amount: int, activity_type: str, description: str) -> str:
        key = address.lower()
        with self._lock:
            self.balances[key] = self.balances.get(key, 0) + parse_units(amount, self.decimals)
            self.minted.append((key, amount, activity_type))
        tx_hash = self._tx_hash()
        logger.info("Minted %s to %s in memory (tx: %s)", amount, key, tx_hash)
        return tx_hash

    def redeem(self, address: str, reward_id: str, amount: int, quantity: int) -> str:
        key = address.lower()
        scaled = parse_units(amount, self.decimals)
        with self._lock:
            balance = self.balances.get(key, 0)
            if balance < scaled:
                raise ChainGatewayError("Insufficient token balance")
            self.balances[key] = balance - scaled
            self.redeemed.append((key, reward_id, amount, quantity))
        tx_hash = self._tx_hash()
        logger.info("Burned %s from %s in memory for reward %s (tx: %s)", amount, key, reward_id, tx_hash)
        return tx_hash


def build_chain_gateway(settings: Settings | None = None) -> ChainGateway:
    settings = settings or get_settings()
    backend = settings.chain_backend.lower()
    if backend == "memory":
        logger.info("Using in-memory chain gateway.")
        return InMemoryChainGateway(decimals=settings.token_decimals)
    if backend == "web3":
        return Web3ChainGateway(settings)
    raise ValueError(f"Unknown chain backend: {settings.chain_backend}")


def get_chain_gateway(request: Request) -> ChainGateway:
    return request.app.state.chain_gateway
