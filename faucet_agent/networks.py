"""Network registry: chain parameters, RPC clients and faucet policy."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from eth_account.signers.local import LocalAccount
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3

from faucet_agent.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_NETWORKS: Dict[str, Dict[str, Any]] = {
    "sepolia": {
        "chain_id": 11155111,
        "display_name": "Sepolia",
        "symbol": "ETH",
        "rpc_urls": ["https://sepolia.drpc.org"],
        "explorer_url": "https://sepolia.etherscan.io",
        "testnet": True,
        "faucet": {"symbol": "ETH", "amount": "0.01"},
    },
    "abstract": {
        "chain_id": 11124,
        "display_name": "Abstract Testnet",
        "symbol": "ETH",
        "rpc_urls": ["https://api.testnet.abs.xyz"],
        "explorer_url": "https://sepolia.abscan.org",
        "testnet": True,
        "faucet": {"symbol": "ETH", "amount": "0.01"},
    },
    "optimism-sepolia": {
        "chain_id": 11155420,
        "display_name": "OP Sepolia",
        "symbol": "ETH",
        "rpc_urls": ["https://sepolia.optimism.io"],
        "explorer_url": "https://optimism-sepolia.blockscout.com",
        "testnet": True,
        "faucet": {"symbol": "ETH", "amount": "0.01"},
    },
    "polygon": {
        "chain_id": 137,
        "display_name": "Polygon",
        "symbol": "POL",
        "rpc_urls": ["https://polygon-rpc.com"],
        "explorer_url": "https://polygonscan.com",
        "testnet": False,
        "faucet": {"symbol": "POL", "amount": "0.1"},
    },
    "shardeum-atomium": {
        "chain_id": 8082,
        "display_name": "Shardeum Atomium",
        "symbol": "SHM",
        "rpc_urls": ["https://atomium.shardeum.org"],
        "explorer_url": "https://explorer-atomium.shardeum.org",
        "testnet": True,
        "faucet": {"symbol": "SHM", "amount": "100"},
    },
}


@dataclass(frozen=True)
class ChainParams:
    """Static parameters of an EVM chain."""

    chain_id: int
    display_name: str
    symbol: str
    rpc_urls: Tuple[str, ...]
    explorer_url: Optional[str] = None
    decimals: int = 18
    testnet: bool = True

    @property
    def rpc_url(self) -> str:
        return self.rpc_urls[0]


@dataclass(frozen=True)
class FaucetPolicy:
    """How much of which currency the faucet hands out per request."""

    symbol: str
    amount: str


class SignerClient:
    """Sends native-currency transfers signed by a local account."""

    def __init__(self, w3: AsyncWeb3, account: LocalAccount, chain: ChainParams) -> None:
        self.w3 = w3
        self.account = account
        self.chain = chain

    @property
    def address(self) -> str:
        return self.account.address

    async def send_native(self, to: str, value: int) -> str:
        """Sign and broadcast a transfer of ``value`` base units to ``to``.

        Returns:
            The transaction hash as a 0x-prefixed hex string.
        """
        recipient = Web3.to_checksum_address(to)
        nonce = await self.w3.eth.get_transaction_count(self.account.address, "pending")
        gas_price = await self.w3.eth.gas_price
        gas = await self.w3.eth.estimate_gas(
            {"from": self.account.address, "to": recipient, "value": value}
        )
        tx = {
            "to": recipient,
            "value": value,
            "gas": gas,
            "gasPrice": gas_price,
            "nonce": nonce,
            "chainId": self.chain.chain_id,
        }
        signed = self.account.sign_transaction(tx)
        tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        return Web3.to_hex(tx_hash)


ClientFactory = Callable[[ChainParams], Any]
SignerFactory = Callable[[LocalAccount], SignerClient]


def http_client(chain: ChainParams) -> AsyncWeb3:
    """Build a read client for ``chain`` over its first RPC endpoint."""
    return AsyncWeb3(AsyncHTTPProvider(chain.rpc_url))


@dataclass(frozen=True)
class NetworkConfig:
    """Everything needed to read from and send on one network."""

    name: str
    chain: ChainParams
    client: Any
    faucet: FaucetPolicy
    signer_factory: SignerFactory = field(repr=False, compare=False)

    def signer(self, account: LocalAccount) -> SignerClient:
        """Return a signing client for ``account`` on this network."""
        return self.signer_factory(account)


class NetworkRegistry:
    """Closed mapping from network name to :class:`NetworkConfig`.

    Names are enumerated in registration order. Once :meth:`seal` has been
    called no further networks can be registered.
    """

    def __init__(self, client_factory: ClientFactory = http_client) -> None:
        self._client_factory = client_factory
        self._networks: Dict[str, NetworkConfig] = {}
        self._sealed = False

    def register(
        self,
        name: str,
        chain: ChainParams,
        faucet: FaucetPolicy,
    ) -> NetworkConfig:
        """Build and store the config for ``name``."""
        if self._sealed:
            raise RuntimeError("Network registry is sealed")
        key = name.strip().lower()
        if not key:
            raise ValueError("Network name must not be empty")
        if key in self._networks:
            raise RuntimeError(f"Network already registered: {key}")

        client = self._client_factory(chain)

        def make_signer(account: LocalAccount) -> SignerClient:
            return SignerClient(client, account, chain)

        config = NetworkConfig(
            name=key,
            chain=chain,
            client=client,
            faucet=faucet,
            signer_factory=make_signer,
        )
        self._networks[key] = config
        logger.debug("network_registered", network=key, chain_id=chain.chain_id)
        return config

    def seal(self) -> "NetworkRegistry":
        self._sealed = True
        return self

    @property
    def sealed(self) -> bool:
        return self._sealed

    def list(self) -> List[str]:
        """Return registered names in enumeration order."""
        return list(self._networks)

    def lookup(self, name: str) -> Optional[NetworkConfig]:
        """Return the config for ``name`` or None if it is not registered."""
        if not isinstance(name, str):
            return None
        return self._networks.get(name.strip().lower())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.lookup(name) is not None

    def __iter__(self) -> Iterator[NetworkConfig]:
        return iter(list(self._networks.values()))

    def __len__(self) -> int:
        return len(self._networks)


def load_network_table(path: Optional[Path] = None) -> Dict[str, Dict[str, Any]]:
    """Load the network catalog from JSON file or fall back to defaults."""
    if path is None:
        return DEFAULT_NETWORKS

    if not path.exists():
        raise FileNotFoundError(f"Network configuration not found: {path}")

    with path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)

    if not isinstance(data, dict) or not data:
        raise ValueError(f"Network configuration must be a non-empty object: {path}")
    return data


def _parse_entry(name: str, entry: Dict[str, Any]) -> Tuple[ChainParams, FaucetPolicy]:
    try:
        rpc_urls = entry["rpc_urls"]
        if isinstance(rpc_urls, str):
            rpc_urls = [rpc_urls]
        if not rpc_urls:
            raise ValueError("rpc_urls is empty")
        symbol = entry["symbol"]
        chain = ChainParams(
            chain_id=int(entry["chain_id"]),
            display_name=entry.get("display_name", name),
            symbol=symbol,
            rpc_urls=tuple(rpc_urls),
            explorer_url=entry.get("explorer_url"),
            decimals=int(entry.get("decimals", 18)),
            testnet=bool(entry.get("testnet", True)),
        )
        faucet_entry = entry["faucet"]
        faucet = FaucetPolicy(
            symbol=faucet_entry.get("symbol") or symbol,
            amount=str(faucet_entry["amount"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid network entry {name!r}: {exc}") from exc
    return chain, faucet


def build_registry(
    table: Optional[Dict[str, Dict[str, Any]]] = None,
    client_factory: ClientFactory = http_client,
) -> NetworkRegistry:
    """Register every entry of ``table`` and return the sealed registry."""
    registry = NetworkRegistry(client_factory=client_factory)
    for name, entry in (table or DEFAULT_NETWORKS).items():
        chain, faucet = _parse_entry(name, entry)
        registry.register(name, chain, faucet)
    return registry.seal()


__all__ = [
    "ChainParams",
    "DEFAULT_NETWORKS",
    "FaucetPolicy",
    "NetworkConfig",
    "NetworkRegistry",
    "SignerClient",
    "build_registry",
    "http_client",
    "load_network_table",
]
