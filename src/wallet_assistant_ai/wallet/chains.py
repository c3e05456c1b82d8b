"""Chain presets for the networks the assistant can custody funds on."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Chain:
    """An EVM-compatible network plus its one supported token contract."""

    name: str
    chain_id: int
    rpc_url: str
    native_symbol: str
    explorer_url: str
    token_address: str | None = None
    token_symbol: str = "USDT"

    def tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer_url}/tx/{tx_hash}"


CHAINS: dict[str, Chain] = {
    "mantle": Chain(
        name="mantle",
        chain_id=5000,
        rpc_url="https://rpc.mantle.xyz",
        native_symbol="MNT",
        explorer_url="https://explorer.mantle.xyz",
        token_address="0x201EBa5CC46D216Ce6DC03F6a759e8E766e956aE",
    ),
    "mantle-sepolia": Chain(
        name="mantle-sepolia",
        chain_id=5003,
        rpc_url="https://rpc.sepolia.mantle.xyz",
        native_symbol="MNT",
        explorer_url="https://explorer.sepolia.mantle.xyz",
    ),
}


def get_chain(name: str) -> Chain:
    """Get a chain preset by name. Raises ``KeyError`` if not found."""
    if name not in CHAINS:
        raise KeyError(
            f"Unknown chain '{name}'. Available: {list_chain_names()}"
        )
    return CHAINS[name]


def list_chain_names() -> list[str]:
    """Return the names of all chain presets."""
    return list(CHAINS.keys())
