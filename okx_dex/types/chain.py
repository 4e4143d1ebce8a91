"""
Per-network execution policy and the default network table
"""

from dataclasses import dataclass, fields, replace
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

SOLANA_CHAIN_ID = "501"
SUI_CHAIN_ID = "784"
TON_CHAIN_ID = "607"
TRON_CHAIN_ID = "195"


@dataclass(frozen=True)
class ChainConfig:
    """
    Static execution policy for one network

    Attributes:
        id: Chain identifier as used by the aggregator ("1", "501", ...)
        explorer: Transaction explorer URL prefix (tx id is appended after "/")
        default_slippage: Default slippage as a fraction string
        max_slippage: Maximum slippage as a fraction string
        compute_units: Compute unit limit for legacy Solana transactions
        confirmation_timeout: Confirmation timeout in milliseconds
        max_retries: Executor retry budget for broadcast/confirm
        dex_contract_address: Optional fixed DEX router address
    """
    id: str
    explorer: str
    default_slippage: str = "0.5"
    max_slippage: str = "1"
    compute_units: Optional[int] = None
    confirmation_timeout: Optional[int] = 60000
    max_retries: Optional[int] = 3
    dex_contract_address: Optional[str] = None

    @property
    def timeout_seconds(self) -> float:
        return (self.confirmation_timeout or 60000) / 1000

    @property
    def retries(self) -> int:
        return self.max_retries or 3

    def explorer_url(self, tx_id: str) -> str:
        return f"{self.explorer}/{tx_id}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base: Optional["ChainConfig"] = None) -> "ChainConfig":
        """
        Build from a dict using either snake_case or camelCase keys

        When base is given, missing keys are taken from it.
        """
        aliases = {
            "defaultSlippage": "default_slippage",
            "maxSlippage": "max_slippage",
            "computeUnits": "compute_units",
            "confirmationTimeout": "confirmation_timeout",
            "maxRetries": "max_retries",
            "dexContractAddress": "dex_contract_address",
        }
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            name = aliases.get(key, key)
            if name in known:
                values[name] = value
        if base is not None:
            return replace(base, **values)
        return cls(**values)


_OKX_EXPLORER = "https://www.okx.com/web3/explorer"

# chain id -> explorer prefix
_DEFAULT_EXPLORERS = {
    SOLANA_CHAIN_ID: f"{_OKX_EXPLORER}/sol/tx",
    SUI_CHAIN_ID: f"{_OKX_EXPLORER}/sui/tx",
    "43114": f"{_OKX_EXPLORER}/avax/tx",          # Avalanche C-Chain
    "1": f"{_OKX_EXPLORER}/eth/tx",               # Ethereum
    "137": f"{_OKX_EXPLORER}/polygon/tx",         # Polygon
    "8453": f"{_OKX_EXPLORER}/base/tx",           # Base
    "196": f"{_OKX_EXPLORER}/xlayer/tx",          # X Layer
    "10": f"{_OKX_EXPLORER}/optimism/tx",         # Optimism
    "42161": f"{_OKX_EXPLORER}/arbitrum/tx",      # Arbitrum
    "56": f"{_OKX_EXPLORER}/bsc/tx",              # BNB Chain
    "100": f"{_OKX_EXPLORER}/gnosis/tx",          # Gnosis
    "169": f"{_OKX_EXPLORER}/manta/tx",           # Manta Pacific
    "250": f"{_OKX_EXPLORER}/ftm/tx",             # Fantom
    "324": f"{_OKX_EXPLORER}/zksync/tx",          # zkSync Era
    "1101": f"{_OKX_EXPLORER}/polygon-zkevm/tx",  # Polygon zkEVM
    "5000": f"{_OKX_EXPLORER}/mantle/tx",         # Mantle
    "25": "https://cronoscan.com/tx",             # Cronos
    "534352": f"{_OKX_EXPLORER}/scroll/tx",       # Scroll
    "59144": f"{_OKX_EXPLORER}/linea/tx",         # Linea
    "1088": f"{_OKX_EXPLORER}/metis/tx",          # Metis
    "1030": "https://www.confluxscan.io/tx",      # Conflux eSpace
    "81457": f"{_OKX_EXPLORER}/blast/tx",         # Blast
    "7000": "https://explorer.zetachain.com/tx",  # ZetaChain
    "66": f"{_OKX_EXPLORER}/oktc/tx",             # OKT Chain
}


def _default_config(chain_id: str, explorer: str) -> ChainConfig:
    if chain_id == SOLANA_CHAIN_ID:
        return ChainConfig(id=chain_id, explorer=explorer, compute_units=300000)
    return ChainConfig(id=chain_id, explorer=explorer)


DEFAULT_NETWORK_CONFIGS: Mapping[str, ChainConfig] = MappingProxyType({
    chain_id: _default_config(chain_id, explorer)
    for chain_id, explorer in _DEFAULT_EXPLORERS.items()
})

EVM_CHAIN_IDS = frozenset(
    chain_id for chain_id in DEFAULT_NETWORK_CONFIGS
    if chain_id not in (SOLANA_CHAIN_ID, SUI_CHAIN_ID)
)


def is_evm_chain(chain_id: str) -> bool:
    return str(chain_id) in EVM_CHAIN_IDS


def build_network_configs(
    overrides: Optional[Mapping[str, Union[ChainConfig, Dict[str, Any]]]] = None,
) -> Mapping[str, ChainConfig]:
    """
    Merge caller overrides over the default table

    A ChainConfig override replaces the whole entry. A dict override is
    layered over the default entry for that chain when one exists.

    Returns:
        Read-only mapping chain id -> ChainConfig
    """
    merged: Dict[str, ChainConfig] = dict(DEFAULT_NETWORK_CONFIGS)
    for chain_id, override in (overrides or {}).items():
        chain_id = str(chain_id)
        if isinstance(override, ChainConfig):
            merged[chain_id] = override
            continue
        data = dict(override)
        data.setdefault("id", chain_id)
        merged[chain_id] = ChainConfig.from_dict(data, base=merged.get(chain_id))
    return MappingProxyType(merged)
