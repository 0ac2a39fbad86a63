from typing import Any, Dict, List, Optional

from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.contract import AsyncContract

from wrapped_lp.utils.env import (
    MAINNET_RPC,
    BASE_RPC,
)

CHAIN_ID_TO_RPC = {
    1: MAINNET_RPC,
    8453: BASE_RPC,
}


def _view(name: str, outputs: List[Dict[str, str]]) -> Dict[str, Any]:
    return {
        "inputs": [],
        "name": name,
        "outputs": outputs,
        "stateMutability": "view",
        "type": "function",
    }


ABIS: Dict[str, List[Dict[str, Any]]] = {
    "UniswapV2Pair": [
        _view("token0", [{"internalType": "address", "name": "", "type": "address"}]),
        _view("token1", [{"internalType": "address", "name": "", "type": "address"}]),
        _view("totalSupply", [{"internalType": "uint256", "name": "", "type": "uint256"}]),
        _view(
            "getReserves",
            [
                {"internalType": "uint112", "name": "_reserve0", "type": "uint112"},
                {"internalType": "uint112", "name": "_reserve1", "type": "uint112"},
                {"internalType": "uint32", "name": "_blockTimestampLast", "type": "uint32"},
            ],
        ),
    ],
    "ERC20": [
        _view("symbol", [{"internalType": "string", "name": "", "type": "string"}]),
        _view("decimals", [{"internalType": "uint8", "name": "", "type": "uint8"}]),
    ],
}


class AsyncWeb3Helper:
    """Class acting as web3 base class"""

    def __init__(self) -> None:
        """Initialize web3 helper"""
        self.web3: Optional[AsyncWeb3] = None

    @classmethod
    def make_web3(cls, chain_id: int) -> "AsyncWeb3Helper":
        if chain_id not in CHAIN_ID_TO_RPC:
            raise ValueError(f"Invalid chain id {chain_id}")
        instance = AsyncWeb3Helper()
        instance.web3 = AsyncWeb3(AsyncHTTPProvider(CHAIN_ID_TO_RPC[chain_id]))
        return instance

    def make_contract(self, abi: List[Dict[str, Any]], addr: str) -> AsyncContract:
        """Make a contract object"""
        if self.web3 is None:
            raise ValueError("Web3 not initialized")
        return self.web3.eth.contract(address=Web3.to_checksum_address(addr), abi=abi)

    def make_contract_by_name(self, name: str, addr: str) -> AsyncContract:
        """Make a contract object from one of the bundled ABIs"""
        if name not in ABIS:
            raise ValueError(f"Unknown ABI {name}")
        return self.make_contract(ABIS[name], addr)
