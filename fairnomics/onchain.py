"""Adapters from web3 contracts to the Pool / PriceSource capabilities."""

import sys
from collections.abc import Sequence
from typing import TYPE_CHECKING

from fairnomics.cache import DECIMALS, POOL_TOKENS, read_entry, write_entry
from fairnomics.constants import DEFAULT_TWAP_WINDOW, ERC20_MIN_ABI, POOL_MIN_ABI, PRICE_ORACLE_MIN_ABI
from fairnomics.errors import ConfigurationError, ExternalSourceFailure
from fairnomics.formatters import as_int
from fairnomics.oracle import TwapOracle
from fairnomics.price import price_scale_factor

if TYPE_CHECKING:
    from web3 import Web3  # pragma: no cover


class Web3Pool:
    """Pool capability backed by a deployed concentrated-liquidity pool (`observe` / `slot0`)."""

    def __init__(self, w3: "Web3", address: str, *, block_identifier: int | str = "latest", use_cache: bool = True):
        self.w3 = w3
        self.address = w3.to_checksum_address(address)
        self.block_identifier = block_identifier
        self.use_cache = use_cache
        self.contract = w3.eth.contract(address=self.address, abi=POOL_MIN_ABI)
        self._tokens: tuple[str, str] | None = None

    def cumulative_ticks(self, offsets: Sequence[int]) -> list[int]:
        tick_cumulatives, _ = self.contract.functions.observe([int(o) for o in offsets]).call(
            block_identifier=self.block_identifier
        )
        return [as_int(v) for v in tick_cumulatives]

    def instantaneous_state(self) -> tuple[int, int]:
        slot0 = self.contract.functions.slot0().call(block_identifier=self.block_identifier)
        return as_int(slot0[0]), as_int(slot0[1])

    def token_order(self) -> tuple[str, str]:
        """(token0, token1); immutable for a deployed pool, so cached on disk."""
        if self._tokens is not None:
            return self._tokens
        cached = read_entry(POOL_TOKENS, self.address) if self.use_cache else None
        if cached is not None:
            self._tokens = (cached[0], cached[1])
            return self._tokens
        token0 = self.contract.functions.token0().call()
        token1 = self.contract.functions.token1().call()
        self._tokens = (str(token0), str(token1))
        if self.use_cache:
            write_entry(POOL_TOKENS, self.address, list(self._tokens))
        return self._tokens


class ContractPriceSource:
    """A deployed oracle (TWAP or aggregate) read through its `getPrice()`."""

    def __init__(self, w3: "Web3", address: str, *, block_identifier: int | str = "latest"):
        self.address = w3.to_checksum_address(address)
        self.identity = f"contract:{self.address.lower()}"
        self.block_identifier = block_identifier
        self.contract = w3.eth.contract(address=self.address, abi=PRICE_ORACLE_MIN_ABI)

    def get_price(self) -> int:
        try:
            return as_int(self.contract.functions.getPrice().call(block_identifier=self.block_identifier))
        except Exception as ex:  # pylint: disable=broad-exception-caught
            raise ExternalSourceFailure(f"getPrice() on {self.address} failed: {ex}") from ex


def fetch_token_decimals(w3: "Web3", token: str, *, use_cache: bool = True) -> int:
    """ERC-20 decimals (cached; decimals never change)."""
    address = w3.to_checksum_address(token)
    if use_cache:
        cached = read_entry(DECIMALS, address)
        if cached is not None:
            return int(cached)
    contract = w3.eth.contract(address=address, abi=ERC20_MIN_ABI)
    decimals = as_int(contract.functions.decimals().call())
    if use_cache:
        write_entry(DECIMALS, address, decimals)
    return decimals


def fetch_token_symbol(w3: "Web3", token: str) -> str:
    """ERC-20 symbol, or a shortened address when the call fails."""
    address = w3.to_checksum_address(token)
    try:
        return str(w3.eth.contract(address=address, abi=ERC20_MIN_ABI).functions.symbol().call())
    except Exception as ex:  # pylint: disable=broad-exception-caught
        print(f"⚠️  symbol() failed for {address}: {ex}", file=sys.stderr)
        return address[:10]


def build_twap_oracle(
    w3: "Web3",
    pool_address: str,
    asset: str,
    *,
    window: int = DEFAULT_TWAP_WINDOW,
    use_cache: bool = True,
) -> TwapOracle:
    """TwapOracle for `asset` priced in the pool's other token, with decimals read from chain."""
    pool = Web3Pool(w3, pool_address, use_cache=use_cache)
    token0, token1 = pool.token_order()
    asset_lower = asset.lower()
    if asset_lower == token0.lower():
        quote = token1
    elif asset_lower == token1.lower():
        quote = token0
    else:
        raise ConfigurationError(f"asset {asset} is not in pool {pool.address} ({token0}, {token1})")

    scale = price_scale_factor(
        fetch_token_decimals(w3, asset, use_cache=use_cache),
        fetch_token_decimals(w3, quote, use_cache=use_cache),
    )
    return TwapOracle(
        pool,
        asset,
        quote,
        scale_factor=scale,
        window=window,
        identity=f"twap:{pool.address.lower()}:{window}",
    )
