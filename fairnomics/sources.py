"""Capability contracts consumed by the oracles and the vault."""

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from fairnomics.models import PriceReading


@runtime_checkable
class PriceSource(Protocol):
    """Anything that reports a 1e6-scaled price. Raises on failure."""

    identity: str

    def get_price(self) -> int: ...


class Pool(Protocol):
    """Read access to a concentrated-liquidity pool."""

    def cumulative_ticks(self, offsets: Sequence[int]) -> list[int]:
        """Tick cumulatives at each `seconds ago` offset."""
        ...

    def instantaneous_state(self) -> tuple[int, int]:
        """Current (sqrt_ratio, tick)."""
        ...

    def token_order(self) -> tuple[str, str]:
        """(token0, token1) addresses."""
        ...


class Ledger(Protocol):
    """Token balances and transfers."""

    def balance_of(self, holder: str) -> int: ...

    def transfer(self, sender: str, recipient: str, amount: int) -> None: ...


def source_identity(source: object) -> str:
    """Stable identity for a price source, used to record which source a vault was wired to."""
    identity = getattr(source, "identity", None)
    if identity:
        return str(identity)
    return f"{type(source).__module__}.{type(source).__qualname__}@{id(source):#x}"


def query_price(source: object) -> PriceReading:
    """
    Call `source.get_price()` and return the outcome as a value instead of raising.

    Non-positive prices are reported as errors too, so `reading.ok` is the only check callers need.
    """
    identity = source_identity(source)
    try:
        price = int(source.get_price())  # type: ignore[attr-defined]
    except Exception as ex:  # pylint: disable=broad-exception-caught
        return PriceReading(source=identity, error=f"{type(ex).__name__}: {ex}")
    if price <= 0:
        return PriceReading(source=identity, price=price, error=f"non-positive price {price}")
    return PriceReading(source=identity, price=price)
