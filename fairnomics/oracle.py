"""Single-pool TWAP price oracle."""

from fairnomics.constants import DEFAULT_TWAP_WINDOW
from fairnomics.errors import ConfigurationError, ExternalSourceFailure
from fairnomics.models import PricePoint
from fairnomics.price import sqrt_ratio_to_price
from fairnomics.sources import Pool
from fairnomics.tick_math import get_sqrt_ratio_at_tick
from fairnomics.twap import TwapReader


class TwapOracle:
    """
    Prices an asset from one pool's TWAP tick.

    `scale_factor` comes from `price_scale_factor(asset_decimals, quote_decimals)`. Whether the asset
    is token0 is resolved once, from the pool's token order, at construction.
    """

    def __init__(
        self,
        pool: Pool,
        asset: str,
        quote: str,
        *,
        scale_factor: int,
        window: int = DEFAULT_TWAP_WINDOW,
        identity: str | None = None,
    ) -> None:
        if not asset or not quote:
            raise ConfigurationError("asset and quote token must be set")
        if asset.lower() == quote.lower():
            raise ConfigurationError("asset and quote token must differ")
        if scale_factor <= 0:
            raise ConfigurationError("scale factor must be > 0")

        token0, token1 = pool.token_order()
        pair = {token0.lower(), token1.lower()}
        if pair != {asset.lower(), quote.lower()}:
            raise ConfigurationError(f"pool tokens ({token0}, {token1}) do not match asset/quote ({asset}, {quote})")

        self.pool = pool
        self.asset = asset
        self.quote = quote
        self.scale_factor = scale_factor
        self.asset_is_token0 = token0.lower() == asset.lower()
        self.reader = TwapReader(pool, window)
        self.identity = identity or f"twap:{asset.lower()}/{quote.lower()}:{window}"

    @property
    def window(self) -> int:
        return self.reader.window

    def price_at_tick(self, tick: int) -> PricePoint:
        sqrt_ratio = get_sqrt_ratio_at_tick(tick)
        price = sqrt_ratio_to_price(sqrt_ratio, asset_is_token0=self.asset_is_token0, scale_factor=self.scale_factor)
        return PricePoint(raw_tick=tick, sqrt_ratio=sqrt_ratio, scaled_price=price)

    def get_price_point(self) -> PricePoint:
        """TWAP price with tick and sqrt ratio. Pool failures degrade; math failures raise."""
        return self.price_at_tick(self.reader.read_tick())

    def get_price(self) -> int:
        """TWAP price in 1e6 units."""
        return self.get_price_point().scaled_price

    def get_spot_price(self) -> int:
        """Instantaneous price straight from the pool's current sqrt ratio. No fallback."""
        try:
            sqrt_ratio, _ = self.pool.instantaneous_state()
        except ExternalSourceFailure:
            raise
        except Exception as ex:  # pylint: disable=broad-exception-caught
            raise ExternalSourceFailure(f"spot read failed: {ex}") from ex
        return sqrt_ratio_to_price(int(sqrt_ratio), asset_is_token0=self.asset_is_token0, scale_factor=self.scale_factor)
