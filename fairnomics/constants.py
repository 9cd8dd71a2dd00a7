"""Constants and configuration for milestone vault pricing and release."""

# Tick bounds of concentrated-liquidity pools: 1.0001^tick must fit a Q64.96 sqrt ratio.
MIN_TICK = -887272
MAX_TICK = 887272

# get_sqrt_ratio_at_tick(MIN_TICK) and get_sqrt_ratio_at_tick(MAX_TICK)
MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342

Q64 = 1 << 64
Q96 = 1 << 96
Q128 = 1 << 128
Q192 = 1 << 192
MAX_UINT128 = (1 << 128) - 1
MAX_UINT256 = (1 << 256) - 1

# Prices are reported as usd_price * 1_000_000, e.g. $0.000010 -> 10
PRICE_OUTPUT_MULTIPLIER = 10**6

DEFAULT_TWAP_WINDOW = 3600  # 1 hour

# Milestone schedule: target[1] = 10, target[i] = floor(target[i-1] * 3 / 2)
TOTAL_MILESTONES = 18
START_PRICE = 10
PRICE_MULTIPLIER_NUM = 3
PRICE_MULTIPLIER_DEN = 2

# Production timing. Test deployments override these via VAULT_* env vars.
WAIT_RULE_SECONDS = 90 * 24 * 60 * 60  # 90 days between milestone unlocks
REQUIRED_GOOD_PERIODS = 360
PERIOD_INTERVAL_SECONDS = 60 * 60

# 2025-01-01 00:00 UTC
TGE_TIMESTAMP = 1735689600

# Distribution ratios for every milestone release (numerators over RATIO_DENOMINATOR).
TREASURY_RATIO = 5000  # 55.56%
GROWTH_RATIO = 2000  # 22.22%
LIQUIDITY_RATIO = 1000  # 11.11%
TEAM_RATIO = 1000  # 11.11%
RATIO_DENOMINATOR = 9000

TOTAL_BASIS_POINTS = 100_00

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Placeholder recipients for local runs only. Set *_WALLET env vars for anything real.
TEST_WALLETS = {
    "treasury": "0x62c944758F34D598CC817F2bfB7205b467Cf5C3b",
    "growth": "0x8FeAD17f278B4d7b15138a742bb997f1163Ccb20",
    "liquidity": "0x70Cf1c0469ddB9bE9319c152232FFac3B584D09A",
    "team": "0x6E542b2283242D1B896698c8Be0292480bc3e1c3",
}

# Minimal ABI for a concentrated-liquidity pool (Uniswap V3 / Aerodrome Slipstream).
POOL_MIN_ABI: list[dict] = [
    {
        "type": "function",
        "name": "slot0",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [
            {"name": "sqrtPriceX96", "type": "uint160"},
            {"name": "tick", "type": "int24"},
            {"name": "observationIndex", "type": "uint16"},
            {"name": "observationCardinality", "type": "uint16"},
            {"name": "observationCardinalityNext", "type": "uint16"},
            {"name": "feeProtocol", "type": "uint8"},
            {"name": "unlocked", "type": "bool"},
        ],
    },
    {
        "type": "function",
        "name": "observe",
        "stateMutability": "view",
        "inputs": [{"name": "secondsAgos", "type": "uint32[]"}],
        "outputs": [
            {"name": "tickCumulatives", "type": "int56[]"},
            {"name": "secondsPerLiquidityCumulativeX128s", "type": "uint160[]"},
        ],
    },
    {
        "type": "function",
        "name": "token0",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "address"}],
    },
    {
        "type": "function",
        "name": "token1",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "address"}],
    },
]

ERC20_MIN_ABI: list[dict] = [
    {
        "type": "function",
        "name": "decimals",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint8"}],
    },
    {
        "type": "function",
        "name": "symbol",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "string"}],
    },
]

# Any deployed price oracle (TWAP or aggregate) exposing getPrice() in 1e6 units.
PRICE_ORACLE_MIN_ABI: list[dict] = [
    {
        "type": "function",
        "name": "getPrice",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]

# Used only when neither --rpc-url nor BASE_RPC_URL are provided.
DEFAULT_PUBLIC_BASE_RPC_URLS = (
    "https://mainnet.base.org",
    "https://base.publicnode.com",
)

BASESCAN_BASE = "https://basescan.org"

# Windows probed by the `observations` command, in seconds.
OBSERVATION_PROBE_WINDOWS = (60, 300, 900, 1800, 3600)

# Cache configuration
CACHE_DIR_NAME = ".fairnomics_cache"
CACHE_VERSION = "1"  # Increment to invalidate all caches
