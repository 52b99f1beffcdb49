"""External data provider constants."""

from typing import Final

# API endpoints
MORALIS_BASE_URL: Final[str] = "https://deep-index.moralis.io/api/v2"
COINGECKO_BASE_URL: Final[str] = "https://api.coingecko.com/api/v3"
DEXSCREENER_BASE_URL: Final[str] = "https://api.dexscreener.com"
BIRDEYE_BASE_URL: Final[str] = "https://public-api.birdeye.so"
SOLANA_RPC_URL: Final[str] = "https://api.mainnet-beta.solana.com"

# Timeouts / retries
PROVIDER_TIMEOUT_SECONDS: Final[float] = 20.0
PROVIDER_MAX_RETRIES: Final[int] = 2
BIRDEYE_MAX_RETRIES: Final[int] = 2
HOLDER_FETCH_LIMIT: Final[int] = 200

# Provider names, in default priority order
MORALIS_MARKET: Final[str] = "moralis_market"
DEXSCREENER_MARKET: Final[str] = "dexscreener"
BIRDEYE_MARKET: Final[str] = "birdeye"
COINGECKO_MARKET: Final[str] = "coingecko"
MORALIS_SUPPLY: Final[str] = "moralis_supply"
SOLANA_SUPPLY: Final[str] = "solana_supply"
MORALIS_HOLDERS: Final[str] = "moralis_holders"
SOLANA_HOLDERS: Final[str] = "solana_holders"

METRIC_PROVIDERS: Final[tuple[str, ...]] = (
    MORALIS_MARKET,
    DEXSCREENER_MARKET,
    BIRDEYE_MARKET,
    COINGECKO_MARKET,
)
SUPPLY_PROVIDERS: Final[tuple[str, ...]] = (MORALIS_SUPPLY, SOLANA_SUPPLY)
HOLDER_PROVIDERS: Final[tuple[str, ...]] = (MORALIS_HOLDERS, SOLANA_HOLDERS)

# CoinGecko platform ids for EVM chains
COINGECKO_PLATFORMS: Final[dict[str, str]] = {
    "ethereum": "ethereum",
    "eth": "ethereum",
    "bsc": "binance-smart-chain",
    "binance-smart-chain": "binance-smart-chain",
    "polygon": "polygon-pos",
    "arbitrum": "arbitrum-one",
    "base": "base",
}

SOLANA_CHAIN: Final[str] = "solana"
