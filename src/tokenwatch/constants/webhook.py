"""Webhook and notification constants."""

from typing import Final

# Helius may send the HMAC under any of these headers
SIGNATURE_HEADERS: Final[tuple[str, ...]] = (
    "x-helius-signature",
    "x-signature",
    "signature",
)
WEBHOOK_PATH_PREFIX: Final[str] = "/webhooks"
# Singular prefix used by existing Helius webhook configurations
LEGACY_WEBHOOK_PATH_PREFIX: Final[str] = "/webhook"
WEBHOOK_PATH_PREFIXES: Final[tuple[str, ...]] = (WEBHOOK_PATH_PREFIX, LEGACY_WEBHOOK_PATH_PREFIX)

TELEGRAM_API_URL: Final[str] = "https://api.telegram.org"

EXPLORER_URLS: Final[dict[str, str]] = {
    "solana": "https://solscan.io/token/{address}",
    "ethereum": "https://etherscan.io/token/{address}",
    "eth": "https://etherscan.io/token/{address}",
    "bsc": "https://bscscan.com/token/{address}",
    "polygon": "https://polygonscan.com/token/{address}",
    "arbitrum": "https://arbiscan.io/token/{address}",
    "base": "https://basescan.org/token/{address}",
}
FALLBACK_EXPLORER_URL: Final[str] = "https://www.google.com/search?q={address}"

# Telegram legacy Markdown control characters
MARKDOWN_SPECIAL_CHARS: Final[frozenset[str]] = frozenset("_*`[")

UNKNOWN_CHAIN: Final[str] = "unknown"
