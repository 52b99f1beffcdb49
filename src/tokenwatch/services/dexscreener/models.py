"""Pydantic models for DexScreener API responses.

API Documentation: https://docs.dexscreener.com/api/reference
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class BaseTokenInfo(BaseModel):
    """Base token information within a trading pair."""

    address: str
    name: str | None = None
    symbol: str | None = None


class VolumeInfo(BaseModel):
    """Trading volume in USD per window."""

    h24: Decimal | None = None
    h6: Decimal | None = None
    h1: Decimal | None = None
    m5: Decimal | None = None


class LiquidityInfo(BaseModel):
    """Pool liquidity."""

    usd: Decimal | None = None
    base: Decimal | None = None
    quote: Decimal | None = None


class TokenPair(BaseModel):
    """Trading pair information from token lookup.

    Attributes:
        chain_id: Blockchain identifier.
        dex_id: DEX identifier (e.g., "raydium", "uniswap").
        pair_address: Trading pair contract address.
        base_token: Base token information.
        volume: Trading volume data.
        liquidity: Liquidity information.
        market_cap: Market capitalization in USD.
        fdv: Fully diluted valuation in USD (used when market cap is absent).
    """

    model_config = ConfigDict(populate_by_name=True)

    chain_id: str = Field(alias="chainId")
    dex_id: str = Field(alias="dexId")
    pair_address: str = Field(alias="pairAddress")
    base_token: BaseTokenInfo = Field(alias="baseToken")
    price_usd: str | None = Field(default=None, alias="priceUsd")
    volume: VolumeInfo | None = None
    liquidity: LiquidityInfo | None = None
    market_cap: Decimal | None = Field(default=None, alias="marketCap")
    fdv: Decimal | None = None
    pair_created_at: int | None = Field(default=None, alias="pairCreatedAt")

    @property
    def liquidity_usd(self) -> Decimal:
        """Liquidity in USD, zero when unknown."""
        if self.liquidity is None or self.liquidity.usd is None:
            return Decimal(0)
        return self.liquidity.usd


class TokenPairsResponse(BaseModel):
    """Response from token pairs endpoint."""

    pairs: list[TokenPair] | None = None
