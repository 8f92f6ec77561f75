"""
Pre-trade Validation Pipeline

Ordered admission checks for a proposed entry:
1. Liquidity (supplied value or pool account balance) - fail returns at once
2. Mint / freeze authority disabled (only when required by config)
3. Short-circuit: any failure so far skips the slow external checks
4. Buy / sell tax from the risk report (fail-open to 0% when unavailable)
5. Honeypot flags from the same report (fail-open to "not honeypot")
6. LP lock (only when required)

Slow risk-service calls are skipped for tokens that already failed a cheap
on-chain check.
validate() never raises; every outcome is a ValidationResult.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from dexsentry.constants import LAMPORTS_PER_SOL
from dexsentry.data_sources.base import ChainReader, RiskReport, RiskReportSource
from dexsentry.exceptions import InvalidInputError

logger = logging.getLogger(__name__)

UNKNOWN_AUTHORITY = "unknown"
HONEYPOT_MARKERS = ("honeypot", "cannot sell")

DATA_SOURCE_LIVE = "live"
DATA_SOURCE_FALLBACK = "fallback"
DATA_SOURCE_SKIPPED = "skipped"


class ValidationConfig(BaseModel):
    """Admission thresholds for one validation run (immutable)"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    min_liquidity_sol: float = Field(ge=0, alias="minLiquiditySol")
    max_buy_tax_pct: float = Field(ge=0, le=100, alias="maxBuyTaxPct")
    max_sell_tax_pct: float = Field(ge=0, le=100, alias="maxSellTaxPct")
    require_mint_disabled: bool = Field(alias="requireMintDisabled")
    require_freeze_disabled: bool = Field(alias="requireFreezeDisabled")
    require_lp_locked: bool = Field(alias="requireLpLocked")

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_tax_keys(cls, data: Any) -> Any:
        """Older callers send maxBuyTax / maxSellTax"""
        if isinstance(data, dict):
            data = dict(data)
            if "maxBuyTax" in data and "maxBuyTaxPct" not in data and "max_buy_tax_pct" not in data:
                data["max_buy_tax_pct"] = data.pop("maxBuyTax")
            if "maxSellTax" in data and "maxSellTaxPct" not in data and "max_sell_tax_pct" not in data:
                data["max_sell_tax_pct"] = data.pop("maxSellTax")
        return data


@dataclass
class ValidationDetails:
    liquidity_sol: float = 0.0
    mint_authority: Optional[str] = None
    freeze_authority: Optional[str] = None
    buy_tax_pct: float = 0.0
    sell_tax_pct: float = 0.0
    lp_locked: bool = False
    is_honeypot: bool = False
    # live: risk report fetched; fallback: service failed, defaults used;
    # skipped: pipeline stopped before the risk service was consulted
    data_source: str = DATA_SOURCE_SKIPPED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "liquidity_sol": self.liquidity_sol,
            "mint_authority": self.mint_authority,
            "freeze_authority": self.freeze_authority,
            "buy_tax_pct": self.buy_tax_pct,
            "sell_tax_pct": self.sell_tax_pct,
            "lp_locked": self.lp_locked,
            "is_honeypot": self.is_honeypot,
            "data_source": self.data_source,
        }


@dataclass
class ValidationResult:
    passed_filters: List[str] = field(default_factory=list)
    failed_filters: List[str] = field(default_factory=list)
    reason: Optional[str] = None
    details: ValidationDetails = field(default_factory=ValidationDetails)

    @property
    def approved(self) -> bool:
        return not self.failed_filters

    def to_dict(self) -> Dict[str, Any]:
        return {
            "approved": self.approved,
            "reason": self.reason,
            "passed_filters": list(self.passed_filters),
            "failed_filters": list(self.failed_filters),
            "details": self.details.to_dict(),
        }


def _fmt(value: float) -> str:
    """Compact number for filter names (5.0 -> '5', 0.5 -> '0.5')"""
    return f"{value:g}"


def liquidity_filter_name(config: ValidationConfig) -> str:
    return f"liquidity_check_{_fmt(config.min_liquidity_sol)}_sol"


class TradeValidationPipeline:
    """Runs the ordered admission checks against chain and risk-service data"""

    def __init__(self, chain: ChainReader, risk_source: Optional[RiskReportSource] = None):
        self.chain = chain
        self.risk_source = risk_source

    async def validate(
        self,
        token_id: str,
        pool_id: str,
        config: Union[ValidationConfig, Dict[str, Any]],
        known_liquidity: Optional[float] = None,
    ) -> ValidationResult:
        result = ValidationResult()

        try:
            cfg = self._normalize_inputs(token_id, pool_id, config)
        except InvalidInputError as e:
            logger.warning(f"Rejected validation request: {e.message}")
            result.failed_filters.append("invalid_input")
            result.reason = e.message
            return result

        try:
            return await self._run(token_id, pool_id, cfg, known_liquidity, result)
        except Exception as e:
            logger.error(f"Validation error for {token_id[:8]}: {e}")
            return ValidationResult(
                passed_filters=list(result.passed_filters),
                failed_filters=["validation_error"],
                reason=f"Validation error: {e}",
            )

    def _normalize_inputs(self, token_id: Any, pool_id: Any, config: Any) -> ValidationConfig:
        if not isinstance(token_id, str) or not token_id.strip():
            raise InvalidInputError("Token identifier is required")
        if not isinstance(pool_id, str) or not pool_id.strip():
            raise InvalidInputError("Pool identifier is required")
        if isinstance(config, ValidationConfig):
            return config
        if not isinstance(config, dict):
            raise InvalidInputError("Validation config must be a mapping")
        try:
            return ValidationConfig.model_validate(config)
        except ValidationError as e:
            raise InvalidInputError(f"Invalid validation config: {e.errors()[0].get('msg')}") from e

    async def _run(
        self,
        token_id: str,
        pool_id: str,
        cfg: ValidationConfig,
        known_liquidity: Optional[float],
        result: ValidationResult,
    ) -> ValidationResult:
        passed, failed, details = result.passed_filters, result.failed_filters, result.details
        short_id = token_id[:8]
        logger.info(f"Validating pool for {short_id}...")

        # Step 1: liquidity
        if known_liquidity is not None:
            liquidity = float(known_liquidity)
        else:
            liquidity = await self._get_pool_liquidity(pool_id)
        details.liquidity_sol = liquidity

        liquidity_filter = liquidity_filter_name(cfg)
        if liquidity >= cfg.min_liquidity_sol:
            passed.append(liquidity_filter)
            logger.info(f"Liquidity check passed: {liquidity:.2f} SOL")
        else:
            failed.append(liquidity_filter)
            result.reason = f"Insufficient liquidity: {liquidity:.2f} SOL < {_fmt(cfg.min_liquidity_sol)} SOL"
            logger.warning(f"{short_id}: {result.reason}")
            return result

        # Step 2: authorities (one account read covers both)
        if cfg.require_mint_disabled or cfg.require_freeze_disabled:
            mint_authority, freeze_authority = await self._get_token_authorities(token_id)
            details.mint_authority = mint_authority
            details.freeze_authority = freeze_authority

            if cfg.require_mint_disabled:
                if mint_authority is None:
                    passed.append("mint_authority_disabled")
                else:
                    failed.append("mint_authority_disabled")
                    logger.warning(f"{short_id}: mint authority still enabled ({mint_authority})")

            if cfg.require_freeze_disabled:
                if freeze_authority is None:
                    passed.append("freeze_authority_disabled")
                else:
                    failed.append("freeze_authority_disabled")
                    logger.warning(f"{short_id}: freeze authority still enabled ({freeze_authority})")

        # Step 3: short-circuit before the slow external calls
        if failed:
            logger.debug(f"Skipping slow checks - already failed {len(failed)} critical check(s)")
            result.reason = f"Failed {len(failed)} critical check(s): {', '.join(failed)}"
            return result

        # Steps 4-5 share one risk report
        report, data_source = await self._fetch_risk_report(token_id)
        details.data_source = data_source

        details.buy_tax_pct = report.buy_tax_pct if report else 0.0
        details.sell_tax_pct = report.sell_tax_pct if report else 0.0

        buy_filter = f"buy_tax_under_{_fmt(cfg.max_buy_tax_pct)}_pct"
        if details.buy_tax_pct <= cfg.max_buy_tax_pct:
            passed.append(buy_filter)
        else:
            failed.append(buy_filter)
            logger.warning(f"{short_id}: buy tax too high {details.buy_tax_pct}% > {_fmt(cfg.max_buy_tax_pct)}%")

        sell_filter = f"sell_tax_under_{_fmt(cfg.max_sell_tax_pct)}_pct"
        if details.sell_tax_pct <= cfg.max_sell_tax_pct:
            passed.append(sell_filter)
        else:
            failed.append(sell_filter)
            logger.warning(f"{short_id}: sell tax too high {details.sell_tax_pct}% > {_fmt(cfg.max_sell_tax_pct)}%")

        details.is_honeypot = is_honeypot(report) if report else False
        if details.is_honeypot:
            failed.append("honeypot_check")
            logger.warning(f"{short_id}: potential honeypot detected")
        else:
            passed.append("honeypot_check")

        # Step 6: LP lock (optional)
        if cfg.require_lp_locked:
            details.lp_locked = await self._check_lp_locked(pool_id)
            if details.lp_locked:
                passed.append("lp_locked")
            else:
                failed.append("lp_locked")
                logger.warning(f"{short_id}: LP tokens not locked")

        if failed:
            result.reason = f"Failed {len(failed)} validation check(s): {', '.join(failed)}"
            logger.warning(f"Pool validation FAILED for {short_id}: {failed}")
        else:
            logger.info(f"Pool validation PASSED for {short_id} ({len(passed)} checks)")
        return result

    async def _get_pool_liquidity(self, pool_id: str) -> float:
        """Pool account balance in SOL; unreadable pools count as empty"""
        try:
            account = await self.chain.get_account_info(pool_id)
        except Exception as e:
            logger.warning(f"Could not fetch pool liquidity for {pool_id[:8]}: {e}")
            return 0.0
        if account is None:
            return 0.0
        return account.lamports / LAMPORTS_PER_SOL

    async def _get_token_authorities(self, token_id: str) -> Tuple[Optional[str], Optional[str]]:
        """
        Mint and freeze authority of the token mint.

        Missing, unparsed or unreadable mint data is treated as both
        authorities enabled.
        """
        try:
            account = await self.chain.get_account_info(token_id)
        except Exception as e:
            logger.error(f"Error fetching token authorities for {token_id[:8]}: {e}")
            return UNKNOWN_AUTHORITY, UNKNOWN_AUTHORITY

        if account is None or not account.parsed_data:
            logger.warning(f"Mint account for {token_id[:8]} missing or unparsed, assuming authorities enabled")
            return UNKNOWN_AUTHORITY, UNKNOWN_AUTHORITY

        return account.mint_authority, account.freeze_authority

    async def _fetch_risk_report(self, token_id: str) -> Tuple[Optional[RiskReport], str]:
        """
        Risk report plus where its numbers came from.

        Fail-open: when the service is missing or errors, taxes are taken as
        0% and the token as not a honeypot, tagged "fallback".
        """
        if self.risk_source is None:
            logger.debug("No risk report source configured, assuming no tax / not honeypot")
            return None, DATA_SOURCE_FALLBACK
        try:
            return await self.risk_source.get_risk_report(token_id), DATA_SOURCE_LIVE
        except Exception as e:
            logger.warning(f"Risk report unavailable for {token_id[:8]}, assuming no tax / not honeypot: {e}")
            return None, DATA_SOURCE_FALLBACK

    async def _check_lp_locked(self, pool_id: str) -> bool:
        # TODO: resolve the pool's LP mint and check holder distribution for burn/locker addresses
        logger.debug(f"LP lock check not available for {pool_id[:8]}, treating as unlocked")
        return False


def is_honeypot(report: RiskReport) -> bool:
    for name in report.risk_names:
        lowered = name.lower()
        if any(marker in lowered for marker in HONEYPOT_MARKERS):
            return True
    return False
