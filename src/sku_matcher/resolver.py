"""
Tiered SKU resolution.

    device
      -> validate (model required)
      -> brand inference from the model when the brand is missing
      -> carrier override from inspection notes (failed devices stop here)
      -> tiers, most specific first:
            EXACT           model key + capacity + color
            BRAND_MODEL     model key (capacity / color relaxed)
            BRAND_CAPACITY  brand + capacity
            BRAND_ONLY      brand
      -> first tier with an accepted candidate wins

Each tier is one CatalogStore query. Every returned row is parsed, filtered on
product type and carrier class, scored, and run through the acceptance rules.
The best accepted candidate of the winning tier is chosen by adjusted score,
then base SKU over graded variant, then SKU code.
"""

import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple

from . import config
from .carrier_override import resolve_carrier_override
from .catalog import CatalogStore
from .errors import CatalogQueryError, MalformedDeviceError
from .models import (
    METHOD_EXACT, METHOD_FAILED_DEVICE, METHOD_FUZZY, METHOD_PARTIAL, METHOD_RULE_BASED,
    TIER_BRAND_CAPACITY, TIER_BRAND_MODEL, TIER_BRAND_ONLY, TIER_EXACT, TIER_ORDER,
    CarrierOverrideDecision, DeviceAttributes, MatchCandidate, MatchResult, ParsedSkuFields,
    RawSkuRow, TierSpec, TierTrace,
)
from .normalizer import (
    DEFAULT_CARRIER_RULES, DEFAULT_RULES, UNKNOWN_COLOR, CarrierRuleTable, infer_brand_from_model,
    is_unknown, is_unlocked_carrier, model_key, normalize_brand, normalize_capacity,
    normalize_color,
)
from .scorer import score_breakdown
from .sku_codes import get_product_type, parse_sku_code

logger = logging.getLogger(__name__)

REJECT_PRODUCT_TYPE = 'rejected:product_type'
REJECT_CARRIER_CLASS = 'rejected:carrier_class'
REJECT_THRESHOLD = 'rejected:threshold'
ACCEPTED = 'accepted'


def method_for_score(match_score: float) -> str:
    """
    Match method label from the final score.

    >= 0.95 exact, >= 0.8 fuzzy, >= 0.6 rule_based, otherwise partial.
    """
    if match_score >= config.METHOD_EXACT_MIN:
        return METHOD_EXACT
    if match_score >= config.METHOD_FUZZY_MIN:
        return METHOD_FUZZY
    if match_score >= config.METHOD_RULE_BASED_MIN:
        return METHOD_RULE_BASED
    return METHOD_PARTIAL


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


@dataclass(frozen=True)
class _DeviceContext:
    """Normalized view of one device, built once per resolution."""
    device: DeviceAttributes
    decision: CarrierOverrideDecision
    unlocked: bool
    product_type: str
    brand: str
    model_key: str
    capacity: str
    color: str


class SkuResolver:
    """
    Resolve devices against one catalog store.

    Args:
        store: CatalogStore to query for candidates
        carrier_rules: Carrier pattern table. Defaults to the built-in table
            with the store's rule rows layered on top.

    The resolver keeps no per-device state; one instance may be shared across
    threads.
    """

    def __init__(self, store: CatalogStore, carrier_rules: Optional[CarrierRuleTable] = None):
        self.store = store
        if carrier_rules is None:
            rows = store.carrier_rules()
            carrier_rules = CarrierRuleTable.from_rows(rows, DEFAULT_RULES) if rows else DEFAULT_CARRIER_RULES
        self.carrier_rules = carrier_rules

    # ------------------------------------------------------------------
    # Preparation
    # ------------------------------------------------------------------

    def _prepare(self, device: DeviceAttributes) -> _DeviceContext:
        if device.model is None or is_unknown(device.model):
            raise MalformedDeviceError("Device model is required for SKU matching")

        brand = device.brand
        if is_unknown(brand):
            brand = infer_brand_from_model(device.model) or None

        decision = resolve_carrier_override(device.notes, brand, device.carrier, self.carrier_rules)
        carrier = decision.effective_carrier if decision.should_override else device.carrier
        effective = replace(device, brand=brand, carrier=carrier)

        return _DeviceContext(
            device=effective,
            decision=decision,
            unlocked=is_unlocked_carrier(carrier, self.carrier_rules),
            product_type=get_product_type(device.model),
            brand=normalize_brand(brand),
            model_key=model_key(device.model),
            capacity=normalize_capacity(device.capacity),
            color=normalize_color(device.color),
        )

    def _tier_spec(self, ctx: _DeviceContext, tier: str) -> Optional[TierSpec]:
        """TierSpec for ``tier``, or None when the device lacks what the tier needs."""
        brand = ctx.brand or None
        if tier == TIER_EXACT:
            if not ctx.model_key or not ctx.capacity or ctx.color in ('', UNKNOWN_COLOR):
                return None
            return TierSpec(tier, ctx.product_type, ctx.unlocked, brand=brand,
                            model_key=ctx.model_key, capacity=ctx.capacity, color=ctx.color)
        if tier == TIER_BRAND_MODEL:
            if not ctx.model_key:
                return None
            return TierSpec(tier, ctx.product_type, ctx.unlocked, brand=brand, model_key=ctx.model_key)
        if tier == TIER_BRAND_CAPACITY:
            if not brand or not ctx.capacity:
                return None
            return TierSpec(tier, ctx.product_type, ctx.unlocked, brand=brand, capacity=ctx.capacity)
        if tier == TIER_BRAND_ONLY:
            if not brand:
                return None
            return TierSpec(tier, ctx.product_type, ctx.unlocked, brand=brand)
        raise ValueError(f"Unknown tier: {tier}")

    # ------------------------------------------------------------------
    # Per-candidate evaluation
    # ------------------------------------------------------------------

    def _query(self, tier_spec: TierSpec) -> List[RawSkuRow]:
        try:
            return self.store.query_candidates(tier_spec)
        except CatalogQueryError:
            raise
        except Exception as e:
            raise CatalogQueryError(
                f"Catalog query failed for tier {tier_spec.tier}: {e}", tier=tier_spec.tier,
            ) from e

    def _accept(self, ctx: _DeviceContext, parsed: ParsedSkuFields, raw: float, carrier: float) -> Optional[float]:
        """Adjusted score when the candidate is accepted, else None."""
        if ctx.decision.should_override:
            if raw < config.OVERRIDE_MIN_RAW:
                return None
            if ctx.unlocked and parsed.is_unlocked_class:
                adjusted = raw + config.OVERRIDE_UNLOCKED_BONUS
            elif not ctx.unlocked and not parsed.is_unlocked_class and carrier >= config.CARRIER_MATCH:
                adjusted = raw + config.OVERRIDE_CARRIER_BONUS
            else:
                adjusted = raw - config.OVERRIDE_MISALIGNED_PENALTY
            adjusted = _clamp(adjusted)
            return adjusted if adjusted >= config.OVERRIDE_ACCEPT else None

        if not parsed.is_unlocked_class:
            if raw >= config.CARRIER_SKU_ACCEPT:
                return raw
            if raw >= config.CARRIER_SKU_SOFT_ACCEPT and carrier >= config.CARRIER_SKU_SOFT_CARRIER:
                return _clamp(raw + config.CARRIER_SKU_SOFT_BONUS)
            return None

        return raw if raw >= config.UNLOCKED_SKU_ACCEPT else None

    def _evaluate(
        self, ctx: _DeviceContext, tier_spec: TierSpec, row: RawSkuRow,
    ) -> Tuple[Optional[MatchCandidate], Dict[str, object]]:
        parsed = parse_sku_code(row.sku_code)
        trace: Dict[str, object] = {'sku_code': row.sku_code, 'parsed': parsed.to_dict()}

        if parsed.product_type != ctx.product_type:
            trace['verdict'] = REJECT_PRODUCT_TYPE
            return None, trace
        if parsed.is_unlocked_class != ctx.unlocked:
            trace['verdict'] = REJECT_CARRIER_CLASS
            return None, trace

        breakdown = score_breakdown(ctx.device, parsed, ctx.unlocked, self.carrier_rules)
        raw = breakdown['final']
        adjusted = self._accept(ctx, parsed, raw, breakdown['carrier'])
        trace.update(breakdown)
        trace['raw_score'] = raw
        trace['adjusted_score'] = adjusted
        if adjusted is None:
            trace['verdict'] = REJECT_THRESHOLD
            return None, trace

        trace['verdict'] = ACCEPTED
        candidate = MatchCandidate(
            sku_code=row.sku_code,
            parsed_fields=parsed,
            raw_score=raw,
            adjusted_score=adjusted,
            carrier_score=breakdown['carrier'],
            tier=tier_spec.tier,
            source_tab=row.source_tab,
        )
        return candidate, trace

    @staticmethod
    def _rank(candidate: MatchCandidate):
        # Highest score first, base SKU before graded variant, then SKU code
        return (-candidate.adjusted_score, candidate.parsed_fields.is_variant, candidate.sku_code)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve(self, device: DeviceAttributes) -> Optional[MatchResult]:
        """
        Resolve one device to its best catalog SKU.

        Returns:
            MatchResult, a ``failed_device`` MatchResult for devices excluded by
            their notes, or None when no tier yields an accepted candidate.

        Raises:
            MalformedDeviceError: the device has no model
            CatalogQueryError: the store failed (never reported as no match)
        """
        ctx = self._prepare(device)
        if ctx.decision.is_excluded:
            logger.debug("Device %r excluded by notes", device.model)
            return MatchResult(
                sku_code=None, match_score=0.0, match_method=METHOD_FAILED_DEVICE,
                carrier_override=ctx.decision,
            )

        for tier in TIER_ORDER:
            tier_spec = self._tier_spec(ctx, tier)
            if tier_spec is None:
                logger.debug("Tier %s skipped for %r", tier, device.model)
                continue

            rows = self._query(tier_spec)
            accepted = [c for c, _ in (self._evaluate(ctx, tier_spec, row) for row in rows) if c is not None]
            logger.debug("Tier %s: %d rows, %d accepted", tier, len(rows), len(accepted))
            if not accepted:
                continue

            best = min(accepted, key=self._rank)
            return MatchResult(
                sku_code=best.sku_code,
                match_score=best.adjusted_score,
                match_method=method_for_score(best.adjusted_score),
                parsed_fields=best.parsed_fields,
                carrier_override=ctx.decision,
                tier=tier,
                source_tab=best.source_tab,
            )

        logger.debug("No SKU match for %r", device.model)
        return None

    def explain(self, device: DeviceAttributes) -> List[TierTrace]:
        """Evaluate every tier without stopping early (diagnostics)."""
        ctx = self._prepare(device)
        traces = []
        for tier in TIER_ORDER:
            tier_spec = None if ctx.decision.is_excluded else self._tier_spec(ctx, tier)
            if tier_spec is None:
                traces.append(TierTrace(tier=tier, skipped=True))
                continue
            trace = TierTrace(tier=tier)
            for row in self._query(tier_spec):
                candidate, detail = self._evaluate(ctx, tier_spec, row)
                trace.candidates.append(detail)
                if candidate is not None:
                    trace.accepted += 1
            traces.append(trace)
        return traces


def resolve_sku(device: DeviceAttributes, store: CatalogStore) -> Optional[MatchResult]:
    """
    Resolve one device against ``store`` (see SkuResolver.resolve).

    Builds a fresh SkuResolver, which reads the store's carrier rules. For
    many devices, build one SkuResolver and call resolve() on it, as
    run_matching does.
    """
    return SkuResolver(store).resolve(device)


def explain_resolution(device: DeviceAttributes, store: CatalogStore) -> List[TierTrace]:
    """
    Trace every tier's candidates, sub-scores and verdicts for one device.

    Unlike resolve_sku this does not stop at the first tier with a match.
    Tiers the device cannot use, and every tier of an excluded device, are
    reported as skipped.
    """
    return SkuResolver(store).explain(device)
