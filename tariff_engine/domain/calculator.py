"""Diesel-driven rate adjustment rules."""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Context, Decimal, localcontext

from tariff_engine.domain.errors import DivisionByZero, InvalidRate, ValidationError
from tariff_engine.domain.models import AdjustmentRequest, AdjustmentResult, GuardrailPolicy

HUNDRED = Decimal("100")

REASON_BELOW_THRESHOLD = "below threshold"
REASON_INCREASE = "diesel increase"
REASON_DECREASE = "diesel decrease"
REASON_CLAMPED_INCREASE = "clamped to max increase"
REASON_CLAMPED_DECREASE = "clamped to max decrease"


def round_half_away(value: Decimal, places: int) -> Decimal:
    """Round to ``places`` decimals, halves away from zero."""
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def percentage_change(previous: Decimal, new: Decimal) -> Decimal:
    if previous == 0:
        raise DivisionByZero()
    return (new - previous) / previous * HUNDRED


class RateAdjustmentCalculator:
    """Turns a diesel price movement into a bounded, rounded rate change.

    The calculation is pure: the same request and policy always produce the
    same result, so re-running a period is safe.
    """

    def __init__(self, decimal_context: Context | None = None) -> None:
        if decimal_context is None:
            decimal_context = Context(prec=28)
        self._context = decimal_context

    def compute(self, request: AdjustmentRequest, policy: GuardrailPolicy) -> AdjustmentResult:
        self._check_inputs(request)
        with localcontext(self._context):
            diesel_pct = percentage_change(request.previous_diesel_price, request.new_diesel_price)

            if abs(diesel_pct) < policy.trigger_threshold_pct:
                return AdjustmentResult(
                    triggered=False,
                    new_rate=request.current_rate,
                    adjustment_pct=Decimal("0"),
                    diesel_pct=diesel_pct,
                    clamped=False,
                    reason=REASON_BELOW_THRESHOLD,
                )

            raw_adjustment = diesel_pct * policy.impact_factor
            adjustment_pct, clamped, reason = self._clamp(raw_adjustment, diesel_pct, policy.max_increase_pct)
            new_rate = round_half_away(
                request.current_rate * (1 + adjustment_pct / HUNDRED),
                policy.rounding_precision,
            )

        return AdjustmentResult(
            triggered=True,
            new_rate=new_rate,
            adjustment_pct=adjustment_pct,
            diesel_pct=diesel_pct,
            clamped=clamped,
            reason=reason,
        )

    @staticmethod
    def _check_inputs(request: AdjustmentRequest) -> None:
        if request.current_rate <= 0:
            raise InvalidRate(request.current_rate)
        if request.previous_diesel_price == 0:
            raise DivisionByZero()
        if request.previous_diesel_price < 0:
            raise ValidationError(f"Previous diesel price must be positive, got {request.previous_diesel_price}")
        if request.new_diesel_price <= 0:
            raise ValidationError(f"New diesel price must be positive, got {request.new_diesel_price}")

    @staticmethod
    def _clamp(raw_adjustment: Decimal, diesel_pct: Decimal, limit: Decimal) -> tuple[Decimal, bool, str]:
        if raw_adjustment > limit:
            return limit, True, REASON_CLAMPED_INCREASE
        if raw_adjustment < -limit:
            return -limit, True, REASON_CLAMPED_DECREASE
        reason = REASON_DECREASE if diesel_pct < 0 else REASON_INCREASE
        return raw_adjustment, False, reason


_DEFAULT_CALCULATOR = RateAdjustmentCalculator()


def compute(request: AdjustmentRequest, policy: GuardrailPolicy) -> AdjustmentResult:
    return _DEFAULT_CALCULATOR.compute(request, policy)
