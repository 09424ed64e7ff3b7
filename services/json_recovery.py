"""
Turn free-text model output into a validated BudgetPlan or AdviceResult.

Never raises: when the text cannot be recovered the result is a deterministic
fallback computed from the FinancialSnapshot and tagged with `_warning`.
"""
import json
import logging
import re
from typing import Any, Callable, Dict, TypeVar

from pydantic import BaseModel

import schemas
from services.aggregator import FinancialSnapshot
from services.exceptions import RecoveryError

logger = logging.getLogger(__name__)

FALLBACK_REDUCTION = 0.10
BUDGET_FALLBACK_WARNING = "Default budget plan generated due to AI parsing/formatting issues"
ADVICE_FALLBACK_WARNING = "Default advice generated due to AI parsing issues"

_CODE_FENCE = re.compile(r"```(?:json|JSON)?")
# 'value' used as a delimiter: after { [ , : or whitespace, before , } ] :
_SINGLE_QUOTED = re.compile(r"(?<=[{\[,:\s])'([^'\"\n]*)'(?=\s*[,}\]:])")
_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_\-]*)(\s*:)")
_BARE_VALUE = re.compile(r'("\s*:\s*)([A-Za-z_][A-Za-z0-9_\-]*)(\s*[,}\]\n])')
_TRAILING_COMMA = re.compile(r",\s*([\]}])")
_JSON_LITERALS = {"true", "false", "null"}

PlanT = TypeVar("PlanT", bound=BaseModel)


# ---- text cleanup (pure) -----------------------------------------------------

def strip_code_fences(text: str) -> str:
    """Remove ```json / ``` markers."""
    return _CODE_FENCE.sub("", text or "").strip()


def slice_json_object(text: str) -> str:
    """Keep the span from the first '{' to the last '}' when both exist."""
    first = text.find("{")
    last = text.rfind("}")
    if first != -1 and last > first:
        return text[first:last + 1]
    return text


def _quote_bare_value(match: re.Match) -> str:
    prefix, value, suffix = match.groups()
    if value in _JSON_LITERALS:
        return match.group(0)
    return f'{prefix}"{value}"{suffix}'


def repair_json_text(text: str) -> str:
    """
    Best-effort fixes for common model JSON mistakes.

    Lossy: converts quote-delimited single-quoted strings, quotes bare keys and
    bare word values, and drops trailing commas. The fallback plan, not this
    function, is what guarantees a valid response.
    """
    repaired = _SINGLE_QUOTED.sub(lambda m: '"' + m.group(1) + '"', text)
    repaired = _BARE_KEY.sub(r'\1"\2"\3', repaired)
    repaired = _BARE_VALUE.sub(_quote_bare_value, repaired)
    repaired = _TRAILING_COMMA.sub(r"\1", repaired)
    return repaired


def _parse_object(text: str) -> Dict[str, Any]:
    data = json.loads(text, strict=False)
    if not isinstance(data, dict):
        raise RecoveryError(f"Expected a JSON object, got {type(data).__name__}")
    # Markers such as _warning are ours to set, never the model's
    return {key: value for key, value in data.items() if not str(key).startswith("_")}


def _recover(text: str, validate: Callable[[Dict[str, Any]], PlanT]) -> PlanT:
    """Clean, parse and validate; one repair pass on failure. Raises on failure."""
    cleaned = slice_json_object(strip_code_fences(text))
    try:
        return validate(_parse_object(cleaned))
    except (ValueError, TypeError, RecoveryError) as first_error:
        logger.info(f"Model JSON rejected ({first_error}); retrying after repair")

    return validate(_parse_object(repair_json_text(cleaned)))


# ---- budget plan -------------------------------------------------------------

def _validate_budget_plan(data: Dict[str, Any], snapshot: FinancialSnapshot) -> schemas.BudgetPlan:
    # Both are rebuilt from the snapshot, so whatever the model echoed is not validated
    data = {key: value for key, value in data.items() if key not in ("monthlySummary", "monthContext")}
    plan = schemas.BudgetPlan.model_validate(data)

    known = [rec for rec in plan.budget_recommendations if snapshot.has_expense_category(rec.category)]
    dropped = len(plan.budget_recommendations) - len(known)
    if dropped:
        logger.warning(f"Dropped {dropped} recommendation(s) for categories not in the expense breakdown")
    # A plan with nothing actionable left is replaced by the default plan rather than returned empty
    if not known:
        raise RecoveryError("No recommendation references a known expense category")

    return plan.model_copy(update={"budget_recommendations": known})


def _month_context(snapshot: FinancialSnapshot) -> schemas.MonthContext:
    return schemas.MonthContext(
        month=snapshot.period.month,
        year=snapshot.period.year,
        analyzed_categories=list(snapshot.categories_seen),
    )


def _monthly_summary(snapshot: FinancialSnapshot) -> schemas.MonthlySummary:
    return schemas.MonthlySummary(
        month=snapshot.period.month,
        year=snapshot.period.year,
        total_income=snapshot.total_income,
        total_expenses=snapshot.total_expenses,
        net_savings=snapshot.net_savings,
    )


def fallback_budget_plan(snapshot: FinancialSnapshot, currency: str = "₹", error: str = "") -> schemas.BudgetPlan:
    """Flat 10% reduction for every expense category."""
    recommendations = [
        schemas.BudgetRecommendation(
            category=item.category,
            current_spending=item.amount,
            recommended_budget=round(item.amount * (1 - FALLBACK_REDUCTION), 2),
            suggestion="Consider reducing this expense by 10% next month",
            adjustment_percentage=-10,
        )
        for item in snapshot.expense_breakdown
    ]
    main_categories = ", ".join(item.category for item in snapshot.top_expenses(3)) or "none recorded"

    # Built with model_construct: a month with income only has no recommendations
    return schemas.BudgetPlan.model_construct(
        monthly_summary=_monthly_summary(snapshot),
        budget_recommendations=recommendations,
        key_insights=[
            f"Your total expenses were {currency}{snapshot.total_expenses:.2f} "
            f"against income of {currency}{snapshot.total_income:.2f}",
            f"You saved {currency}{snapshot.net_savings:.2f} this month",
            f"Main expenses were: {main_categories}",
        ],
        actionable_advice=[
            "Review your top 3 spending categories for potential reductions",
            "Set specific budget limits for next month based on this month's spending",
            "Track daily expenses to identify small savings opportunities",
        ],
        savings_opportunities=[
            f"Trimming every category by 10% would free up {currency}{snapshot.total_expenses * FALLBACK_REDUCTION:.2f}",
        ],
        month_context=_month_context(snapshot),
        warning=BUDGET_FALLBACK_WARNING,
        original_error=error or None,
    )


def recover_budget_plan(text: str, snapshot: FinancialSnapshot, currency: str = "₹") -> schemas.BudgetPlan:
    """Validated model plan with month context attached, or the fallback plan."""
    try:
        plan = _recover(text, lambda data: _validate_budget_plan(data, snapshot))
    except Exception as err:
        logger.warning(f"Failed to parse model response (suggestion): {err}")
        logger.debug(f"Problematic response (suggestion): {text!r}")
        return fallback_budget_plan(snapshot, currency, error=str(err))

    return plan.model_copy(update={"month_context": _month_context(snapshot)})


# ---- advice ------------------------------------------------------------------

def _advice_context(snapshot: FinancialSnapshot) -> schemas.AdviceContext:
    return schemas.AdviceContext(
        month=snapshot.period.month,
        year=snapshot.period.year,
        total_expenses=snapshot.total_expenses,
    )


def fallback_advice(snapshot: FinancialSnapshot, currency: str = "₹") -> schemas.AdviceResult:
    top = snapshot.top_expenses(1)
    top_category = top[0].category if top else None
    return schemas.AdviceResult(
        advice=f"Review your top expenses in {top_category or 'main'} category for potential savings",
        savings_goal=f"{currency}{round(snapshot.total_expenses * FALLBACK_REDUCTION)}",
        focus_area=top_category or "your main expenses",
        reduction_percentage=schemas.DEFAULT_REDUCTION_PERCENTAGE,
        context=_advice_context(snapshot),
        warning=ADVICE_FALLBACK_WARNING,
    )


def recover_advice(text: str, snapshot: FinancialSnapshot, currency: str = "₹") -> schemas.AdviceResult:
    """Validated four-field advice with context attached, or the fallback advice."""
    try:
        advice = _recover(text, schemas.AdviceResult.model_validate)
    except Exception as err:
        logger.warning(f"Failed to parse model response (advice): {err}")
        logger.debug(f"Problematic response (advice): {text!r}")
        return fallback_advice(snapshot, currency)

    return advice.model_copy(update={"context": _advice_context(snapshot)})
