"""
Budget suggestion and financial advice pipeline.

validate -> aggregate -> build prompt -> call model -> normalise -> recover -> assemble
"""
import logging
from datetime import date
from typing import Any, List, Optional, Protocol

from pydantic import EmailStr, TypeAdapter, ValidationError

import schemas
from config import Settings
from logging_config import reset_owner_context, set_owner_context
from services.aggregator import FinancialSnapshot, PeriodWindow, aggregate
from services.exceptions import BadRequestError
from services.gemini_service import GeminiService
from services.json_recovery import recover_advice, recover_budget_plan
from services.prompt_builder import build_advice_prompt, build_budget_prompt
from services.response_normalizer import extract_text
from services.transaction_store import TransactionRecord

logger = logging.getLogger(__name__)

MIN_YEAR = 2000

_email_adapter = TypeAdapter(EmailStr)


class TransactionStore(Protocol):
    def find(self, owner_id: str, start, end) -> List[TransactionRecord]:
        ...


def validate_owner(email: Optional[str]) -> str:
    """Return the normalised e-mail or raise BadRequestError."""
    if email is None or not str(email).strip():
        raise BadRequestError("Email query parameter is required")
    try:
        return str(_email_adapter.validate_python(str(email).strip()))
    except ValidationError as err:
        raise BadRequestError(f"Invalid email address: {email}") from err


def _as_int(value: Any, message: str) -> int:
    if isinstance(value, bool):
        raise BadRequestError(message)
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError) as err:
        raise BadRequestError(message) from err


def parse_period(month: Any, year: Any, today: Optional[date] = None) -> PeriodWindow:
    """
    Validate month/year query values.

    Args:
        month: 1-12, as int or numeric string
        year: 2000 up to next year, as int or numeric string
        today: Reference date for the upper year bound (defaults to today)

    Raises:
        BadRequestError: On missing, non-numeric or out-of-range values
    """
    if month in (None, "") or year in (None, ""):
        raise BadRequestError("Month and year query parameters are required")

    month_num = _as_int(month, "Month must be a number")
    if month_num < 1 or month_num > 12:
        raise BadRequestError("Month must be between 1 and 12")

    year_num = _as_int(year, "Year must be a number")
    max_year = (today or date.today()).year + 1
    if year_num < MIN_YEAR or year_num > max_year:
        raise BadRequestError("Year must be between 2000 and next year")

    return PeriodWindow(month=month_num, year=year_num)


def assemble_budget_plan(plan: schemas.BudgetPlan, snapshot: FinancialSnapshot) -> schemas.BudgetPlan:
    """Overwrite monthlySummary with the aggregated totals."""
    summary = schemas.MonthlySummary(
        month=snapshot.period.month,
        year=snapshot.period.year,
        total_income=snapshot.total_income,
        total_expenses=snapshot.total_expenses,
        net_savings=snapshot.net_savings,
    )
    return plan.model_copy(update={"monthly_summary": summary})


def assemble_advice(advice: schemas.AdviceResult, snapshot: FinancialSnapshot) -> schemas.AdviceResult:
    if advice.context is not None:
        return advice
    context = schemas.AdviceContext(
        month=snapshot.period.month,
        year=snapshot.period.year,
        total_expenses=snapshot.total_expenses,
    )
    return advice.model_copy(update={"context": context})


class FinancialAdvisor:
    """Runs the pipeline for one request. Holds no per-request state."""

    def __init__(self, store: TransactionStore, gemini_service: GeminiService, settings: Settings):
        self.store = store
        self.gemini_service = gemini_service
        self.settings = settings

    def _snapshot(self, owner_id: str, period: PeriodWindow) -> FinancialSnapshot:
        records = self.store.find(owner_id, period.start, period.end)
        logger.info(f"Found {len(records)} transactions for {period.label}")
        return aggregate(records, period)

    async def _complete(self, prompt: str) -> str:
        result = await self.gemini_service.generate(self.settings.candidate_models, prompt)
        return extract_text(result)

    async def get_budget_suggestion(self, owner_id: Optional[str], month: Any, year: Any) -> schemas.BudgetPlan:
        """
        Build a next-month budget plan for one owner.

        Raises:
            BadRequestError: Invalid e-mail, month or year
            NotFoundError: No transactions in the month
            AllModelsExhaustedError: No model produced a response
        """
        email = validate_owner(owner_id)
        period = parse_period(month, year)

        token = set_owner_context(email)
        try:
            logger.info(f"Budget suggestion requested for {period.label}")
            snapshot = self._snapshot(email, period)
            prompt = build_budget_prompt(snapshot, self.settings.currency_symbol)
            text = await self._complete(prompt)
            plan = recover_budget_plan(text, snapshot, self.settings.currency_symbol)
            if plan.warning:
                logger.warning(f"Returning fallback budget plan for {period.label}")
            return assemble_budget_plan(plan, snapshot)
        finally:
            reset_owner_context(token)

    async def get_financial_advice(self, owner_id: Optional[str], month: Any, year: Any) -> schemas.AdviceResult:
        """
        Build one short piece of advice for the month's spending.

        Raises:
            BadRequestError: Invalid e-mail, month or year
            NotFoundError: No transactions in the month
            AllModelsExhaustedError: No model produced a response
        """
        email = validate_owner(owner_id)
        period = parse_period(month, year)

        token = set_owner_context(email)
        try:
            logger.info(f"Financial advice requested for {period.label}")
            snapshot = self._snapshot(email, period)
            prompt = build_advice_prompt(snapshot, self.settings.currency_symbol)
            text = await self._complete(prompt)
            advice = recover_advice(text, snapshot, self.settings.currency_symbol)
            return assemble_advice(advice, snapshot)
        finally:
            reset_owner_context(token)
