import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_REDUCTION_PERCENTAGE = 10
MIN_REDUCTION_PERCENTAGE = 5
MAX_REDUCTION_PERCENTAGE = 30

_NON_NUMERIC = re.compile(r"[^0-9.\-]")


def _coerce_number(value: Any) -> float:
    """'₹1,250.50' -> 1250.5; anything unreadable becomes 0."""
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(_NON_NUMERIC.sub("", str(value)))
    except ValueError:
        return 0.0


def _require_text(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        raise ValueError("must be a non-empty string")
    text = str(value).strip()
    if not text:
        raise ValueError("must be a non-empty string")
    return text


def _as_list(value: Any) -> List[str]:
    if isinstance(value, list):
        return [str(item).strip() for item in value if item is not None and str(item).strip()]
    if isinstance(value, str) and value.strip():
        return [value.strip()]
    return []


# ============ ENUMS ============
class TransactionTypeEnum(str, Enum):
    income = "income"
    expense = "expense"


# ============ TRANSACTION SCHEMAS ============
class TransactionBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, description="Descriptive name, e.g. 'Groceries'")
    category: Optional[str] = Field(None, max_length=100, description="Optional grouping key")
    amount: float = Field(..., ge=0, description="Non-negative amount")
    type: TransactionTypeEnum = Field(..., description="income or expense")
    date: datetime = Field(..., description="When the transaction happened")


class TransactionCreate(TransactionBase):
    email: EmailStr = Field(..., description="Owner e-mail")


class TransactionUpdate(TransactionBase):
    email: EmailStr = Field(..., description="Owner e-mail")


class TransactionResponse(TransactionBase):
    transaction_id: int
    email: str
    created: datetime
    updated: datetime

    class Config:
        from_attributes = True


class TransactionMutationResponse(BaseModel):
    message: str
    transaction: TransactionResponse


class MonthlyTotalsResponse(BaseModel):
    income: float = 0.0
    expense: float = 0.0
    transactions: List[TransactionResponse] = Field(default_factory=list)


# ============ BUDGET PLAN SCHEMAS ============
class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


class MonthlySummary(CamelModel):
    month: int
    year: int
    total_income: float
    total_expenses: float
    net_savings: float


class BudgetRecommendation(CamelModel):
    category: str
    current_spending: float
    recommended_budget: float
    suggestion: str
    adjustment_percentage: float

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value):
        return _require_text(value).lower()

    @field_validator("suggestion", mode="before")
    @classmethod
    def _suggestion_text(cls, value):
        return _require_text(value)

    @field_validator("current_spending", "recommended_budget", "adjustment_percentage", mode="before")
    @classmethod
    def _numeric(cls, value):
        return _coerce_number(value)


class MonthContext(CamelModel):
    month: int
    year: int
    analyzed_categories: List[str] = Field(default_factory=list)


class BudgetPlan(CamelModel):
    monthly_summary: Optional[MonthlySummary] = None
    budget_recommendations: List[BudgetRecommendation] = Field(..., min_length=1)
    key_insights: List[str] = Field(default_factory=list)
    actionable_advice: List[str] = Field(default_factory=list)
    savings_opportunities: List[str] = Field(default_factory=list)
    month_context: Optional[MonthContext] = None
    warning: Optional[str] = Field(None, alias="_warning", description="Set only on fallback plans")
    original_error: Optional[str] = Field(None, alias="_originalError")

    @field_validator("key_insights", "actionable_advice", "savings_opportunities", mode="before")
    @classmethod
    def _string_lists(cls, value):
        return _as_list(value)


# ============ ADVICE SCHEMAS ============
class AdviceContext(CamelModel):
    month: int
    year: int
    total_expenses: float


class AdviceResult(CamelModel):
    advice: str
    savings_goal: str
    focus_area: str
    reduction_percentage: int
    context: Optional[AdviceContext] = Field(None, alias="_context")
    warning: Optional[str] = Field(None, alias="_warning", description="Set only on fallback advice")

    @field_validator("advice", "savings_goal", "focus_area", mode="before")
    @classmethod
    def _text_fields(cls, value):
        return _require_text(value)

    @field_validator("reduction_percentage", mode="before")
    @classmethod
    def _clamp_reduction(cls, value):
        """Out-of-range or unreadable percentages become the default."""
        if isinstance(value, bool):
            return DEFAULT_REDUCTION_PERCENTAGE
        try:
            percentage = int(float(_NON_NUMERIC.sub("", str(value))))
        except (TypeError, ValueError):
            return DEFAULT_REDUCTION_PERCENTAGE
        if percentage < MIN_REDUCTION_PERCENTAGE or percentage > MAX_REDUCTION_PERCENTAGE:
            return DEFAULT_REDUCTION_PERCENTAGE
        return percentage


# ============ ERROR SCHEMAS ============
class ErrorDetail(BaseModel):
    error: str
    details: Optional[Any] = None
    suggestion: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)
