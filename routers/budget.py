"""
Budget suggestion endpoint.

Builds a next-month budget plan from one owner's transactions for a month.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, status

from routers.utils import get_financial_advisor, to_http_exception
from services.advisor import FinancialAdvisor

router = APIRouter()


@router.get("/suggestion", status_code=status.HTTP_200_OK)
async def get_budget_suggestion(
    email: Optional[str] = Query(None, description="Owner e-mail"),
    month: Optional[str] = Query(None, description="Month number, 1-12"),
    year: Optional[str] = Query(None, description="Four digit year"),
    advisor: FinancialAdvisor = Depends(get_financial_advisor),
) -> Dict[str, Any]:
    """
    Generate a budget plan for the selected month.

    Fallback plans (model output unusable) are still 200 and carry `_warning`.
    """
    try:
        plan = await advisor.get_budget_suggestion(email, month, year)
    except Exception as err:
        raise to_http_exception(err, "generate budget suggestion") from err

    return plan.model_dump(by_alias=True, exclude_none=True)
