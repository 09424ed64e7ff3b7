"""
AI-powered financial advice endpoint.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, status

from routers.utils import get_financial_advisor, to_http_exception
from services.advisor import FinancialAdvisor

router = APIRouter()


@router.get("/advice", status_code=status.HTTP_200_OK)
async def get_financial_advice(
    email: Optional[str] = Query(None, description="Owner e-mail"),
    month: Optional[str] = Query(None, description="Month number, 1-12"),
    year: Optional[str] = Query(None, description="Four digit year"),
    advisor: FinancialAdvisor = Depends(get_financial_advisor),
) -> Dict[str, Any]:
    """Generate one piece of spending advice for the selected month."""
    try:
        advice = await advisor.get_financial_advice(email, month, year)
    except Exception as err:
        raise to_http_exception(err, "generate financial advice") from err

    return advice.model_dump(by_alias=True, exclude_none=True)
