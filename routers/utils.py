from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import Optional
import logging

from config import Settings, get_settings
from database import get_db
from schemas import ErrorDetail
from services.advisor import FinancialAdvisor, validate_owner
from services.exceptions import (
    AllModelsExhaustedError,
    BadRequestError,
    ConfigError,
    NotFoundError,
)
from services.gemini_service import GeminiService
from services.transaction_store import SqlTransactionStore

logger = logging.getLogger(__name__)

_gemini_service: Optional[GeminiService] = None


def get_gemini_service(settings: Settings = Depends(get_settings)) -> GeminiService:
    """Return a singleton Gemini service instance."""
    global _gemini_service
    if _gemini_service is None:
        try:
            _gemini_service = GeminiService(settings)
        except ConfigError as err:
            logger.error(f"Gemini service unavailable: {err}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=ErrorDetail(error="AI service is not configured", details=str(err)).to_dict(),
            ) from err
    return _gemini_service


async def close_gemini_service() -> None:
    """Release the shared HTTP client, if one was created."""
    global _gemini_service
    if _gemini_service is not None:
        await _gemini_service.aclose()
        _gemini_service = None


def get_financial_advisor(
    db: Session = Depends(get_db),
    gemini_service: GeminiService = Depends(get_gemini_service),
    settings: Settings = Depends(get_settings),
) -> FinancialAdvisor:
    """Dependency wiring the advisor to the request's database session."""
    return FinancialAdvisor(SqlTransactionStore(db), gemini_service, settings)


def require_email(email: Optional[str]) -> str:
    """
    Normalise the owner e-mail query parameter the same way stored e-mails are.

    Raises:
        HTTPException: 400 when the e-mail is missing or malformed
    """
    if not email or not email.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=ErrorDetail(error="Email is required").to_dict(),
        )
    try:
        return validate_owner(email)
    except BadRequestError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=ErrorDetail(error=str(err)).to_dict(),
        ) from err


def to_http_exception(err: Exception, action: str) -> HTTPException:
    """
    Map a pipeline error to the HTTP response the client sees.

    Args:
        err: Exception raised by the advisor
        action: Short description used in the 500 message, e.g. "generate budget suggestion"

    Returns:
        HTTPException with an ErrorDetail body
    """
    if isinstance(err, BadRequestError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=ErrorDetail(error=str(err)).to_dict(),
        )
    if isinstance(err, NotFoundError):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=ErrorDetail(error=str(err), suggestion=err.suggestion).to_dict(),
        )
    if isinstance(err, AllModelsExhaustedError):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=ErrorDetail(
                error="AI service unavailable",
                details=[failure.to_dict() for failure in err.failures],
            ).to_dict(),
        )

    logger.error(f"Failed to {action}: {err}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=ErrorDetail(error=f"Failed to {action}", details=str(err)).to_dict(),
    )
