from fastapi import APIRouter, Depends, HTTPException, status, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import Dict, List, Optional
import calendar
import logging

import models
import schemas
from database import get_db
from routers.utils import require_email

router = APIRouter()
logger = logging.getLogger(__name__)


def _month_bounds(moment):
    """First and last instant of the moment's calendar month."""
    last_day = calendar.monthrange(moment.year, moment.month)[1]
    start = moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    end = moment.replace(day=last_day, hour=23, minute=59, second=59, microsecond=999999)
    return start, end


def _owned_transaction(db: Session, transaction_id: int, email: str) -> models.Transaction:
    transaction = db.query(models.Transaction).filter(
        models.Transaction.transaction_id == transaction_id,
        models.Transaction.email == email
    ).first()

    if not transaction:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Transaction not found or not authorized"
        )
    return transaction


@router.post("/", response_model=schemas.TransactionMutationResponse, status_code=status.HTTP_201_CREATED)
def create_transaction(
    transaction: schemas.TransactionCreate,
    db: Session = Depends(get_db)
):
    """
    Add an income or expense.

    A transaction with the same name and type in the same month is merged into the
    existing row (amounts summed) and answered with 200 instead of 201.
    """
    transaction_type = transaction.type.value
    start, end = _month_bounds(transaction.date)
    logger.info(f"Creating {transaction_type} transaction - Amount: {transaction.amount:.2f}, Date: {transaction.date}, Name: {transaction.name}")

    existing = db.query(models.Transaction).filter(
        models.Transaction.email == transaction.email,
        models.Transaction.name == transaction.name,
        models.Transaction.type == transaction_type,
        models.Transaction.date >= start,
        models.Transaction.date <= end
    ).first()

    if existing:
        existing.amount += transaction.amount
        db.commit()
        db.refresh(existing)
        logger.info(f"Merged into transaction {existing.transaction_id} - New amount: {existing.amount:.2f}")
        body = schemas.TransactionMutationResponse(
            message="Transaction updated",
            transaction=schemas.TransactionResponse.model_validate(existing)
        )
        return JSONResponse(status_code=status.HTTP_200_OK, content=body.model_dump(mode="json"))

    db_transaction = models.Transaction(
        email=str(transaction.email),
        name=transaction.name,
        category=transaction.category,
        amount=transaction.amount,
        type=transaction_type,
        date=transaction.date
    )
    db.add(db_transaction)
    db.commit()
    db.refresh(db_transaction)

    logger.info(f"Transaction created successfully - ID: {db_transaction.transaction_id}")
    return schemas.TransactionMutationResponse(
        message="Transaction added",
        transaction=schemas.TransactionResponse.model_validate(db_transaction)
    )


@router.get("/", response_model=List[schemas.TransactionResponse])
def get_transactions(
    email: Optional[str] = Query(None, description="Owner e-mail"),
    db: Session = Depends(get_db)
):
    """Get all transactions for an owner, newest first"""
    email = require_email(email)
    return db.query(models.Transaction).filter(
        models.Transaction.email == email
    ).order_by(models.Transaction.date.desc()).all()


@router.get("/summary/monthly", response_model=Dict[str, schemas.MonthlyTotalsResponse])
def get_monthly_summary(
    email: Optional[str] = Query(None, description="Owner e-mail"),
    db: Session = Depends(get_db)
):
    """Income and expense totals per YYYY-MM, with the month's transactions"""
    email = require_email(email)
    transactions = db.query(models.Transaction).filter(
        models.Transaction.email == email
    ).order_by(models.Transaction.date.desc()).all()

    summary: Dict[str, schemas.MonthlyTotalsResponse] = {}
    for txn in transactions:
        year_month = f"{txn.date.year}-{txn.date.month:02d}"
        bucket = summary.setdefault(year_month, schemas.MonthlyTotalsResponse())

        if txn.type == schemas.TransactionTypeEnum.income.value:
            bucket.income += txn.amount
        elif txn.type == schemas.TransactionTypeEnum.expense.value:
            bucket.expense += txn.amount

        bucket.transactions.append(schemas.TransactionResponse.model_validate(txn))

    return summary


@router.get("/{transaction_type}", response_model=List[schemas.TransactionResponse])
def get_transactions_by_type(
    transaction_type: str,
    email: Optional[str] = Query(None, description="Owner e-mail"),
    db: Session = Depends(get_db)
):
    """Get an owner's transactions of one type (income or expense)"""
    email = require_email(email)

    valid_types = {member.value for member in schemas.TransactionTypeEnum}
    if transaction_type not in valid_types:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid transaction type"
        )

    return db.query(models.Transaction).filter(
        models.Transaction.email == email,
        models.Transaction.type == transaction_type
    ).order_by(models.Transaction.date.desc()).all()


@router.put("/{transaction_id}", response_model=schemas.TransactionMutationResponse)
def update_transaction(
    transaction_id: int,
    transaction_update: schemas.TransactionUpdate,
    db: Session = Depends(get_db)
):
    """Replace the fields of an owner's transaction"""
    db_transaction = _owned_transaction(db, transaction_id, str(transaction_update.email))

    db_transaction.name = transaction_update.name
    db_transaction.category = transaction_update.category
    db_transaction.amount = transaction_update.amount
    db_transaction.type = transaction_update.type.value
    db_transaction.date = transaction_update.date

    db.commit()
    db.refresh(db_transaction)

    return schemas.TransactionMutationResponse(
        message="Transaction updated",
        transaction=schemas.TransactionResponse.model_validate(db_transaction)
    )


@router.delete("/{transaction_id}")
def delete_transaction(
    transaction_id: int,
    email: Optional[str] = Query(None, description="Owner e-mail"),
    db: Session = Depends(get_db)
):
    """Delete an owner's transaction"""
    email = require_email(email)
    db_transaction = _owned_transaction(db, transaction_id, email)

    db.delete(db_transaction)
    db.commit()

    return {"message": "Transaction deleted"}
