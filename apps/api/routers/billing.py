"""Billing and credits router."""

from __future__ import annotations

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from routers.auth_scope import AuthContext, ensure_user_scope, get_auth_context, get_scoped_user_id
from routers.rate_limit import rate_limit
from services.credits import CreditLedger, LedgerFailure, LedgerResult, get_ledger
from services.plans import catalog

router = APIRouter()
logger = logging.getLogger(__name__)


class CreditTopUpRequest(BaseModel):
    user_id: Optional[str] = None
    credits: int = Field(ge=1, le=10000)
    type: Literal["purchase", "bonus"] = "purchase"
    description: Optional[str] = Field(default=None, max_length=200)
    billing_reference: Optional[str] = Field(default=None, max_length=200)


def raise_for_ledger_failure(result: LedgerResult) -> None:
    """Translate a failed ledger result into the matching HTTP error."""
    if result:
        return
    if result.failure == LedgerFailure.INSUFFICIENT_FUNDS:
        raise HTTPException(
            status_code=402,
            detail={
                "message": "Insufficient credits. Upgrade your plan or buy a credit pack to continue.",
                "balance": result.balance,
            },
        )
    if result.failure == LedgerFailure.NOT_FOUND:
        raise HTTPException(status_code=404, detail="No credit balance for this user.")
    if result.failure in (LedgerFailure.INVALID_AMOUNT, LedgerFailure.INVALID_REQUEST):
        raise HTTPException(status_code=422, detail=f"Credit request rejected: {result.failure.value}")
    raise HTTPException(status_code=503, detail="Credit storage is unavailable. Try again later.")


@router.get("/plans")
async def list_plans():
    return catalog()


@router.get("/credits")
async def credits_summary(
    scoped_user_id: str = Depends(get_scoped_user_id),
    ledger: CreditLedger = Depends(get_ledger),
):
    summary = await ledger.get_summary(scoped_user_id)
    if summary is None:
        raise HTTPException(status_code=503, detail="Credit storage is unavailable. Try again later.")
    return summary


@router.get("/transactions")
async def list_transactions(
    limit: int = Query(default=50, ge=1, le=50),
    scoped_user_id: str = Depends(get_scoped_user_id),
    ledger: CreditLedger = Depends(get_ledger),
):
    entries = await ledger.list_transactions(scoped_user_id, limit=limit)
    return {"transactions": [entry.to_dict() for entry in entries]}


@router.post("/topup")
async def manual_topup(
    request: CreditTopUpRequest,
    _rate_limit: None = Depends(rate_limit("billing_topup", limit=30, window_seconds=3600)),
    auth: AuthContext = Depends(get_auth_context),
    ledger: CreditLedger = Depends(get_ledger),
):
    scoped_user_id = ensure_user_scope(auth.user_id, request.user_id)
    result = await ledger.credit(
        scoped_user_id,
        request.credits,
        request.type,
        request.description or f"Manual top-up of {request.credits} credits",
        external_reference=f"manual:{request.billing_reference}" if request.billing_reference else None,
    )
    raise_for_ledger_failure(result)
    logger.info("Manual top-up of %d credits for user %s", request.credits, scoped_user_id)
    return {
        "ok": True,
        "credits_added": 0 if result.duplicate else request.credits,
        "duplicate": result.duplicate,
        "balance_after": result.balance,
    }
