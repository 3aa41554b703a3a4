"""Worksheet options, pricing and pre-generation credit charges."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from routers.auth_scope import AuthContext, get_auth_context
from routers.billing import raise_for_ledger_failure
from routers.rate_limit import rate_limit
from services.credits import CreditLedger, get_ledger
from services.worksheets import WorksheetRequest, worksheet_options

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/options")
async def get_options():
    return worksheet_options()


@router.post("/quote")
async def quote_worksheet(
    request: WorksheetRequest,
    auth: AuthContext = Depends(get_auth_context),
    ledger: CreditLedger = Depends(get_ledger),
):
    account = await ledger.ensure_balance(auth.user_id)
    balance: Optional[int] = account.credits if account else None
    cost = request.credit_cost
    return {
        "credit_cost": cost,
        "balance": balance,
        "can_afford": balance is not None and balance >= cost,
    }


@router.post("/charge")
async def charge_worksheet(
    request: WorksheetRequest,
    _rate_limit: None = Depends(rate_limit("worksheet_charge", limit=60, window_seconds=3600)),
    auth: AuthContext = Depends(get_auth_context),
    ledger: CreditLedger = Depends(get_ledger),
):
    """Debit the worksheet's cost; generation must only start after this succeeds."""
    if await ledger.ensure_balance(auth.user_id) is None:
        raise HTTPException(status_code=503, detail="Credit storage is unavailable. Try again later.")

    cost = request.credit_cost
    result = await ledger.debit(auth.user_id, cost, request.charge_description())
    if not result:
        logger.info("Worksheet charge of %d declined for user %s: %s", cost, auth.user_id, result.failure)
    raise_for_ledger_failure(result)

    return {
        "charged": cost,
        "balance_after": result.balance,
        "transaction_id": result.transaction.id if result.transaction else None,
        "worksheet": request.model_dump(),
    }
