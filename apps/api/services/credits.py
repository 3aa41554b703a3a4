"""Credit ledger: per-user balances, usage debits and the transaction history."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
import logging
import math
from typing import Any, Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.future import select

from config import settings
from database import async_session_maker
from models.credit_transaction import CreditTransaction
from models.user_credits import UserCredits
from services.plans import get_plan

logger = logging.getLogger(__name__)

MAX_TRANSACTION_HISTORY = 50
WELCOME_BONUS_DESCRIPTION = "Welcome bonus - Free tier"
CREDIT_TYPES = ("purchase", "subscription", "bonus")
IMAGE_GRADE_LEVELS = {"k", "1", "2"}


class LedgerFailure(str, Enum):
    NOT_FOUND = "not_found"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    INVALID_AMOUNT = "invalid_amount"
    INVALID_REQUEST = "invalid_request"
    STORAGE_UNAVAILABLE = "storage_unavailable"


@dataclass
class LedgerResult:
    """Outcome of a balance mutation; truthy only when it was applied (or already had been)."""

    ok: bool
    failure: Optional[LedgerFailure] = None
    balance: Optional[int] = None
    transaction: Optional[CreditTransaction] = None
    duplicate: bool = False

    def __bool__(self) -> bool:
        return self.ok


def compute_worksheet_cost(question_count: int = 10, grade_level: str = "5") -> int:
    """Credits needed for one worksheet.

    One credit covers the first ten questions, each further block of up to
    ten questions adds one, and K-2 worksheets carry one extra credit for
    their generated images.
    """
    cost = 1
    extra_questions = max(int(question_count or 0) - 10, 0)
    cost += math.ceil(extra_questions / 10)
    if str(grade_level or "").strip().lower() in IMAGE_GRADE_LEVELS:
        cost += 1
    return cost


def _is_positive_count(value) -> bool:
    # bool is an int subclass.
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class CreditLedger:
    """Credit balance operations against an injected async session factory.

    Every public method reports failure through its return value; storage
    errors are logged and never propagate to the caller.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        *,
        welcome_bonus: Optional[int] = None,
        history_limit: Optional[int] = None,
    ):
        self._session_factory = session_factory
        bonus = settings.WELCOME_BONUS_CREDITS if welcome_bonus is None else welcome_bonus
        self.welcome_bonus = max(int(bonus), 0)
        limit = settings.TRANSACTION_HISTORY_LIMIT if history_limit is None else history_limit
        self.history_limit = min(max(int(limit), 1), MAX_TRANSACTION_HISTORY)

    @staticmethod
    async def _load(session: AsyncSession, user_id: str) -> Optional[UserCredits]:
        result = await session.execute(
            select(UserCredits)
            .where(UserCredits.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def _find_reference(
        session: AsyncSession, user_id: str, external_reference: str
    ) -> Optional[CreditTransaction]:
        result = await session.execute(
            select(CreditTransaction).where(
                CreditTransaction.user_id == user_id,
                CreditTransaction.external_reference == external_reference,
            )
        )
        return result.scalar_one_or_none()

    async def get_balance(self, user_id: str) -> Optional[UserCredits]:
        try:
            async with self._session_factory() as session:
                return await self._load(session, user_id)
        except SQLAlchemyError:
            logger.exception("Error fetching credits for user %s", user_id)
            return None

    async def ensure_balance(self, user_id: str) -> Optional[UserCredits]:
        """Return the user's balance row, creating it with the welcome bonus if absent."""
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    account = await self._load(session, user_id)
                    if account is not None:
                        return account

                    account = UserCredits(user_id=user_id, credits=self.welcome_bonus, plan="free")
                    session.add(account)
                    await session.flush()
                    session.add(
                        CreditTransaction(
                            user_id=user_id,
                            amount=self.welcome_bonus,
                            type="bonus",
                            description=WELCOME_BONUS_DESCRIPTION,
                        )
                    )
                logger.info("Created credit balance for user %s with %d credits", user_id, self.welcome_bonus)
                return account
        except IntegrityError:
            # A concurrent request created the row first.
            logger.info("Credit balance for user %s created concurrently; re-reading", user_id)
            return await self.get_balance(user_id)
        except SQLAlchemyError:
            logger.exception("Error creating credits for user %s", user_id)
            return None

    async def debit(self, user_id: str, amount: int, description: str) -> LedgerResult:
        """Charge ``amount`` credits for usage; nothing changes unless the balance covers it."""
        if not _is_positive_count(amount):
            return LedgerResult(ok=False, failure=LedgerFailure.INVALID_AMOUNT)
        cost = amount

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        update(UserCredits)
                        .where(UserCredits.user_id == user_id, UserCredits.credits >= cost)
                        .values(credits=UserCredits.credits - cost)
                        .execution_options(synchronize_session=False)
                    )
                    if result.rowcount != 1:
                        account = await self._load(session, user_id)
                        if account is None:
                            return LedgerResult(ok=False, failure=LedgerFailure.NOT_FOUND)
                        return LedgerResult(
                            ok=False,
                            failure=LedgerFailure.INSUFFICIENT_FUNDS,
                            balance=account.credits,
                        )

                    entry = CreditTransaction(
                        user_id=user_id,
                        amount=-cost,
                        type="usage",
                        description=description or "",
                    )
                    session.add(entry)
                    await session.flush()
                    account = await self._load(session, user_id)
                    balance = account.credits
        except SQLAlchemyError:
            logger.exception("Error using credits for user %s", user_id)
            return LedgerResult(ok=False, failure=LedgerFailure.STORAGE_UNAVAILABLE)

        logger.info("Debited %d credits from user %s (balance %d)", cost, user_id, balance)
        return LedgerResult(ok=True, balance=balance, transaction=entry)

    async def credit(
        self,
        user_id: str,
        amount: int,
        transaction_type: str,
        description: str,
        *,
        external_reference: Optional[str] = None,
    ) -> LedgerResult:
        """Add credits, creating the balance row first when the user has none.

        A repeated ``external_reference`` is reported as a duplicate and not
        applied again.
        """
        if not _is_positive_count(amount):
            return LedgerResult(ok=False, failure=LedgerFailure.INVALID_AMOUNT)
        if transaction_type not in CREDIT_TYPES:
            return LedgerResult(ok=False, failure=LedgerFailure.INVALID_REQUEST)
        grant = amount
        return await self._apply_credit(
            user_id,
            grant,
            transaction_type,
            description,
            external_reference=external_reference,
        )

    async def activate_plan(
        self,
        user_id: str,
        plan: str,
        *,
        external_subscription_id: Optional[str] = None,
        expires_at: Optional[datetime] = None,
        external_reference: Optional[str] = None,
    ) -> LedgerResult:
        """Switch the user onto ``plan`` and grant its monthly allotment."""
        selected = get_plan(plan)
        if selected is None:
            return LedgerResult(ok=False, failure=LedgerFailure.INVALID_REQUEST)
        return await self._apply_credit(
            user_id,
            selected.credits,
            "subscription",
            f"{selected.name} plan - monthly credits",
            external_reference=external_reference,
            plan_values={
                "plan": selected.key,
                "plan_expires_at": expires_at,
                "external_subscription_id": external_subscription_id,
            },
        )

    async def _apply_credit(
        self,
        user_id: str,
        grant: int,
        transaction_type: str,
        description: str,
        *,
        external_reference: Optional[str] = None,
        plan_values: Optional[Dict[str, Any]] = None,
    ) -> LedgerResult:
        if await self.ensure_balance(user_id) is None:
            return LedgerResult(ok=False, failure=LedgerFailure.STORAGE_UNAVAILABLE)

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    if external_reference:
                        existing = await self._find_reference(session, user_id, external_reference)
                        if existing is not None:
                            account = await self._load(session, user_id)
                            logger.info("Credit %s already applied; skipping", external_reference)
                            return LedgerResult(
                                ok=True,
                                balance=account.credits if account else None,
                                transaction=existing,
                                duplicate=True,
                            )

                    values: Dict[str, Any] = {"credits": UserCredits.credits + grant}
                    if plan_values:
                        values.update(plan_values)
                    result = await session.execute(
                        update(UserCredits)
                        .where(UserCredits.user_id == user_id)
                        .values(**values)
                        .execution_options(synchronize_session=False)
                    )
                    if result.rowcount != 1:
                        return LedgerResult(ok=False, failure=LedgerFailure.NOT_FOUND)

                    entry = CreditTransaction(
                        user_id=user_id,
                        amount=grant,
                        type=transaction_type,
                        description=description or "",
                        external_reference=external_reference,
                    )
                    session.add(entry)
                    await session.flush()
                    account = await self._load(session, user_id)
                    balance = account.credits
        except IntegrityError:
            if external_reference:
                return await self._duplicate_result(user_id, external_reference)
            logger.exception("Error adding credits for user %s", user_id)
            return LedgerResult(ok=False, failure=LedgerFailure.STORAGE_UNAVAILABLE)
        except SQLAlchemyError:
            logger.exception("Error adding credits for user %s", user_id)
            return LedgerResult(ok=False, failure=LedgerFailure.STORAGE_UNAVAILABLE)

        logger.info("Added %d %s credits to user %s (balance %d)", grant, transaction_type, user_id, balance)
        return LedgerResult(ok=True, balance=balance, transaction=entry)

    async def _duplicate_result(self, user_id: str, external_reference: str) -> LedgerResult:
        """Resolve a unique-reference race by reporting the winning transaction."""
        try:
            async with self._session_factory() as session:
                existing = await self._find_reference(session, user_id, external_reference)
                account = await self._load(session, user_id)
        except SQLAlchemyError:
            logger.exception("Error re-reading credit %s for user %s", external_reference, user_id)
            return LedgerResult(ok=False, failure=LedgerFailure.STORAGE_UNAVAILABLE)
        if existing is None:
            return LedgerResult(ok=False, failure=LedgerFailure.STORAGE_UNAVAILABLE)
        return LedgerResult(
            ok=True,
            balance=account.credits if account else None,
            transaction=existing,
            duplicate=True,
        )

    async def list_transactions(self, user_id: str, limit: Optional[int] = None) -> List[CreditTransaction]:
        """Most recent transactions, newest first; empty on fetch failure."""
        requested = self.history_limit if limit is None else int(limit)
        capped = min(max(requested, 1), MAX_TRANSACTION_HISTORY)
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(CreditTransaction)
                    .where(CreditTransaction.user_id == user_id)
                    .order_by(CreditTransaction.created_at.desc(), CreditTransaction.id.desc())
                    .limit(capped)
                )
                return list(result.scalars().all())
        except SQLAlchemyError:
            logger.exception("Error fetching transactions for user %s", user_id)
            return []

    async def get_summary(self, user_id: str) -> Optional[Dict[str, Any]]:
        account = await self.ensure_balance(user_id)
        if account is None:
            return None
        plan = get_plan(account.plan)
        entries = await self.list_transactions(user_id)
        return {
            "balance": account.credits,
            "plan": account.plan,
            "plan_name": plan.name if plan else account.plan,
            "monthly_credits": plan.credits if plan else 0,
            "plan_expires_at": account.plan_expires_at.isoformat() if account.plan_expires_at else None,
            "recent_transactions": [entry.to_dict() for entry in entries],
        }


def get_ledger() -> CreditLedger:
    """FastAPI dependency providing a ledger bound to the application database."""
    return CreditLedger(async_session_maker)
