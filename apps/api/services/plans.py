"""Subscription plans and one-off credit packs."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Plan:
    key: str
    name: str
    price: float
    yearly_price: float
    credits: int
    features: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class CreditPack:
    price_id: str
    credits: int
    price: float


PLANS: Dict[str, Plan] = {
    "free": Plan(
        key="free",
        name="Free",
        price=0,
        yearly_price=0,
        credits=5,
        features=[
            "5 credits per month",
            "All question types",
            "PDF & HTML export",
            "Basic support",
        ],
    ),
    "starter": Plan(
        key="starter",
        name="Starter",
        price=7.99,
        yearly_price=76.70,
        credits=100,
        features=[
            "100 credits per month",
            "All question types",
            "PDF & HTML export",
            "Priority support",
            "No watermark",
        ],
    ),
    "pro": Plan(
        key="pro",
        name="Pro",
        price=14.99,
        yearly_price=143.90,
        credits=200,
        features=[
            "200 credits per month",
            "All question types",
            "PDF & HTML export",
            "Priority support",
            "No watermark",
            "Answer key customization (coming soon)",
        ],
    ),
    "ultra": Plan(
        key="ultra",
        name="Ultra",
        price=29.99,
        yearly_price=287.90,
        credits=400,
        features=[
            "400 credits per month",
            "All question types",
            "PDF & HTML export",
            "Priority support",
            "No watermark",
            "Answer key customization (coming soon)",
            "Team sharing (coming soon)",
        ],
    ),
}

CREDIT_PACKS: List[CreditPack] = [
    CreditPack(price_id="credits_40", credits=40, price=3.99),
    CreditPack(price_id="credits_80", credits=80, price=6.99),
    CreditPack(price_id="credits_200", credits=200, price=16.99),
    CreditPack(price_id="credits_400", credits=400, price=32.99),
]


def get_plan(key: Optional[str]) -> Optional[Plan]:
    return PLANS.get(str(key or "").strip().lower())


def get_credit_pack(price_id: Optional[str]) -> Optional[CreditPack]:
    wanted = str(price_id or "").strip()
    for pack in CREDIT_PACKS:
        if pack.price_id == wanted:
            return pack
    return None


def catalog() -> Dict[str, Any]:
    """Serializable view of every plan and credit pack."""
    return {
        "plans": [asdict(plan) for plan in PLANS.values()],
        "credit_packs": [asdict(pack) for pack in CREDIT_PACKS],
    }
