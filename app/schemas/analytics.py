from decimal import Decimal
from typing import Dict, List

from pydantic import BaseModel


class RecentPayment(BaseModel):
    receipt_number: str
    amount: Decimal
    purpose: str
    user_name: str
    live_class_title: str
    created_at: str


class ClassPopularity(BaseModel):
    live_class_id: int
    title: str
    active_subscribers: int


class LiveClassAnalytics(BaseModel):
    total_classes: int
    active_subscriptions: int
    total_revenue: Decimal
    monthly_revenue: Dict[str, Decimal]
    recent_payments: List[RecentPayment]
    class_popularity: List[ClassPopularity]
