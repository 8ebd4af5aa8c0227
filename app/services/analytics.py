from collections import OrderedDict
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from app.models import registration as reg_status
from app.models.live_class import LiveClass
from app.models.payment import COMPLETED, Payment
from app.models.registration import Registration
from app.schemas.analytics import LiveClassAnalytics


class AnalyticsService:
    def __init__(self, db: Session):
        self.db = db

    def get_live_class_analytics(self) -> LiveClassAnalytics:
        """
        Revenue and subscription summary:
        - total_classes, active_subscriptions, total_revenue
        - monthly_revenue keyed "Month YYYY", oldest month first
        - the five most recent payments
        - class popularity by active subscriber count
        """
        total_classes = self.db.query(LiveClass).count()
        active_subscriptions = (
            self.db.query(Registration)
            .filter(Registration.status == reg_status.ACTIVE)
            .count()
        )

        completed = self.db.query(Payment).filter(Payment.status == COMPLETED)
        total_revenue = (
            self.db.query(func.coalesce(func.sum(Payment.amount), 0))
            .filter(Payment.status == COMPLETED)
            .scalar()
        )

        monthly_revenue = OrderedDict()
        for payment in completed.order_by(Payment.created_at.asc()).all():
            key = payment.created_at.strftime("%B %Y")
            monthly_revenue[key] = monthly_revenue.get(key, Decimal("0")) + payment.amount

        recent = (
            completed.options(
                joinedload(Payment.user),
                joinedload(Payment.registration).joinedload(Registration.live_class),
            )
            .order_by(Payment.created_at.desc(), Payment.id.desc())
            .limit(5)
            .all()
        )
        recent_payments = [
            {
                "receipt_number": p.receipt_number,
                "amount": p.amount,
                "purpose": p.purpose,
                "user_name": p.user.full_name,
                "live_class_title": p.registration.live_class.title,
                "created_at": p.created_at.isoformat(),
            }
            for p in recent
        ]

        popularity_rows = (
            self.db.query(
                LiveClass.id,
                LiveClass.title,
                func.count(Registration.id),
            )
            .outerjoin(
                Registration,
                (Registration.live_class_id == LiveClass.id)
                & (Registration.status == reg_status.ACTIVE),
            )
            .group_by(LiveClass.id, LiveClass.title)
            .all()
        )
        class_popularity = sorted(
            (
                {"live_class_id": cid, "title": title, "active_subscribers": count}
                for cid, title, count in popularity_rows
            ),
            key=lambda row: (-row["active_subscribers"], row["live_class_id"]),
        )

        return LiveClassAnalytics(
            total_classes=total_classes,
            active_subscriptions=active_subscriptions,
            total_revenue=Decimal(total_revenue),
            monthly_revenue=monthly_revenue,
            recent_payments=recent_payments,
            class_popularity=class_popularity,
        )
