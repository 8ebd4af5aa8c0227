# app/models/relations.py

from sqlalchemy.orm import relationship

from .admin import Admin
from .live_class import LiveClass
from .live_class_module import LiveClassModule
from .payment import Payment
from .registration import Registration
from .user import User


def setup_relationships():
    """
    Configure all SQLAlchemy relationships between models.
    """

    # 1. Live class to modules (One-to-Many, ordered by position)
    LiveClass.modules = relationship(
        "LiveClassModule",
        back_populates="live_class",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="LiveClassModule.position",
    )
    LiveClassModule.live_class = relationship("LiveClass", back_populates="modules")

    # 2. Live class to registrations (One-to-Many)
    LiveClass.registrations = relationship(
        "Registration",
        back_populates="live_class",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    Registration.live_class = relationship("LiveClass", back_populates="registrations")

    # 3. Creator of a live class
    LiveClass.creator = relationship("Admin")

    # 4. User to registrations (One-to-Many)
    User.registrations = relationship("Registration", back_populates="user")
    Registration.user = relationship("User", back_populates="registrations")

    # 5. Registration module scope (optional)
    Registration.module = relationship("LiveClassModule")

    # 6. Registration to payments (One-to-Many, newest first)
    Registration.payments = relationship(
        "Payment",
        back_populates="registration",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Payment.created_at.desc()",
    )
    Payment.registration = relationship("Registration", back_populates="payments")
    Payment.user = relationship("User")
