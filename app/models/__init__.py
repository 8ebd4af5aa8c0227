"""
Models package initialization
Import all models and setup relationships
"""

from .admin import Admin
from .live_class import LiveClass
from .live_class_module import LiveClassModule
from .payment import Payment
from .payment_order import PaymentOrder
from .registration import Registration

# Import and setup relationships
from .relations import setup_relationships
from .user import User

# Setup all relationships after models are imported
setup_relationships()

# Make models available at package level
__all__ = [
    "Admin",
    "LiveClass",
    "LiveClassModule",
    "Payment",
    "PaymentOrder",
    "Registration",
    "User",
]
