"""
Database models module.
All SQLAlchemy models are exported from here for easy imports.
"""

from optiquote.models.user import User, UserRole
from optiquote.models.product import Product
from optiquote.models.order import Order, OrderItem
from optiquote.models.quotation import Quotation, QuotationItem, StaffReply, QuotationStatus
from optiquote.models.notification import Notification, NotificationType


__all__ = [
    "User",
    "UserRole",
    "Product",
    "Order",
    "OrderItem",
    "Quotation",
    "QuotationItem",
    "StaffReply",
    "QuotationStatus",
    "Notification",
    "NotificationType",
]
