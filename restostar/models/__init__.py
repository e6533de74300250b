"""
SQLAlchemy models for Restostar.
"""
# Owners and restaurants
from restostar.models.user import User
from restostar.models.restaurant import Restaurant

# Coupons
from restostar.models.coupon_policy import CouponPolicy
from restostar.models.customer_coupon import CustomerCoupon

# Feedback
from restostar.models.review import Review
from restostar.models.insight import Insight

# Background work
from restostar.models.scheduled_job import ScheduledJob


__all__ = [
    # Owners
    "User",
    "Restaurant",
    # Coupons
    "CouponPolicy",
    "CustomerCoupon",
    # Feedback
    "Review",
    "Insight",
    # Jobs
    "ScheduledJob",
]
