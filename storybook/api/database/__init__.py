"""Database module for users, stories and billing records."""

from .db import init_db, get_db, get_session, async_session_factory, engine, Base
from .models import User, Story, Order, Payment
from .repository import UserRepository, StoryRepository, OrderRepository, PaymentRepository

__all__ = [
    # Connection management
    "init_db",
    "get_db",
    "get_session",
    "async_session_factory",
    "engine",
    "Base",
    # Models
    "User",
    "Story",
    "Order",
    "Payment",
    # Repositories
    "UserRepository",
    "StoryRepository",
    "OrderRepository",
    "PaymentRepository",
]
