# storefront/models/users.py
from sqlalchemy import Column, Integer, String, DateTime, func
from storefront.database import Base

# Represents a user account with authentication details and system role
class User(Base):
    __tablename__ = "users"
    # Ids are never reused, so a stale token cannot resolve to a newer account
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default="user") # "user" or "admin"
    phone_number = Column(String, nullable=True)

    # Linked Stripe customer, created on first checkout
    stripe_customer_id = Column(String, nullable=True, unique=True)

    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
