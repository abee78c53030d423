# app/models.py
"""SQLAlchemy ORM models for persisted entities.

`User` and `Message` carry only the columns the analytics and premium flows
read; the rest of those tables belongs to the auth and messaging services.
"""
from sqlalchemy import (
    Column, Integer, Text, Boolean, DateTime, ForeignKey, JSON, Index, func,
)
from .db import Base
from .utils import utcnow

PAYMENT_PENDING = "pending"
PAYMENT_APPROVED = "approved"
PAYMENT_REJECTED = "rejected"
PAYMENT_STATUSES = (PAYMENT_PENDING, PAYMENT_APPROVED, PAYMENT_REJECTED)

class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(Text, nullable=False, unique=True)
    email = Column(Text, nullable=False, unique=True)
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow, server_default=func.now())

class Listing(Base):
    __tablename__ = "listings"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Integer, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    status = Column(Text, nullable=False, default="active")
    location = Column(Text)
    created_at = Column(DateTime, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, server_default=func.now())
    is_premium = Column(Boolean, nullable=False, default=False)
    premium_tier_id = Column(Integer, ForeignKey("premium_tiers.id"))
    premium_expires_at = Column(DateTime)

class Message(Base):
    __tablename__ = "messages"
    id = Column(Integer, primary_key=True, index=True)
    sender_id = Column(Integer, ForeignKey("users.id"))
    recipient_id = Column(Integer, ForeignKey("users.id"))
    listing_id = Column(Integer, ForeignKey("listings.id"), index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, server_default=func.now())

class PremiumTier(Base):
    __tablename__ = "premium_tiers"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False)
    # smallest currency unit
    price = Column(Integer, nullable=False)
    duration_days = Column(Integer, nullable=False)
    features = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=utcnow, server_default=func.now())

class PremiumPayment(Base):
    __tablename__ = "premium_payments"
    id = Column(Integer, primary_key=True, index=True)
    listing_id = Column(Integer, ForeignKey("listings.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    tier_id = Column(Integer, ForeignKey("premium_tiers.id"), nullable=False)
    payment_proof = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default=PAYMENT_PENDING)
    # copied from the tier at submission, never re-derived
    amount = Column(Integer, nullable=False)
    expires_at = Column(DateTime)
    reviewed_by = Column(Integer, ForeignKey("users.id"))
    created_at = Column(DateTime, default=utcnow, server_default=func.now())

class ListingView(Base):
    __tablename__ = "listing_views"
    id = Column(Integer, primary_key=True, index=True)
    listing_id = Column(Integer, ForeignKey("listings.id"), nullable=False)
    viewer_id = Column(Integer, ForeignKey("users.id"))
    ip_address = Column(Text, nullable=False)
    user_agent = Column(Text)
    country = Column(Text)
    city = Column(Text)
    region = Column(Text)
    session_duration = Column(Integer)
    view_start_time = Column(DateTime, default=utcnow)
    view_end_time = Column(DateTime)
    is_return = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow, server_default=func.now())

    @property
    def geo_location(self):
        geo = {"country": self.country, "city": self.city, "region": self.region}
        return {k: v for k, v in geo.items() if v} or None

Index("idx_listing_views_dedup", ListingView.listing_id, ListingView.ip_address, ListingView.created_at)
Index("idx_listings_premium", Listing.is_premium, Listing.premium_expires_at)
