# app/premium.py
"""Premium tiers, payment review and listing premium state.

A payment moves ``pending -> approved`` or ``pending -> rejected`` and never
leaves a terminal state. Approval writes the listing's premium fields and the
payment row in one unit of work. Premium state is read through
``is_premium_active`` so an elapsed ``premium_expires_at`` is honoured even
before ``expire_premium_listings`` has swept the row.
"""
from datetime import datetime, timedelta
from typing import Dict, List, Optional
from sqlalchemy import select, update
from sqlalchemy.orm import Session
from .db import unit_of_work
from .errors import Forbidden, NotFound, ValidationError
from .models import (
    Listing, PremiumPayment, PremiumTier, User,
    PAYMENT_APPROVED, PAYMENT_PENDING, PAYMENT_REJECTED,
)
from .utils import logger

REVIEW_STATUSES = (PAYMENT_APPROVED, PAYMENT_REJECTED)

def _require_admin(user: Optional[User]):
    if user is None or not user.is_admin:
        raise Forbidden("Unauthorized")

def _parse_id(value, name: str) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {name}")
    if parsed <= 0:
        raise ValidationError(f"Invalid {name}")
    return parsed

def is_premium_active(listing: Listing, now: datetime) -> bool:
    return bool(
        listing.is_premium
        and listing.premium_expires_at is not None
        and listing.premium_expires_at > now
    )

def list_tiers(db: Session) -> List[PremiumTier]:
    return list(db.execute(select(PremiumTier).order_by(PremiumTier.price, PremiumTier.id)).scalars())

def create_tier(db: Session, admin: Optional[User], name: str, price: int,
                duration_days: int, features: Optional[List[str]] = None) -> PremiumTier:
    _require_admin(admin)
    if not name or not name.strip():
        raise ValidationError("Tier name is required")
    if price < 0 or duration_days <= 0:
        raise ValidationError("Tier price must be >= 0 and duration must be positive")
    tier = PremiumTier(name=name.strip(), price=price, duration_days=duration_days,
                       features=list(features or []))
    db.add(tier)
    db.commit()
    db.refresh(tier)
    logger.info("Created premium tier %s (%s)", tier.id, tier.name)
    return tier

def submit_payment(db: Session, user: User, listing_id, tier_id,
                   proof_filename: Optional[str], proof_content: Optional[bytes], storage) -> PremiumPayment:
    if not proof_content:
        raise ValidationError("Payment proof is required")
    tier_pk = _parse_id(tier_id, "tier id")
    tier = db.get(PremiumTier, tier_pk)
    if tier is None:
        raise ValidationError("Invalid tier id")
    listing = db.get(Listing, _parse_id(listing_id, "listing id"))
    if listing is None:
        raise NotFound("Listing not found")
    if listing.user_id != user.id:
        raise Forbidden("Unauthorized")

    proof_url = storage.upload(proof_filename, proof_content)
    payment = PremiumPayment(
        listing_id=listing.id,
        user_id=user.id,
        tier_id=tier.id,
        payment_proof=proof_url,
        amount=tier.price,
        status=PAYMENT_PENDING,
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)
    logger.info("Premium payment %s submitted for listing %s (tier %s, amount %s)",
                payment.id, listing.id, tier.id, payment.amount)
    return payment

def _activate_listing(db: Session, payment: PremiumPayment, expires_at: datetime):
    db.execute(
        update(Listing)
        .where(Listing.id == payment.listing_id)
        .values(is_premium=True, premium_tier_id=payment.tier_id, premium_expires_at=expires_at)
    )

def _mark_payment(db: Session, payment: PremiumPayment, status: str, admin: User,
                  expires_at: Optional[datetime] = None) -> bool:
    # only a still-pending row may move; a concurrent review leaves rowcount at 0
    result = db.execute(
        update(PremiumPayment)
        .where(PremiumPayment.id == payment.id, PremiumPayment.status == PAYMENT_PENDING)
        .values(status=status, expires_at=expires_at, reviewed_by=admin.id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1

def set_payment_status(db: Session, payment_id: int, new_status: str,
                       admin: Optional[User], now: datetime) -> PremiumPayment:
    _require_admin(admin)
    if new_status not in REVIEW_STATUSES:
        raise ValidationError("Invalid status", f"status must be one of {', '.join(REVIEW_STATUSES)}")
    payment = db.get(PremiumPayment, payment_id)
    if payment is None:
        raise NotFound("Payment not found")
    if payment.status != PAYMENT_PENDING:
        raise ValidationError("Payment already reviewed", f"payment is {payment.status}")

    with unit_of_work(db):
        expires_at = None
        if new_status == PAYMENT_APPROVED:
            tier = db.get(PremiumTier, payment.tier_id)
            if tier is None:
                raise NotFound("Premium tier not found")
            expires_at = now + timedelta(days=tier.duration_days)
        if not _mark_payment(db, payment, new_status, admin, expires_at):
            raise ValidationError("Payment already reviewed")
        if new_status == PAYMENT_APPROVED:
            _activate_listing(db, payment, expires_at)
    db.refresh(payment)
    logger.info("Premium payment %s %s by admin %s", payment.id, payment.status, admin.id)
    return payment

def list_payments(db: Session, admin: Optional[User]) -> List[Dict]:
    _require_admin(admin)
    stmt = (
        select(PremiumPayment, User, Listing)
        .join(User, PremiumPayment.user_id == User.id)
        .join(Listing, PremiumPayment.listing_id == Listing.id)
        .order_by(PremiumPayment.created_at.desc(), PremiumPayment.id.desc())
    )
    return [
        {"payment": payment, "user": user, "listing": listing}
        for payment, user, listing in db.execute(stmt)
    ]

def expire_premium_listings(db: Session, now: datetime) -> int:
    """Clear the premium flag on listings whose window has elapsed.

    ``premium_expires_at`` is kept so the last premium window stays visible.
    """
    with unit_of_work(db):
        result = db.execute(
            update(Listing)
            .where(Listing.is_premium.is_(True),
                   Listing.premium_expires_at.is_not(None),
                   Listing.premium_expires_at <= now)
            .values(is_premium=False, premium_tier_id=None)
            .execution_options(synchronize_session=False)
        )
    expired = result.rowcount or 0
    if expired:
        logger.info("Expired premium placement on %s listing(s)", expired)
    return expired
