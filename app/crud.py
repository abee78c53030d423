# app/crud.py
"""Read helpers for `Listing` entities.

Browse ordering puts listings with an unexpired premium window first, then
newest first. Writes to listings live with their owning services.
"""
from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy import and_, case, or_, select, func
from sqlalchemy.orm import Session
from .models import Listing

def premium_rank(now: datetime):
    active = and_(Listing.is_premium.is_(True), Listing.premium_expires_at > now)
    return case((active, 1), else_=0)

def get_listing(db: Session, listing_id: int) -> Optional[Listing]:
    return db.get(Listing, listing_id)

def list_listings(db: Session, now: datetime, skip: int = 0, limit: int = 50, filters: Dict[str, Any] = None):
    conds = [Listing.status == "active"]
    if filters:
        if filters.get("query"):
            pattern = f"%{filters['query']}%"
            conds.append(or_(Listing.title.ilike(pattern), Listing.description.ilike(pattern)))
        if filters.get("min_price") is not None:
            conds.append(Listing.price >= filters["min_price"])
        if filters.get("max_price") is not None:
            conds.append(Listing.price <= filters["max_price"])
        if filters.get("location"):
            conds.append(Listing.location.ilike(f"%{filters['location']}%"))
    where = and_(*conds)
    total = db.execute(select(func.count(Listing.id)).where(where)).scalar_one()
    stmt = (
        select(Listing)
        .where(where)
        .order_by(premium_rank(now).desc(), Listing.created_at.desc(), Listing.id.desc())
        .offset(skip)
        .limit(limit)
    )
    items = list(db.execute(stmt).scalars())
    return {"total": total, "items": items}
