# app/views.py
"""Listing view recording and per-listing analytics.

Views are deduplicated per (listing, IP): repeated hits inside the recent
window extend the open event instead of adding a row. A new event is flagged
as a return visit when the same IP viewed the listing in an earlier, separate
session (between 24 hours and 7 days ago).
"""
import os
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple
from dotenv import load_dotenv
from sqlalchemy import and_, case, distinct, func, select
from sqlalchemy.orm import Session
from .errors import Forbidden, NotFound
from .models import Listing, ListingView, Message, User
from .utils import logger

load_dotenv()

RECENT_VIEW_WINDOW = timedelta(minutes=int(os.getenv("VIEW_RECENT_MINUTES", "60")))
RETURN_VISITOR_WINDOW = (
    timedelta(hours=int(os.getenv("VIEW_RETURN_MIN_HOURS", "24"))),
    timedelta(days=int(os.getenv("VIEW_RETURN_MAX_DAYS", "7"))),
)
HOURLY_WINDOW = timedelta(hours=24)
DAILY_WINDOW = timedelta(days=7)

UNKNOWN_IP = "unknown"

@dataclass(frozen=True)
class ViewWindows:
    recent: timedelta = RECENT_VIEW_WINDOW
    return_min: timedelta = RETURN_VISITOR_WINDOW[0]
    return_max: timedelta = RETURN_VISITOR_WINDOW[1]
    hourly: timedelta = HOURLY_WINDOW
    daily: timedelta = DAILY_WINDOW

DEFAULT_WINDOWS = ViewWindows()

def _find_recent_view(db: Session, listing_id: int, ip: str, since: datetime) -> Optional[ListingView]:
    stmt = (
        select(ListingView)
        .where(ListingView.listing_id == listing_id,
               ListingView.ip_address == ip,
               ListingView.created_at > since)
        .order_by(ListingView.created_at.desc())
        .limit(1)
    )
    return db.execute(stmt).scalars().first()

def _has_prior_visit(db: Session, listing_id: int, ip: str, now: datetime, windows: ViewWindows) -> bool:
    stmt = (
        select(ListingView.id)
        .where(ListingView.listing_id == listing_id,
               ListingView.ip_address == ip,
               ListingView.created_at > now - windows.return_max,
               ListingView.created_at < now - windows.return_min)
        .limit(1)
    )
    return db.execute(stmt).first() is not None

def record_view(
    db: Session,
    listing_id: int,
    viewer_id: Optional[int],
    ip: Optional[str],
    user_agent: Optional[str],
    now: datetime,
    resolver: Callable[[str], Dict[str, str]],
    windows: ViewWindows = DEFAULT_WINDOWS,
) -> Tuple[ListingView, bool]:
    """Record one view of a listing and return ``(event, was_updated)``."""
    if db.get(Listing, listing_id) is None:
        raise NotFound("Listing not found")
    ip = (ip or "").strip() or UNKNOWN_IP

    recent = _find_recent_view(db, listing_id, ip, now - windows.recent)
    if recent is not None:
        recent.view_end_time = now
        recent.session_duration = int((now - recent.view_start_time).total_seconds())
        db.commit()
        db.refresh(recent)
        return recent, True

    is_return = _has_prior_visit(db, listing_id, ip, now, windows)
    geo = resolver(ip) or {}
    event = ListingView(
        listing_id=listing_id,
        viewer_id=viewer_id,
        ip_address=ip,
        user_agent=user_agent,
        country=geo.get("country"),
        city=geo.get("city"),
        region=geo.get("region"),
        view_start_time=now,
        is_return=is_return,
        created_at=now,
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info("Recorded view of listing %s from %s (return=%s)", listing_id, ip, is_return)
    return event, False

def _view_totals(db: Session, listing_id: int) -> Dict[str, int]:
    stmt = select(
        func.count(ListingView.id),
        func.count(distinct(ListingView.ip_address)),
        func.count(distinct(case((ListingView.is_return.is_(True), ListingView.ip_address)))),
        func.avg(ListingView.session_duration),
    ).where(ListingView.listing_id == listing_id)
    total, unique, returning, avg_duration = db.execute(stmt).one()
    return {
        "total": int(total or 0),
        "unique": int(unique or 0),
        "returningVisitors": int(returning or 0),
        # avg() skips NULL durations; truncate to whole seconds
        "avgDuration": int(float(avg_duration)) if avg_duration is not None else 0,
    }

def _bucket(timestamps: List[datetime], label: Callable[[datetime], str], key: str) -> List[Dict]:
    counts: Dict[str, int] = {}
    for ts in timestamps:
        k = label(ts)
        counts[k] = counts.get(k, 0) + 1
    return [{key: k, "count": counts[k]} for k in sorted(counts)]

def _created_since(db: Session, listing_id: int, since: datetime) -> List[datetime]:
    stmt = select(ListingView.created_at).where(
        and_(ListingView.listing_id == listing_id, ListingView.created_at > since)
    )
    return list(db.execute(stmt).scalars())

def _geo_distribution(db: Session, listing_id: int) -> List[Dict]:
    count = func.count(ListingView.id)
    stmt = (
        select(ListingView.country, count)
        .where(ListingView.listing_id == listing_id, ListingView.country.is_not(None))
        .group_by(ListingView.country)
        .order_by(count.desc(), ListingView.country)
    )
    return [{"country": country, "count": int(n)} for country, n in db.execute(stmt)]

def get_analytics(
    db: Session,
    listing_id: int,
    requester_id: Optional[int],
    now: datetime,
    windows: ViewWindows = DEFAULT_WINDOWS,
) -> Dict:
    listing = db.get(Listing, listing_id)
    if listing is None or requester_id is None or listing.user_id != requester_id:
        raise Forbidden("Unauthorized")

    hourly = _bucket(_created_since(db, listing_id, now - windows.hourly),
                     lambda ts: ts.strftime("%H:00"), "hour")
    daily = _bucket(_created_since(db, listing_id, now - windows.daily),
                    lambda ts: ts.date().isoformat(), "date")
    message_count = db.execute(
        select(func.count(Message.id)).where(Message.listing_id == listing_id)
    ).scalar_one()

    return {
        "views": _view_totals(db, listing_id),
        "hourlyViews": hourly,
        "dailyViews": daily,
        "geoDistribution": _geo_distribution(db, listing_id),
        "messageCount": int(message_count or 0),
    }

def get_admin_overview(db: Session, admin: Optional[User]) -> Dict:
    """Marketplace-wide counts for the admin dashboard."""
    if admin is None or not admin.is_admin:
        raise Forbidden("Unauthorized")

    def count(stmt):
        return int(db.execute(stmt).scalar_one() or 0)

    per_status = func.count(Listing.id)
    by_status = list(db.execute(
        select(Listing.status, per_status).group_by(Listing.status).order_by(Listing.status)
    ))
    return {
        "overview": {
            "totalUsers": count(select(func.count(User.id))),
            "totalListings": count(select(func.count(Listing.id)).where(Listing.status == "active")),
            "totalMessages": count(select(func.count(Message.id))),
        },
        "listingsByStatus": [{"status": status, "count": int(n)} for status, n in by_status],
    }
