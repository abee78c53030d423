# app/api/routes.py
from datetime import datetime
from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from sqlalchemy.orm import Session
from typing import List, Optional
from .. import crud, premium, schemas, views
from ..auth import get_current_user, require_admin, require_user
from ..db import get_db
from ..errors import NotFound
from ..geo import get_geo_resolver
from ..models import Listing, User
from ..storage import get_storage
from ..utils import env_flag, utcnow

router = APIRouter()

TRUST_PROXY_HEADERS = env_flag("TRUST_PROXY_HEADERS", "0")

def get_now() -> datetime:
    return utcnow()

def client_ip(request: Request) -> Optional[str]:
    # forwarding headers are client-controlled unless a trusted proxy sets them
    if TRUST_PROXY_HEADERS:
        forwarded = (request.headers.get("X-Forwarded-For") or "").split(",")[0].strip()
        proxied = forwarded or request.headers.get("X-Real-IP")
        if proxied:
            return proxied
    return request.client.host if request.client else None

def listing_out(listing: Listing, now: datetime) -> schemas.ListingOut:
    out = schemas.ListingOut.model_validate(listing)
    return out.model_copy(update={"is_premium": premium.is_premium_active(listing, now)})

@router.get("/health")
def health():
    return {"status": "ok"}

@router.get("/listings", response_model=schemas.ListingPage)
def listings(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    query: str | None = Query(None),
    min_price: int | None = Query(None, alias="minPrice"),
    max_price: int | None = Query(None, alias="maxPrice"),
    location: str | None = Query(None),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    filters = {
        "query": query,
        "min_price": min_price,
        "max_price": max_price,
        "location": location,
    }
    res = crud.list_listings(db, now, skip=skip, limit=limit, filters=filters)
    return {"total": res["total"], "items": [listing_out(obj, now) for obj in res["items"]]}


@router.get("/listings/{listing_id}", response_model=schemas.ListingOut)
def get_listing(listing_id: int, db: Session = Depends(get_db), now: datetime = Depends(get_now)):
    obj = crud.get_listing(db, listing_id)
    if not obj:
        raise NotFound("Listing not found")
    return listing_out(obj, now)


@router.post("/listings/{listing_id}/view")
def track_view(
    listing_id: int,
    request: Request,
    db: Session = Depends(get_db),
    viewer: Optional[User] = Depends(get_current_user),
    now: datetime = Depends(get_now),
    resolver=Depends(get_geo_resolver),
):
    event, was_updated = views.record_view(
        db,
        listing_id,
        viewer.id if viewer else None,
        client_ip(request),
        request.headers.get("User-Agent"),
        now,
        resolver,
    )
    if was_updated:
        return {"message": "View duration updated"}
    return schemas.ListingViewOut.model_validate(event).model_dump(mode="json", by_alias=True)


@router.get("/listings/{listing_id}/analytics", response_model=schemas.AnalyticsReport)
def listing_analytics(
    listing_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_user),
    now: datetime = Depends(get_now),
):
    return views.get_analytics(db, listing_id, user.id, now)


@router.get("/premium-tiers", response_model=List[schemas.PremiumTierOut])
def premium_tiers(db: Session = Depends(get_db)):
    return premium.list_tiers(db)


@router.post("/admin/premium-tiers", response_model=schemas.PremiumTierOut, status_code=201)
def create_premium_tier(
    payload: schemas.PremiumTierCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return premium.create_tier(db, admin, payload.name, payload.price, payload.duration_days, payload.features)


@router.post("/premium-payments", response_model=schemas.PremiumPaymentOut)
def submit_premium_payment(
    listing_id: str | None = Form(None, alias="listingId"),
    tier_id: str | None = Form(None, alias="tierId"),
    payment_proof: UploadFile | None = File(None, alias="paymentProof"),
    db: Session = Depends(get_db),
    user: User = Depends(require_user),
    storage=Depends(get_storage),
):
    content = payment_proof.file.read() if payment_proof is not None else None
    filename = payment_proof.filename if payment_proof is not None else None
    return premium.submit_payment(db, user, listing_id, tier_id, filename, content, storage)


@router.get("/admin/premium-payments", response_model=List[schemas.AdminPaymentRow])
def admin_premium_payments(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return premium.list_payments(db, admin)


@router.put("/admin/premium-payments/{payment_id}", response_model=schemas.PremiumPaymentOut)
def review_premium_payment(
    payment_id: int,
    payload: schemas.PaymentStatusUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    now: datetime = Depends(get_now),
):
    return premium.set_payment_status(db, payment_id, payload.status, admin, now)


@router.get("/admin/analytics/overview", response_model=schemas.AdminOverview)
def admin_analytics_overview(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return views.get_admin_overview(db, admin)
