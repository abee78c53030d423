# app/schemas.py
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Dict, List, Optional
from datetime import datetime

class APIModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True, alias_generator=to_camel)

class ListingOut(APIModel):
    id: int
    title: str
    description: Optional[str] = None
    price: int
    user_id: Optional[int] = None
    status: str
    location: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    is_premium: bool = False
    premium_tier_id: Optional[int] = None
    premium_expires_at: Optional[datetime] = None

class ListingPage(APIModel):
    total: int
    items: List[ListingOut]

class ListingViewOut(APIModel):
    id: int
    listing_id: int
    viewer_id: Optional[int] = None
    ip_address: str
    user_agent: Optional[str] = None
    geo_location: Optional[Dict[str, str]] = None
    session_duration: Optional[int] = None
    view_start_time: Optional[datetime] = None
    view_end_time: Optional[datetime] = None
    is_return: bool
    created_at: Optional[datetime] = None

class ViewTotals(APIModel):
    total: int = 0
    unique: int = 0
    returning_visitors: int = 0
    avg_duration: int = 0

class HourlyBucket(APIModel):
    hour: str
    count: int

class DailyBucket(APIModel):
    date: str
    count: int

class CountryBucket(APIModel):
    country: str
    count: int

class AnalyticsReport(APIModel):
    views: ViewTotals
    hourly_views: List[HourlyBucket] = []
    daily_views: List[DailyBucket] = []
    geo_distribution: List[CountryBucket] = []
    message_count: int = 0

class PremiumTierCreate(APIModel):
    name: str = Field(..., min_length=1, max_length=255)
    price: int = Field(..., ge=0)
    duration_days: int = Field(..., gt=0)
    features: List[str] = []

class PremiumTierOut(APIModel):
    id: int
    name: str
    price: int
    duration_days: int
    features: List[str] = []
    created_at: Optional[datetime] = None

class PremiumPaymentOut(APIModel):
    id: int
    listing_id: int
    user_id: int
    tier_id: int
    payment_proof: str
    status: str
    amount: int
    expires_at: Optional[datetime] = None
    reviewed_by: Optional[int] = None
    created_at: Optional[datetime] = None

class PaymentStatusUpdate(APIModel):
    status: str

class PaymentSummary(APIModel):
    id: int
    status: str
    amount: int
    payment_proof: str
    created_at: Optional[datetime] = None

class UserSummary(APIModel):
    id: int
    username: str

class ListingSummary(APIModel):
    id: int
    title: str

class AdminPaymentRow(APIModel):
    payment: PaymentSummary
    user: UserSummary
    listing: ListingSummary

class OverviewTotals(APIModel):
    total_users: int = 0
    total_listings: int = 0
    total_messages: int = 0

class StatusBucket(APIModel):
    status: str
    count: int

class AdminOverview(APIModel):
    overview: OverviewTotals
    listings_by_status: List[StatusBucket] = []
