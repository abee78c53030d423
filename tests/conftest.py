import os

os.environ["POSTGRES_URL"] = "sqlite://"
os.environ["GEOIP_ENABLED"] = "0"
os.environ["PREMIUM_SWEEP_ENABLED"] = "0"
os.environ["TRUST_PROXY_HEADERS"] = "1"

from datetime import datetime
import pytest
from fastapi.testclient import TestClient
from app.db import Base, engine, SessionLocal
from app.models import Listing, PremiumTier, User
from app.storage import LocalFileStorage

T0 = datetime(2026, 10, 1, 12, 0, 0)

class Clock:
    def __init__(self, now=T0):
        self.now = now

@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)

@pytest.fixture()
def clock():
    return Clock()

@pytest.fixture()
def geo_lookups():
    return []

@pytest.fixture()
def client(db, clock, geo_lookups, tmp_path):
    from app.main import app
    from app.api.routes import get_now
    from app.geo import get_geo_resolver
    from app.storage import get_storage

    def resolver(ip):
        geo_lookups.append(ip)
        return {"country": "KE", "city": "Nairobi"} if ip == "41.90.1.1" else {}

    storage = LocalFileStorage(root=str(tmp_path), public_url="https://files.test/uploads")
    app.dependency_overrides[get_now] = lambda: clock.now
    app.dependency_overrides[get_geo_resolver] = lambda: resolver
    app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()

def make_user(db, username, is_admin=False):
    user = User(username=username, email=f"{username}@example.com", is_admin=is_admin)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user

def make_listing(db, owner, title="Used bike", price=12000, created_at=T0, **fields):
    listing = Listing(title=title, description="", price=price, user_id=owner.id,
                      created_at=created_at, **fields)
    db.add(listing)
    db.commit()
    db.refresh(listing)
    return listing

def make_tier(db, name="Gold", price=500, duration_days=30, features=None):
    tier = PremiumTier(name=name, price=price, duration_days=duration_days,
                       features=features or ["Top of search"])
    db.add(tier)
    db.commit()
    db.refresh(tier)
    return tier

def auth(user):
    return {"X-User-Id": str(user.id)}
