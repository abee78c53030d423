from datetime import timedelta
from conftest import T0, auth, make_listing, make_tier, make_user

def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}

def test_view_then_duration_update(client, db, clock, geo_lookups):
    seller = make_user(db, "seller")
    listing = make_listing(db, seller)
    headers = {"X-Forwarded-For": "41.90.1.1, 10.0.0.2", "User-Agent": "pytest-browser"}

    res = client.post(f"/listings/{listing.id}/view", headers=headers)
    assert res.status_code == 200
    body = res.json()
    assert body["listingId"] == listing.id
    assert body["ipAddress"] == "41.90.1.1"
    assert body["userAgent"] == "pytest-browser"
    assert body["geoLocation"] == {"country": "KE", "city": "Nairobi"}
    assert body["isReturn"] is False
    assert body["viewerId"] is None

    clock.now = T0 + timedelta(minutes=2)
    res = client.post(f"/listings/{listing.id}/view", headers=headers)
    assert res.json() == {"message": "View duration updated"}
    assert geo_lookups == ["41.90.1.1"]

def test_view_records_logged_in_viewer(client, db):
    seller = make_user(db, "seller")
    buyer = make_user(db, "buyer")
    listing = make_listing(db, seller)
    res = client.post(f"/listings/{listing.id}/view", headers=auth(buyer))
    assert res.json()["viewerId"] == buyer.id

def test_view_of_missing_listing(client):
    res = client.post("/listings/404/view")
    assert res.status_code == 404
    assert res.json() == {"message": "Listing not found"}

def test_analytics_access(client, db, clock):
    seller = make_user(db, "seller")
    stranger = make_user(db, "stranger")
    listing = make_listing(db, seller)

    assert client.get(f"/listings/{listing.id}/analytics").status_code == 401
    res = client.get(f"/listings/{listing.id}/analytics", headers=auth(stranger))
    assert res.status_code == 403
    assert res.json() == {"message": "Unauthorized"}

    res = client.get(f"/listings/{listing.id}/analytics", headers=auth(seller))
    assert res.status_code == 200
    assert res.json()["views"] == {"total": 0, "unique": 0, "returningVisitors": 0, "avgDuration": 0}

    client.post(f"/listings/{listing.id}/view", headers={"X-Forwarded-For": "41.90.1.1"})
    clock.now = T0 + timedelta(seconds=40)
    client.post(f"/listings/{listing.id}/view", headers={"X-Forwarded-For": "41.90.1.1"})
    client.post(f"/listings/{listing.id}/view", headers={"X-Forwarded-For": "8.8.8.8"})

    report = client.get(f"/listings/{listing.id}/analytics", headers=auth(seller)).json()
    assert report["views"] == {"total": 2, "unique": 2, "returningVisitors": 0, "avgDuration": 40}
    assert report["hourlyViews"] == [{"hour": "12:00", "count": 2}]
    assert report["dailyViews"] == [{"date": "2026-10-01", "count": 2}]
    assert report["geoDistribution"] == [{"country": "KE", "count": 1}]
    assert report["messageCount"] == 0

def test_premium_tiers_endpoint(client, db):
    admin = make_user(db, "admin", is_admin=True)
    seller = make_user(db, "seller")
    payload = {"name": "Gold", "price": 500, "durationDays": 30, "features": ["Top of search"]}

    assert client.post("/admin/premium-tiers", json=payload, headers=auth(seller)).status_code == 403
    res = client.post("/admin/premium-tiers", json=payload, headers=auth(admin))
    assert res.status_code == 201
    client.post("/admin/premium-tiers", json={"name": "Silver", "price": 100, "durationDays": 7},
                headers=auth(admin))

    tiers = client.get("/premium-tiers").json()
    assert [t["name"] for t in tiers] == ["Silver", "Gold"]
    assert tiers[1]["durationDays"] == 30
    assert tiers[1]["features"] == ["Top of search"]

    res = client.post("/admin/premium-tiers", json={"name": "Bad", "price": 1, "durationDays": 0},
                      headers=auth(admin))
    assert res.status_code == 400
    assert res.json()["message"] == "Invalid request"

def test_payment_submission_and_approval(client, db, clock):
    admin = make_user(db, "admin", is_admin=True)
    seller = make_user(db, "seller")
    listing = make_listing(db, seller)
    tier = make_tier(db, price=500, duration_days=30)
    form = {"listingId": str(listing.id), "tierId": str(tier.id)}
    proof = {"paymentProof": ("receipt.png", b"\x89PNG...", "image/png")}

    assert client.post("/premium-payments", data=form, files=proof).status_code == 401
    res = client.post("/premium-payments", data=form, headers=auth(seller))
    assert res.status_code == 400
    assert res.json() == {"message": "Payment proof is required"}

    res = client.post("/premium-payments", data=form, files=proof, headers=auth(seller))
    assert res.status_code == 200
    payment = res.json()
    assert payment["status"] == "pending"
    assert payment["amount"] == 500
    assert payment["paymentProof"].startswith("https://files.test/uploads/payments/")

    tier.price = 750
    db.commit()

    rows = client.get("/admin/premium-payments", headers=auth(admin)).json()
    assert rows[0]["payment"]["id"] == payment["id"]
    assert rows[0]["payment"]["amount"] == 500
    assert rows[0]["user"] == {"id": seller.id, "username": "seller"}
    assert rows[0]["listing"] == {"id": listing.id, "title": "Used bike"}
    assert client.get("/admin/premium-payments", headers=auth(seller)).status_code == 403

    clock.now = T0 + timedelta(hours=1)
    res = client.put(f"/admin/premium-payments/{payment['id']}", json={"status": "approved"},
                     headers=auth(admin))
    assert res.status_code == 200
    expected = (T0 + timedelta(hours=1) + timedelta(days=30)).isoformat()
    assert res.json()["status"] == "approved"
    assert res.json()["expiresAt"] == expected
    assert res.json()["amount"] == 500

    detail = client.get(f"/listings/{listing.id}").json()
    assert detail["isPremium"] is True
    assert detail["premiumTierId"] == tier.id
    assert detail["premiumExpiresAt"] == expected

    res = client.put(f"/admin/premium-payments/{payment['id']}", json={"status": "rejected"},
                     headers=auth(admin))
    assert res.status_code == 400

    clock.now = T0 + timedelta(days=31, hours=2)
    assert client.get(f"/listings/{listing.id}").json()["isPremium"] is False

def test_review_unknown_payment(client, db):
    admin = make_user(db, "admin", is_admin=True)
    res = client.put("/admin/premium-payments/77", json={"status": "approved"}, headers=auth(admin))
    assert res.status_code == 404
    assert res.json() == {"message": "Payment not found"}

def test_browse_puts_active_premium_first(client, db):
    seller = make_user(db, "seller")
    tier = make_tier(db)
    old_premium = make_listing(db, seller, title="Premium sofa", created_at=T0 - timedelta(days=5),
                               is_premium=True, premium_tier_id=tier.id,
                               premium_expires_at=T0 + timedelta(days=1))
    lapsed = make_listing(db, seller, title="Lapsed table", created_at=T0 - timedelta(days=6),
                          is_premium=True, premium_tier_id=tier.id,
                          premium_expires_at=T0 - timedelta(days=1))
    newest = make_listing(db, seller, title="New chair", created_at=T0)
    make_listing(db, seller, title="Removed lamp", status="removed")

    page = client.get("/listings").json()
    assert page["total"] == 3
    assert [item["id"] for item in page["items"]] == [old_premium.id, newest.id, lapsed.id]
    assert [item["isPremium"] for item in page["items"]] == [True, False, False]

    page = client.get("/listings", params={"query": "sofa", "maxPrice": 20000}).json()
    assert [item["title"] for item in page["items"]] == ["Premium sofa"]

def test_missing_listing_detail(client):
    res = client.get("/listings/31337")
    assert res.status_code == 404
    assert res.json() == {"message": "Listing not found"}

def test_forwarding_headers_ignored_without_trusted_proxy(client, db, monkeypatch):
    from app.api import routes

    seller = make_user(db, "seller")
    listing = make_listing(db, seller)
    monkeypatch.setattr(routes, "TRUST_PROXY_HEADERS", False)

    first = client.post(f"/listings/{listing.id}/view", headers={"X-Forwarded-For": "41.90.1.1"}).json()
    assert first["ipAddress"] == "testclient"
    res = client.post(f"/listings/{listing.id}/view", headers={"X-Forwarded-For": "41.90.1.2"})
    assert res.json() == {"message": "View duration updated"}

    report = client.get(f"/listings/{listing.id}/analytics", headers=auth(seller)).json()
    assert report["views"]["total"] == 1
    assert report["views"]["unique"] == 1

def test_admin_overview(client, db):
    from app.models import Message

    admin = make_user(db, "admin", is_admin=True)
    seller = make_user(db, "seller")
    make_listing(db, seller, title="Bike")
    make_listing(db, seller, title="Desk")
    make_listing(db, seller, title="Lamp", status="removed")
    db.add(Message(sender_id=admin.id, recipient_id=seller.id, content="Hello"))
    db.commit()

    assert client.get("/admin/analytics/overview").status_code == 401
    assert client.get("/admin/analytics/overview", headers=auth(seller)).status_code == 403

    res = client.get("/admin/analytics/overview", headers=auth(admin))
    assert res.status_code == 200
    assert res.json() == {
        "overview": {"totalUsers": 2, "totalListings": 2, "totalMessages": 1},
        "listingsByStatus": [{"status": "active", "count": 2}, {"status": "removed", "count": 1}],
    }
