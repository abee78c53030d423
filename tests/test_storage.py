from datetime import timedelta
from pathlib import Path
import pytest
from app import scheduler
from app.errors import StorageError
from app.storage import LocalFileStorage
from app.utils import utcnow
from conftest import make_listing, make_user

def test_upload_writes_file(tmp_path):
    storage = LocalFileStorage(root=str(tmp_path), public_url="https://cdn.test/files/")
    url = storage.upload("Receipt.PDF", b"%PDF-1.4")
    assert url.startswith("https://cdn.test/files/payments/")
    assert url.endswith(".pdf")
    rel = url[len("https://cdn.test/files/"):]
    assert (tmp_path / rel).read_bytes() == b"%PDF-1.4"

def test_upload_failure_raises_storage_error(tmp_path, monkeypatch):
    storage = LocalFileStorage(root=str(tmp_path))
    attempts = []

    def broken(path, content):
        attempts.append(path)
        raise OSError("disk full")

    monkeypatch.setattr("app.utils.time.sleep", lambda s: None)
    monkeypatch.setattr(Path, "write_bytes", broken)
    with pytest.raises(StorageError):
        storage.upload("x.png", b"x")
    assert len(attempts) == 3

def test_scheduled_sweep_expires_listings(db):
    seller = make_user(db, "seller")
    listing = make_listing(db, seller, is_premium=True, premium_expires_at=utcnow() - timedelta(hours=1))

    assert scheduler.sweep_expired_premium() == 1
    db.refresh(listing)
    assert listing.is_premium is False

def test_scheduler_stays_off_when_disabled():
    scheduler.start_scheduler()
    assert scheduler.scheduler.running is False
