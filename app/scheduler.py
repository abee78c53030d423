# app/scheduler.py
import os
from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv
from .db import SessionLocal
from .premium import expire_premium_listings
from .utils import logger, utcnow, env_flag

load_dotenv()
PREMIUM_SWEEP_ENABLED = env_flag("PREMIUM_SWEEP_ENABLED", "0")
PREMIUM_SWEEP_HOURS = int(os.getenv("PREMIUM_SWEEP_HOURS", "1"))

scheduler = BackgroundScheduler()

def sweep_expired_premium():
    db = SessionLocal()
    try:
        return expire_premium_listings(db, utcnow())
    except Exception as e:
        logger.exception("Premium expiry sweep failed: %s", e)
        return 0
    finally:
        db.close()

def start_scheduler():
    if not PREMIUM_SWEEP_ENABLED or scheduler.running:
        return
    scheduler.add_job(sweep_expired_premium, 'interval', hours=PREMIUM_SWEEP_HOURS,
                      id="premium-expiry", replace_existing=True)
    scheduler.start()
    logger.info("Scheduler started")

def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
