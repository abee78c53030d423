# app/geo.py
"""Best-effort IP geolocation.

`resolve` never raises: private or malformed addresses and provider failures
all come back as an empty dict so view recording is never blocked on it.
"""
import os
import ipaddress
from functools import lru_cache
from typing import Dict
import httpx
from dotenv import load_dotenv
from .utils import logger, env_flag

load_dotenv()
GEOIP_ENABLED = env_flag("GEOIP_ENABLED", "1")
GEOIP_TIMEOUT = float(os.getenv("GEOIP_TIMEOUT", "3.0"))
GEOIP_URL = os.getenv("GEOIP_URL", "https://ipwho.is/{ip}")
GEOIP_CACHE_SIZE = int(os.getenv("GEOIP_CACHE_SIZE", "4096"))

def is_public_ip(ip: str) -> bool:
    try:
        addr = ipaddress.ip_address((ip or "").strip())
    except ValueError:
        return False
    return addr.is_global

# failed lookups raise and are retried on the next view; misses are cached
@lru_cache(maxsize=GEOIP_CACHE_SIZE)
def lookup_provider(ip: str, timeout: float = GEOIP_TIMEOUT) -> Dict[str, str]:
    with httpx.Client(timeout=timeout) as client:
        r = client.get(GEOIP_URL.format(ip=ip))
    r.raise_for_status()
    data = r.json()
    if not data.get("success", True):
        return {}
    geo = {"country": data.get("country_code") or data.get("country"),
           "city": data.get("city"),
           "region": data.get("region")}
    return {k: v for k, v in geo.items() if v}

def resolve(ip: str) -> Dict[str, str]:
    if not GEOIP_ENABLED or not is_public_ip(ip):
        return {}
    try:
        return dict(lookup_provider(ip))
    except Exception as e:
        logger.warning("Geo lookup failed for %s: %s", ip, e)
        return {}

def get_geo_resolver():
    """FastAPI dependency; tests override it with a canned resolver."""
    return resolve
