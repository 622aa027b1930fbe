"""
Push channel via Apple Push Notification service (APNs).
Requires APNS_KEY_ID, APNS_TEAM_ID, APNS_BUNDLE_ID, and APNS_KEY_P8_PATH or APNS_KEY_P8_BASE64.
The user's registered device tokens come from push_tokens; delivery succeeds when at least one device accepts.
"""
from __future__ import annotations

import base64
import logging
import time
from pathlib import Path

import httpx
import jwt
from sqlalchemy.orm import Session

from stocknotify.config import settings
from stocknotify.core.errors import DeliveryFailure
from stocknotify.models.push_token import PushToken
from stocknotify.services.channels.base import Delivery

logger = logging.getLogger(__name__)

# APNs host: sandbox for dev builds, production for release
APNS_SANDBOX = "https://api.sandbox.push.apple.com"
APNS_PRODUCTION = "https://api.push.apple.com"

# JWT cache: (token_string, expiry_epoch). APNs accepts tokens with iat within last hour.
_jwt_cache: tuple[str, float] | None = None
_JWT_EXPIRY_SECONDS = 55 * 60  # refresh a bit before 1 hour


def _load_p8_key() -> str | None:
    """Load .p8 key from APNS_KEY_P8_BASE64 or APNS_KEY_P8_PATH. Return None if not set."""
    if settings.apns_key_p8_base64:
        try:
            return base64.b64decode(settings.apns_key_p8_base64).decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            logger.warning("APNS_KEY_P8_BASE64 decode failed: %s", e)
            return None
    path = settings.apns_key_p8_path
    if path and Path(path).exists():
        try:
            return Path(path).read_text(encoding="utf-8")
        except OSError as e:
            logger.warning("APNS_KEY_P8_PATH read failed: %s", e)
            return None
    return None


def _get_apns_jwt() -> str | None:
    """Build and cache JWT for APNs. Returns None if config missing."""
    global _jwt_cache
    if not settings.apns_key_id or not settings.apns_team_id:
        return None
    now = time.time()
    if _jwt_cache and _jwt_cache[1] > now:
        return _jwt_cache[0]
    p8 = _load_p8_key()
    if not p8:
        return None
    try:
        token = jwt.encode(
            {"iss": settings.apns_team_id, "iat": int(now)},
            p8,
            algorithm="ES256",
            headers={"alg": "ES256", "kid": settings.apns_key_id},
        )
    except (jwt.PyJWTError, ValueError) as e:
        logger.warning("APNs JWT build failed: %s", e, exc_info=True)
        return None
    _jwt_cache = (token, now + _JWT_EXPIRY_SECONDS)
    return token


def send_apns(client: httpx.Client, device_token: str, title: str, body: str, jwt_token: str) -> bool:
    """Send one alert to one device. Returns True on HTTP 200."""
    base_url = APNS_SANDBOX if settings.apns_use_sandbox else APNS_PRODUCTION
    headers = {
        "authorization": f"bearer {jwt_token}",
        "apns-topic": settings.apns_bundle_id,
        "apns-push-type": "alert",
        "apns-priority": "10",
    }
    payload = {"aps": {"alert": {"title": title, "body": body}, "sound": "default"}}
    try:
        resp = client.post(f"{base_url}/3/device/{device_token}", json=payload, headers=headers)
    except httpx.HTTPError as e:
        logger.warning("APNs request failed: %s", e)
        return False
    if resp.status_code == 200:
        return True
    logger.warning("APNs returned %s for token %s...: %s", resp.status_code, device_token[:20], resp.text)
    return False


class PushChannel:
    name = "push"

    def __init__(self, client_factory=None) -> None:
        self._client_factory = client_factory or (lambda: httpx.Client(http2=True, timeout=10.0))

    def deliver(self, db: Session, delivery: Delivery) -> bool:
        tokens = [r.device_token for r in db.query(PushToken).filter(PushToken.user_id == delivery.user_id).all()]
        if not tokens:
            raise DeliveryFailure(f"user {delivery.user_id} has no registered devices")
        if not settings.apns_bundle_id:
            raise DeliveryFailure("APNS_BUNDLE_ID not set")
        jwt_token = _get_apns_jwt()
        if not jwt_token:
            raise DeliveryFailure("APNs not configured (key/team)")
        sent = 0
        with self._client_factory() as client:
            for token in tokens:
                if send_apns(client, token, "Back in stock", delivery.message, jwt_token):
                    sent += 1
        logger.info("Push: %s/%s devices accepted for user %s", sent, len(tokens), delivery.user_id)
        return sent > 0
