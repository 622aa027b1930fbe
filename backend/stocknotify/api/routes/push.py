"""Push notification registration: device tokens for restock alerts."""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from stocknotify.db.session import get_db
from stocknotify.models.push_token import PushToken
from stocknotify.services.catalog_service import require_user

router = APIRouter()
logger = logging.getLogger(__name__)


class RegisterPushBody(BaseModel):
    user_id: int
    device_token: str = Field(..., min_length=1, max_length=256, description="APNs device token (hex string)")
    platform: str = Field(default="ios", pattern="^(ios|android)$")


@router.post("/push/register")
def register_push_token(body: RegisterPushBody, db: Session = Depends(get_db)):
    """
    Register a user's device for push notifications.
    Idempotent: same token is upserted (owner and updated_at refreshed).
    """
    require_user(db, body.user_id)
    token_str = body.device_token.strip()
    existing = db.query(PushToken).filter(PushToken.device_token == token_str).first()
    if existing:
        existing.user_id = body.user_id
        existing.updated_at = datetime.now(timezone.utc)
        db.commit()
        return {"ok": True, "message": "Token already registered"}
    db.add(PushToken(user_id=body.user_id, device_token=token_str, platform=body.platform))
    db.commit()
    logger.info("Registered push token for user=%s platform=%s", body.user_id, body.platform)
    return {"ok": True, "message": "Token registered"}
