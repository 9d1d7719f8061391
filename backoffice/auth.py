"""Acting user resolution

Authentication happens upstream (API gateway); it forwards the acting user as
the X-User-Id header. Requests without the header act anonymously.
"""

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from .database import get_db
from .models import User

logger = logging.getLogger(__name__)


async def get_current_user(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Get the acting user forwarded by the gateway, if any"""
    if not x_user_id:
        return None

    user = db.query(User).filter(User.id == x_user_id, User.deleted_at.is_(None)).first()
    if not user:
        logger.warning(f"⚠️ Unknown acting user id: {x_user_id}")
        raise HTTPException(status_code=401, detail="Unknown user")
    return user
