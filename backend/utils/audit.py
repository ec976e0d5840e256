# backend/utils/audit.py
from typing import Any, Dict, Optional

from fastapi import Request
from sqlalchemy.orm import Session

from models.log import Log


def client_ip(request: Optional[Request]) -> Optional[str]:
    if request is None or request.client is None:
        return None
    return request.client.host


# Persist one audit entry for a user action (separate commit from the action itself)
def write_log(
    db: Session,
    *,
    user_id: Optional[int],
    action: str,
    resource: str,
    status: str = "SUCCESS",
    request: Optional[Request] = None,
    meta: Optional[Dict[str, Any]] = None,
) -> Log:
    entry = Log(
        user_id=user_id,
        action=action,
        resource=resource,
        status=status,
        ip=client_ip(request),
        meta=meta or {},
    )
    db.add(entry)
    db.commit()
    return entry
