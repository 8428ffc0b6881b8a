"""Destinatarios de push: supervisores activos con notificaciones habilitadas."""

from __future__ import annotations

from typing import List

from sqlalchemy import select
from sqlalchemy.orm import Session

from common.schema import user_device_tokens, users

SUPERVISOR_ROLE = "Supervisor"


def get_supervisor_push_tokens(db: Session) -> List[str]:
    rows = db.execute(
        select(user_device_tokens.c.token)
        .select_from(user_device_tokens.join(users, users.c.id == user_device_tokens.c.user_id))
        .where(
            users.c.role == SUPERVISOR_ROLE,
            users.c.is_active.is_(True),
            users.c.push_notifications_enabled.is_(True),
        )
        .order_by(user_device_tokens.c.id)
    ).fetchall()
    # Un mismo token puede estar registrado dos veces (reinstalaciones).
    return list(dict.fromkeys(str(r[0]) for r in rows))
