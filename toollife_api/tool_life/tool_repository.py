"""Repositorio del registro de herramientas (master_tools)."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, insert, select, update
from sqlalchemy.orm import Session

from common.schema import master_tools
from .models import MasterTool, ToolStatus

logger = logging.getLogger(__name__)


def _to_tool(row: Any) -> MasterTool:
    return MasterTool(
        tool_id=int(row.tool_id),
        tool_name=str(row.tool_name),
        tool_life_threshold=float(row.tool_life_threshold),
        status=ToolStatus(row.status),
        holder_name=row.holder_name or "",
        atc_pocket_no=row.atc_pocket_no or "",
        tool_room_no=row.tool_room_no or "",
        supervisor_email=row.supervisor_email or None,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def get_tool(db: Session, tool_id: int) -> Optional[MasterTool]:
    row = db.execute(
        select(master_tools).where(master_tools.c.tool_id == tool_id)
    ).fetchone()
    return _to_tool(row) if row else None


def list_tools(db: Session) -> List[MasterTool]:
    rows = db.execute(select(master_tools).order_by(master_tools.c.tool_id)).fetchall()
    return [_to_tool(r) for r in rows]


def insert_tool(db: Session, tool: MasterTool, now: datetime) -> MasterTool:
    db.execute(
        insert(master_tools).values(
            tool_id=tool.tool_id,
            tool_name=tool.tool_name,
            holder_name=tool.holder_name,
            atc_pocket_no=tool.atc_pocket_no,
            tool_room_no=tool.tool_room_no,
            tool_life_threshold=tool.tool_life_threshold,
            status=tool.status.value,
            supervisor_email=tool.supervisor_email,
            created_at=now,
            updated_at=now,
        )
    )
    tool.created_at = now
    tool.updated_at = now
    return tool


def update_tool_fields(db: Session, tool_id: int, fields: Dict[str, Any], now: datetime) -> None:
    values = dict(fields)
    values["updated_at"] = now
    db.execute(update(master_tools).where(master_tools.c.tool_id == tool_id).values(**values))


def set_status(db: Session, tool_id: int, status: ToolStatus, now: datetime) -> None:
    """Actualiza el estado cacheado del registro."""
    db.execute(
        update(master_tools)
        .where(master_tools.c.tool_id == tool_id)
        .values(status=status.value, updated_at=now)
    )


def delete_tool(db: Session, tool_id: int) -> bool:
    result = db.execute(delete(master_tools).where(master_tools.c.tool_id == tool_id))
    return (result.rowcount or 0) > 0
