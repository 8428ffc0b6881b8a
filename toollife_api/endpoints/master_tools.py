"""Endpoints del registro de herramientas (master list)."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from common.db import get_db
from ..auth import require_api_key
from ..dependencies import get_tool_life_service
from ..schemas import MasterToolIn, MasterToolOut, MasterToolPatch, MasterToolWithUsageOut
from ..tool_life.service import ToolLifeService
from .db_errors import storage_errors

router = APIRouter(prefix="/api/tool-life/master", tags=["master-tools"], dependencies=[Depends(require_api_key)])


@router.post("/create", response_model=MasterToolOut, status_code=201)
def create_master_tool(
    payload: MasterToolIn,
    db: Session = Depends(get_db),
    service: ToolLifeService = Depends(get_tool_life_service),
):
    with storage_errors(db, "/master/create"):
        tool = service.create_tool(
            tool_id=payload.tool_id,
            tool_name=payload.tool_name,
            tool_life_threshold=payload.tool_life_threshold,
            holder_name=payload.holder_name,
            atc_pocket_no=payload.atc_pocket_no,
            tool_room_no=payload.tool_room_no,
            supervisor_email=payload.supervisor_email,
        )
    return MasterToolOut.model_validate(tool, from_attributes=True)


@router.get("/all", response_model=List[MasterToolWithUsageOut])
def list_master_tools(
    db: Session = Depends(get_db),
    service: ToolLifeService = Depends(get_tool_life_service),
):
    """Herramientas con uso acumulado en vivo (desde el ledger)."""
    with storage_errors(db, "/master/all"):
        rows = service.list_tools_with_usage()

    result = []
    for row in rows:
        base = MasterToolOut.model_validate(row.tool, from_attributes=True).model_dump()
        result.append(
            MasterToolWithUsageOut(
                **base,
                cumulative_usage=row.cumulative_usage,
                usage_percentage=round(row.usage_percentage, 2),
                remaining_life=row.remaining_life,
            )
        )
    return result


@router.get("/{tool_id}", response_model=MasterToolOut)
def get_master_tool(
    tool_id: int,
    db: Session = Depends(get_db),
    service: ToolLifeService = Depends(get_tool_life_service),
):
    with storage_errors(db, "/master/get"):
        tool = service.get_tool(tool_id)
    return MasterToolOut.model_validate(tool, from_attributes=True)


@router.patch("/{tool_id}", response_model=MasterToolOut)
def update_master_tool(
    tool_id: int,
    payload: MasterToolPatch,
    db: Session = Depends(get_db),
    service: ToolLifeService = Depends(get_tool_life_service),
):
    with storage_errors(db, "/master/update"):
        tool = service.update_tool(tool_id, payload.model_dump(exclude_unset=True))
    return MasterToolOut.model_validate(tool, from_attributes=True)


@router.delete("/{tool_id}")
def delete_master_tool(
    tool_id: int,
    db: Session = Depends(get_db),
    service: ToolLifeService = Depends(get_tool_life_service),
):
    with storage_errors(db, "/master/delete"):
        service.delete_tool(tool_id)
    return {"success": True, "message": "Tool deleted successfully"}
