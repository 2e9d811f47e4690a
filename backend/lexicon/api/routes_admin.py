from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..core.auth import require_admin
from ..core.database import get_db
from ..core.definition_scheduler import run_scheduled_update, update_in_progress
from ..core.definition_updater import UpdateConfig
from ..models import ENTRY_TYPES, Entry

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


# ---------- Schemas ----------

class DashboardOut(BaseModel):
    total_entries: int
    entries_by_type: Dict[str, int]
    word_lookup_status: Dict[str, int]
    words_missing_definition: int


class DefinitionRunRequest(BaseModel):
    max_requests: Optional[int] = Field(None, ge=0)
    rate_limit_ms: Optional[int] = Field(None, ge=0)
    retry_not_found_days: Optional[int] = Field(None, ge=0)
    retry_error_days: Optional[int] = Field(None, ge=0)
    provider: Optional[str] = None


# ---------- Endpoints ----------

@router.get("/dashboard", response_model=DashboardOut)
def dashboard(db: Session = Depends(get_db)):
    by_type = dict.fromkeys(ENTRY_TYPES, 0)
    for entry_type, n in db.query(Entry.type, func.count(Entry.id)).group_by(Entry.type).all():
        by_type[entry_type] = n

    statuses: Dict[str, int] = {}
    rows = (
        db.query(Entry.api_lookup_status, func.count(Entry.id))
        .filter(Entry.type == "word")
        .group_by(Entry.api_lookup_status)
        .all()
    )
    for lookup_status, n in rows:
        statuses[lookup_status or "unset"] = n

    missing = (
        db.query(func.count(Entry.id))
        .filter(Entry.type == "word", or_(Entry.definition.is_(None), Entry.definition == ""))
        .scalar()
    )

    return DashboardOut(
        total_entries=sum(by_type.values()),
        entries_by_type=by_type,
        word_lookup_status=statuses,
        words_missing_definition=missing or 0,
    )


@router.post("/definitions/run")
async def run_definition_update(
    payload: Optional[DefinitionRunRequest] = None,
    db: Session = Depends(get_db),
):
    if update_in_progress():
        raise HTTPException(status_code=409, detail="A definition update is already running")

    overrides = payload.dict(exclude_unset=True) if payload else {}
    config = UpdateConfig.from_settings(**overrides)

    response = await run_scheduled_update(config, db=db)
    return JSONResponse(status_code=200 if response["success"] else 500, content=response)
