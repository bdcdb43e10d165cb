# cardledger/api/settings.py

from typing import Optional

from fastapi import APIRouter, Depends, Query

from cardledger.api.deps import get_store, get_user_email, require_admin
from cardledger.db.store import LedgerStore
from cardledger.models.settings import ActivityListResponse, SettingsOut, SettingsUpdate

router = APIRouter(tags=["settings"])


@router.get("/settings", response_model=SettingsOut)
def read_settings(store: LedgerStore = Depends(get_store)) -> SettingsOut:
    return store.get_settings()


@router.put("/settings", response_model=SettingsOut, dependencies=[Depends(require_admin)])
def update_settings(
    payload: SettingsUpdate,
    store: LedgerStore = Depends(get_store),
    user_email: Optional[str] = Depends(get_user_email),
) -> SettingsOut:
    values = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    if "date_format" in values:
        values["date_format"] = values["date_format"].value

    settings = store.update_settings(values)
    store.log_activity(
        "settings.update", f"Changed {', '.join(sorted(values)) or 'nothing'}", user_email
    )
    return settings


@router.get("/activity", response_model=ActivityListResponse)
def list_activity(
    search: Optional[str] = Query(default=None, description="Matches action, details or user"),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    store: LedgerStore = Depends(get_store),
) -> ActivityListResponse:
    items, total = store.list_activity(search=search, limit=limit, offset=offset)
    return ActivityListResponse(items=items, total=total, limit=limit, offset=offset)
