from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from datastore.haiku_store import HaikuStore, build_default_store
from services.errors import StoreError


templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))


def get_store() -> HaikuStore:
    return build_default_store()


router = APIRouter(include_in_schema=False)


@router.get("/", name="ui_index", response_class=HTMLResponse)
@router.get("/haikus", name="ui_haikus", response_class=HTMLResponse)
def ui_haikus(
    request: Request,
    store: HaikuStore = Depends(get_store),
) -> HTMLResponse:
    try:
        haikus = store.list_all()
    except StoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch haikus: {exc}",
        ) from exc
    return templates.TemplateResponse(request, "haikus.html", {"haikus": haikus})
