import logging
from pathlib import Path

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from db.database import get_db
from utils.auth import SESSION_COOKIE_NAME, get_current_user_id, start_session, verify_password
from utils.students import get_password_hash

logger = logging.getLogger(__name__)

router = APIRouter()
base_dir = Path(__file__).resolve().parent.parent
templates = Jinja2Templates(directory=str(base_dir / "templates"))

STUDY_COOKIES = ("review_ahead_days", "max_new_cards_per_day", "tag_filter", "current_card_id")


@router.get("/login", response_class=HTMLResponse)
async def login_form(request: Request):
    if get_current_user_id(request):
        return RedirectResponse(url="/", status_code=status.HTTP_303_SEE_OTHER)
    return templates.TemplateResponse(request, "login.html", {"error": None, "email": ""})


@router.post("/login", response_class=HTMLResponse)
async def login(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    conn = Depends(get_db),
):
    found = get_password_hash(conn, email)
    if not found or not verify_password(password, found[1]):
        logger.info("Failed login for %s", email)
        return templates.TemplateResponse(
            request,
            "login.html",
            {"error": "Invalid e-mail or password", "email": email},
            status_code=status.HTTP_401_UNAUTHORIZED,
        )
    user_id, _ = found
    response = RedirectResponse(url="/", status_code=status.HTTP_303_SEE_OTHER)
    start_session(response, user_id)
    return response


@router.api_route("/logout", methods=["GET", "POST"])
async def logout():
    response = RedirectResponse(url="/login", status_code=status.HTTP_303_SEE_OTHER)
    for name in (SESSION_COOKIE_NAME, *STUDY_COOKIES):
        response.delete_cookie(name)
    return response
