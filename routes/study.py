import logging
import sqlite3
import time
from pathlib import Path
from typing import Optional, Set

from fastapi import APIRouter, Depends, Form, HTTPException, Request, Response, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from config import get_config_value
from db.database import get_db
from utils.auth import get_current_user_id, require_user, set_cookie
from utils.cards import fetch_card_status, fetch_student_cards, load_cards_index, update_card_status, user_tags
from utils.daily import DAY_SECONDS
from utils.due import status_panel_counts
from utils.schedule import INVALID_TRANSITION, NEW_STATUSES, next_transition, rating_times, status_label
from utils.selection import InvalidSettingError, NoCardsAvailableError, parse_max_new_cards, pick_next_card
from utils.streak import current_streak
from utils.students import (
    check_and_update_streak,
    get_num_new_cards_today,
    get_streak_times,
    increment_num_new_cards_today,
)
from utils.tags import filter_student_cards_by_tags, parse_tag_filter, sort_tags_alphabetically

logger = logging.getLogger(__name__)

router = APIRouter()
base_dir = Path(__file__).resolve().parent.parent
templates = Jinja2Templates(directory=str(base_dir / "templates"))

CURRENT_CARD_COOKIE = "current_card_id"


def get_review_ahead_days(request: Request) -> int:
    try:
        return int(request.cookies.get("review_ahead_days", "0"))
    except ValueError:
        return 0


def get_review_ahead_seconds(request: Request) -> int:
    return get_review_ahead_days(request) * DAY_SECONDS


def get_max_new_cards_setting(request: Request) -> str:
    """Per-browser cap from the cookie, falling back to the configured default."""
    value = request.cookies.get("max_new_cards_per_day")
    if value:
        return value
    return str(get_config_value("study", "max_new_cards_per_day", "20"))


def get_tag_filter(request: Request) -> Set[str]:
    return parse_tag_filter(request.cookies.get("tag_filter", ""))


def _streak_context(conn, user_id: str, now: int) -> dict:
    start, end = get_streak_times(conn, user_id)
    count, emoji = current_streak(start, end, now)
    return {"streak_count": count, "streak_emoji": emoji}


def build_settings_context(request: Request, conn, user_id: str, show_cancel: bool) -> dict:
    cards = fetch_student_cards(conn, user_id)
    index = load_cards_index(conn)
    return {
        "current_days": request.cookies.get("review_ahead_days", "0"),
        "current_max": get_max_new_cards_setting(request),
        "current_tag_filter": request.cookies.get("tag_filter", ""),
        "user_tags": user_tags(cards, index, user_id),
        "show_cancel": show_cancel,
    }


def build_card_context(
    request: Request,
    conn,
    user_id: str,
    now: int,
    card_id: Optional[str] = None,
) -> dict:
    """Context for the card partial: the requested card, or the next one picked for the user."""
    student_cards = fetch_student_cards(conn, user_id)
    if not student_cards:
        raise NoCardsAvailableError("no cards assigned")
    index = load_cards_index(conn)
    by_id = {card.card_id: card for card in student_cards}

    if card_id is not None and card_id not in by_id:
        logger.info("Card %s is not assigned to %s, picking another", card_id, user_id)
        card_id = None
    if card_id is None:
        card_id, _ = pick_next_card(
            get_review_ahead_seconds(request),
            student_cards,
            get_num_new_cards_today(conn, user_id, now),
            get_max_new_cards_setting(request),
            index,
            get_tag_filter(request),
            now=now,
        )
        conn.commit()

    student_card = by_id[card_id]
    flashcard = index.get(card_id)
    if flashcard is None:
        raise HTTPException(status_code=404, detail="Card not found")

    context = {
        "card_id": card_id,
        "front": flashcard.front,
        "back": flashcard.back,
        "tags": sort_tags_alphabetically(flashcard.tags),
        "card_status": status_label(student_card.status),
        "rating_times": rating_times(student_card.status),
        "is_owner": flashcard.created_by == user_id,
    }
    context.update(_streak_context(conn, user_id, now))
    return context


def render_empty(request: Request, conn, user_id: str, now: int) -> HTMLResponse:
    context = build_settings_context(request, conn, user_id, show_cancel=False)
    context.update(_streak_context(conn, user_id, now))
    response = templates.TemplateResponse(request, "partials/empty.html", context)
    response.delete_cookie(CURRENT_CARD_COOKIE)
    return response


def render_card(request: Request, conn, user_id: str, now: int, card_id: Optional[str] = None):
    try:
        context = build_card_context(request, conn, user_id, now, card_id)
    except NoCardsAvailableError:
        return render_empty(request, conn, user_id, now)
    except InvalidSettingError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    response = templates.TemplateResponse(request, "partials/card.html", context)
    set_cookie(response, CURRENT_CARD_COOKIE, context["card_id"])
    return response


def _update_streak_quietly(conn, user_id: str, now: int) -> None:
    try:
        check_and_update_streak(conn, user_id, now)
    except (sqlite3.Error, LookupError):
        logger.exception("Failed to update streak for %s", user_id)


@router.get("/", response_class=HTMLResponse)
async def home(request: Request):
    user_id = get_current_user_id(request)
    if not user_id:
        return RedirectResponse(url="/login", status_code=status.HTTP_303_SEE_OTHER)
    return templates.TemplateResponse(request, "index.html", {"user_id": user_id})


@router.get("/flashcard/front", response_class=HTMLResponse)
async def flashcard_front(request: Request, user_id: str = Depends(require_user), conn = Depends(get_db)):
    """HTMX endpoint for the current (or next) card."""
    now = int(time.time())
    current_card_id = request.cookies.get(CURRENT_CARD_COOKIE)
    if current_card_id:
        return render_card(request, conn, user_id, now, card_id=current_card_id)
    _update_streak_quietly(conn, user_id, now)
    return render_card(request, conn, user_id, now)


@router.post("/flashcard/answer", response_class=HTMLResponse)
async def flashcard_answer(
    request: Request,
    card_id: str = Form(...),
    rating: str = Form(...),
    user_id: str = Depends(require_user),
    conn = Depends(get_db),
):
    """Apply a rating to a card, then return the next card partial."""
    try:
        rating_value = int(rating)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid rating")

    current_status = fetch_card_status(conn, user_id, card_id)
    if current_status is None:
        raise HTTPException(status_code=404, detail="Card not found")

    next_status, delay = next_transition(current_status, rating_value)
    if (next_status, delay) == INVALID_TRANSITION:
        raise HTTPException(status_code=400, detail="Invalid transition")

    now = int(time.time())
    update_card_status(conn, user_id, card_id, next_status, now + delay)
    conn.commit()

    if current_status in NEW_STATUSES:
        try:
            increment_num_new_cards_today(conn, user_id, now)
            conn.commit()
        except (sqlite3.Error, LookupError):
            logger.exception("Failed to increment new card count for %s", user_id)
    _update_streak_quietly(conn, user_id, now)

    return render_card(request, conn, user_id, now)


@router.get("/flashcard/status", response_class=HTMLResponse)
async def flashcard_status(request: Request, conn = Depends(get_db)):
    user_id = get_current_user_id(request)
    if not user_id:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    now = int(time.time())
    try:
        max_new = parse_max_new_cards(get_max_new_cards_setting(request))
    except InvalidSettingError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    cards = filter_student_cards_by_tags(
        fetch_student_cards(conn, user_id),
        load_cards_index(conn),
        get_tag_filter(request),
    )
    try:
        num_new_today = get_num_new_cards_today(conn, user_id, now)
    except LookupError as exc:
        logger.warning("Status panel skipped: %s", exc)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    conn.commit()
    counts = status_panel_counts(cards, now + get_review_ahead_seconds(request), num_new_today, max_new)
    return templates.TemplateResponse(
        request,
        "partials/status_panel.html",
        {"counts": counts, "card_status": request.query_params.get("current", "")},
    )


@router.post("/flashcard/review-ahead")
async def review_ahead(
    tag_filter: str = Form(""),
    days: str = Form(""),
    new_max: str = Form(""),
    user_id: str = Depends(require_user),
):
    """Store the study settings as session cookies; the client follows HX-Redirect."""
    response = Response(status_code=status.HTTP_204_NO_CONTENT, headers={"HX-Redirect": "/"})
    response.delete_cookie(CURRENT_CARD_COOKIE)
    set_cookie(response, "tag_filter", tag_filter)
    if days.strip().isdigit():
        set_cookie(response, "review_ahead_days", str(int(days)))
    if new_max.strip().isdigit():
        set_cookie(response, "max_new_cards_per_day", str(int(new_max)))
    logger.debug("Study settings for %s: days=%r max=%r tags=%r", user_id, days, new_max, tag_filter)
    return response


@router.get("/settings", response_class=HTMLResponse)
async def settings_page(request: Request, conn = Depends(get_db)):
    user_id = get_current_user_id(request)
    if not user_id:
        return RedirectResponse(url="/login", status_code=status.HTTP_303_SEE_OTHER)
    context = build_settings_context(request, conn, user_id, show_cancel=True)
    return templates.TemplateResponse(request, "settings.html", context)


@router.get("/goto")
async def goto_card(request: Request, card_id: str = ""):
    card_id = card_id or request.cookies.get(CURRENT_CARD_COOKIE, "")
    response = RedirectResponse(url="/", status_code=status.HTTP_303_SEE_OTHER)
    if card_id:
        set_cookie(response, CURRENT_CARD_COOKIE, card_id)
    return response
