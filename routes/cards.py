import logging
import time
from pathlib import Path
from typing import List
from urllib.parse import quote

from fastapi import APIRouter, Depends, Form, HTTPException, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError

from db.database import get_db
from models.card import Flashcard, FlashcardCreate
from utils.auth import require_user
from utils.cards import (
    assign_card_to_student,
    fetch_flashcard,
    fetch_student_cards,
    generate_card_id,
    insert_flashcard,
    load_cards_index,
    unlink_card,
    update_flashcard,
)
from utils.schedule import status_text
from utils.tags import parse_tag_names, set_card_tags, sort_tags_alphabetically

logger = logging.getLogger(__name__)

router = APIRouter()
base_dir = Path(__file__).resolve().parent.parent
templates = Jinja2Templates(directory=str(base_dir / "templates"))

BROWSE_PAGE_SIZE = 25


def _validation_message(exc: ValidationError) -> str:
    return "; ".join(error["msg"] for error in exc.errors())


def get_owned_card(conn, card_id: str, user_id: str) -> Flashcard:
    card = fetch_flashcard(conn, card_id)
    if card is None:
        raise HTTPException(status_code=404, detail="Card not found")
    if card.created_by != user_id:
        raise HTTPException(status_code=403, detail="Forbidden")
    return card


def build_previews(conn, user_id: str, query: str) -> List[dict]:
    """Browse rows for the user's cards, filtered by a case-insensitive substring query."""
    index = load_cards_index(conn)
    query = query.strip().lower()
    previews = []
    for student_card in fetch_student_cards(conn, user_id):
        card = index.get(student_card.card_id)
        if card is None:
            continue
        preview = {
            "id": student_card.card_id,
            "front": card.front,
            "back": card.back,
            "is_owner": card.created_by == user_id,
            "tags": sort_tags_alphabetically(card.tags),
            "status": student_card.status,
            "status_text": status_text(student_card.status),
        }
        if query and not (
            query in preview["id"].lower()
            or query in preview["front"].lower()
            or query in preview["back"].lower()
            or any(query in tag for tag in preview["tags"])
            or query in preview["status_text"]
        ):
            continue
        previews.append(preview)
    return previews


@router.get("/create", response_class=HTMLResponse)
async def create_card_form(request: Request, user_id: str = Depends(require_user)):
    return templates.TemplateResponse(
        request,
        "cards/create.html",
        {"error": None, "front": "", "back": "", "tags": "", "created_id": None},
    )


@router.post("/create", response_class=HTMLResponse)
async def create_card(
    request: Request,
    front: str = Form(""),
    back: str = Form(""),
    tags: str = Form(""),
    user_id: str = Depends(require_user),
    conn = Depends(get_db),
):
    """Create a card owned by the user and add it to their study set."""
    try:
        payload = FlashcardCreate(front=front, back=back, tags=parse_tag_names(tags))
    except ValidationError as exc:
        return templates.TemplateResponse(
            request,
            "cards/create.html",
            {
                "error": _validation_message(exc),
                "front": front,
                "back": back,
                "tags": tags,
                "created_id": None,
            },
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    card_id = generate_card_id(conn, user_id)
    insert_flashcard(conn, card_id, payload.front, payload.back, user_id)
    assign_card_to_student(conn, user_id, card_id, due=int(time.time()))
    set_card_tags(conn, card_id, payload.tags)
    conn.commit()
    logger.info("User %s created card %s", user_id, card_id)
    return templates.TemplateResponse(
        request,
        "cards/create.html",
        {"error": None, "front": "", "back": "", "tags": "", "created_id": card_id},
    )


@router.get("/edit", response_class=HTMLResponse)
async def edit_card_form(
    request: Request,
    card_id: str,
    user_id: str = Depends(require_user),
    conn = Depends(get_db),
):
    card = get_owned_card(conn, card_id, user_id)
    return templates.TemplateResponse(
        request,
        "cards/edit.html",
        {"card": card, "tags": ", ".join(sort_tags_alphabetically(card.tags)), "error": None},
    )


@router.post("/edit", response_class=HTMLResponse)
async def edit_card(
    request: Request,
    card_id: str = Form(...),
    front: str = Form(""),
    back: str = Form(""),
    tags: str = Form(""),
    user_id: str = Depends(require_user),
    conn = Depends(get_db),
):
    card = get_owned_card(conn, card_id, user_id)
    try:
        payload = FlashcardCreate(front=front, back=back, tags=parse_tag_names(tags))
    except ValidationError as exc:
        return templates.TemplateResponse(
            request,
            "cards/edit.html",
            {"card": card, "tags": tags, "error": _validation_message(exc)},
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    update_flashcard(conn, card_id, payload.front, payload.back)
    set_card_tags(conn, card_id, payload.tags)
    conn.commit()
    return RedirectResponse(url=f"/edit?card_id={quote(card_id, safe='')}", status_code=status.HTTP_303_SEE_OTHER)


@router.get("/browse", response_class=HTMLResponse)
async def browse(
    request: Request,
    query: str = "",
    offset: int = 0,
    user_id: str = Depends(require_user),
    conn = Depends(get_db),
):
    """List the user's cards 25 at a time; HTMX requests get just the next rows."""
    previews = build_previews(conn, user_id, query)
    offset = max(offset, 0)
    end = min(offset + BROWSE_PAGE_SIZE, len(previews))
    context = {
        "flashcards": previews[offset:end],
        "query": query.strip().lower(),
        "has_more": end < len(previews),
        "next_offset": end,
    }
    template_name = "partials/browse_more.html" if request.headers.get("HX-Request") else "cards/browse.html"
    return templates.TemplateResponse(request, template_name, context)


@router.post("/unlink")
async def unlink(
    card_id: str = Form(...),
    user_id: str = Depends(require_user),
    conn = Depends(get_db),
):
    """Remove a card from the user's study set; the card itself is kept."""
    if not unlink_card(conn, user_id, card_id):
        raise HTTPException(status_code=404, detail="Card not found")
    conn.commit()
    logger.info("User %s unlinked card %s", user_id, card_id)
    return RedirectResponse(url="/browse", status_code=status.HTTP_303_SEE_OTHER)
