from pydantic import BaseModel, validator
from typing import List, Optional


class FlashcardCreate(BaseModel):
    front: str
    back: str
    tags: List[str] = []

    @validator('front', 'back')
    def validate_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("Card sides cannot be empty")
        return v.strip()


class Flashcard(BaseModel):
    id: str
    front: str = ""
    back: str = ""
    created_by: Optional[str] = None
    tags: List[str] = []

    class Config:
        from_attributes = True


class CardSide(BaseModel):
    type: str = "rich_text"
    content: str = ""


class SeedCard(BaseModel):
    """One entry of an official cards JSON file."""
    id: str
    default: bool = False
    front: CardSide
    back: CardSide
    tags: List[str] = []
