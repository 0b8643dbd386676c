from pydantic import BaseModel, Field


class StudentCard(BaseModel):
    card_id: str
    status: int = Field(0, ge=0, le=6)
    due: int = 0

    class Config:
        from_attributes = True
        frozen = True
