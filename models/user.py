from pydantic import BaseModel


class UserBase(BaseModel):
    id: str
    email: str


class UserCreate(UserBase):
    password: str


class User(UserBase):
    num_new_cards_today: int = 0
    num_new_cards_today_updated_at: int = 0
    streak_start_time: int = 0
    streak_end_time: int = 0

    class Config:
        from_attributes = True
