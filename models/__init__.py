from .card import CardSide, Flashcard, FlashcardCreate, SeedCard
from .student_card import StudentCard
from .user import User, UserCreate

__all__ = ['CardSide', 'Flashcard', 'FlashcardCreate', 'SeedCard', 'StudentCard', 'User', 'UserCreate']
