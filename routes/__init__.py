# Routes package __init__.py - re-exports routers for main.py convenience
from .auth import router as auth_router
from .study import router as study_router
from .cards import router as cards_router

__all__ = ['auth_router', 'study_router', 'cards_router']
