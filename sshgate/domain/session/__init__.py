"""
User session tracking
"""
from .models import Session
from .registry import SessionRegistry

__all__ = [
    "Session",
    "SessionRegistry",
]
