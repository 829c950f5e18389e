"""
Hosting environment implementations
"""
from .memory import InMemorySessionHost, MemoryHostSession

__all__ = [
    "InMemorySessionHost",
    "MemoryHostSession",
]
