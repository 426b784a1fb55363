"""
Core engine: connection lifecycle and wiring.
"""

from .connection import ConnectionManager
from .engine import ShopkeeperEngine

__all__ = [
    "ConnectionManager",
    "ShopkeeperEngine",
]
