# db/models/__init__.py
from .grant import Bando
from .client import Cliente
from .match_result import MatchResult
from .store_generation import StoreGeneration

__all__ = [
    "Bando",
    "Cliente",
    "MatchResult",
    "StoreGeneration",
]
