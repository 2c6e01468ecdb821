"""Multiplayer blackjack table engine."""

__version__ = "1.0.0"
__status__ = "production"

from .config import settings
from .services.blackjack import Game, TableRules
from .services.phase import GamePhase

__all__ = ["Game", "GamePhase", "TableRules", "settings", "__version__"]
