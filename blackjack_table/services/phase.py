from enum import Enum


class GamePhase(str, Enum):
    """Phase of a table game."""
    WAITING = "WAITING"
    BETTING = "BETTING"
    DEALING = "DEALING"
    SPLITTING = "SPLITTING"
    SPECIAL_BETS = "SPECIAL_BETS"
    PLAYING = "PLAYING"
    DEALER = "DEALER"
    COMPLETE = "COMPLETE"
