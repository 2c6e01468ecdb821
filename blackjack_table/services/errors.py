"""Errors raised by the blackjack table engine."""


class BlackjackError(Exception):
    """Base class for engine errors."""


class GameNotStartedError(BlackjackError):
    def __init__(self, message: str = "game not started"):
        super().__init__(message)


class GameInProgressError(BlackjackError):
    def __init__(self, message: str = "game already in progress"):
        super().__init__(message)


class PlayerNotFoundError(BlackjackError):
    def __init__(self, player_id: str):
        self.player_id = player_id
        super().__init__(f"player not found: {player_id}")


class InvalidActionError(BlackjackError):
    def __init__(self, message: str = "invalid action for current game state"):
        super().__init__(message)


class NotPlayerTurnError(BlackjackError):
    def __init__(self, player_id: str):
        self.player_id = player_id
        super().__init__(f"not player's turn: {player_id}")


class NoBetFoundError(BlackjackError):
    def __init__(self, player_id: str):
        self.player_id = player_id
        super().__init__(f"no bet found for player {player_id}")


class MaxPlayersReachedError(BlackjackError):
    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"maximum number of players reached ({limit})")


class NoPlayersError(BlackjackError):
    def __init__(self, message: str = "no players in game"):
        super().__init__(message)


class NotAllBetsPlacedError(BlackjackError):
    def __init__(self, message: str = "not all players have placed bets"):
        super().__init__(message)


class PlayerAlreadyBetError(BlackjackError):
    def __init__(self, player_id: str):
        self.player_id = player_id
        super().__init__(f"player already placed a bet: {player_id}")


class InvalidBetError(BlackjackError):
    def __init__(self, amount: int):
        self.amount = amount
        super().__init__(f"invalid bet amount: {amount}")


class NotEligibleForDoubleDownError(BlackjackError):
    def __init__(self, message: str = "not eligible for double down"):
        super().__init__(message)


class NotEligibleForSplitError(BlackjackError):
    def __init__(self, message: str = "not eligible for split"):
        super().__init__(message)


class NotEligibleForInsuranceError(BlackjackError):
    def __init__(self, message: str = "not eligible for insurance"):
        super().__init__(message)


class DeckStorageError(BlackjackError):
    """Loading or saving the channel's shoe failed."""


class ResultStorageError(BlackjackError):
    """Saving the finished game snapshot failed."""


class HandError(BlackjackError):
    """A hand rejected a mutation."""


class HandBustError(HandError):
    def __init__(self, message: str = "hand is bust"):
        super().__init__(message)


class HandStandError(HandError):
    def __init__(self, message: str = "hand is stand"):
        super().__init__(message)


class InvalidCardError(HandError):
    def __init__(self, message: str = "invalid card"):
        super().__init__(message)
