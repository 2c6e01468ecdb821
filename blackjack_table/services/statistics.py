"""
Player statistics derived from stored game results.

Nothing is stored separately: stats are folded from the repository's
results on demand. Every settled hand counts as one game played, so a split
contributes two.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from blackjack_table.services.game_repository import GameRepository
from blackjack_table.services.payouts import GAME_TYPE, GameResult, HandResult
from blackjack_table.services.scoring import Result
from blackjack_table.utils import utc_now

logger = logging.getLogger(__name__)

DEFAULT_PLAYERS_PER_PAGE = 10
LEADERBOARD_RESULTS_LIMIT = 100


@dataclass
class PlayerStatistics:
    """Aggregated results of one player."""
    player_id: str
    game_type: str = GAME_TYPE
    games_played: int = 0
    wins: int = 0
    losses: int = 0
    pushes: int = 0
    blackjacks: int = 0
    busts: int = 0
    splits: int = 0
    double_downs: int = 0
    insurances: int = 0
    total_bet: int = 0
    total_winnings: int = 0
    last_updated: Optional[datetime] = None

    @property
    def net_profit(self) -> int:
        return self.total_winnings - self.total_bet

    @property
    def win_rate(self) -> float:
        """Percentage of hands won, blackjacks included."""
        if self.games_played == 0:
            return 0.0
        return self.wins / self.games_played * 100.0

    def record(self, hand: HandResult, completed_at: Optional[datetime] = None) -> None:
        self.games_played += 1
        if hand.result.is_win:
            self.wins += 1
        elif hand.result is Result.PUSH:
            self.pushes += 1
        else:
            self.losses += 1

        if hand.result is Result.BLACKJACK:
            self.blackjacks += 1
        if hand.is_bust:
            self.busts += 1
        if hand.is_split and hand.parent_hand_id is None:
            self.splits += 1
        if hand.is_doubled_down:
            self.double_downs += 1
        if hand.has_insurance:
            self.insurances += 1

        self.total_bet += hand.total_bet
        self.total_winnings += hand.total_payout
        if completed_at and (self.last_updated is None or completed_at > self.last_updated):
            self.last_updated = completed_at

    @classmethod
    def from_results(cls, player_id: str, results: Iterable[GameResult]) -> "PlayerStatistics":
        stats = cls(player_id=player_id)
        for game in results:
            for hand in game.hands:
                if hand.player_id == player_id:
                    stats.record(hand, game.completed_at)
        return stats


@dataclass
class PlayerRank:
    stats: PlayerStatistics
    rank: int = 0
    profit_rate: float = 0.0
    is_top_winner: bool = False
    is_top_player: bool = False


@dataclass
class Leaderboard:
    players: List[PlayerRank] = field(default_factory=list)
    total_players: int = 0
    current_page: int = 1
    total_pages: int = 0
    players_per_page: int = DEFAULT_PLAYERS_PER_PAGE
    last_updated: datetime = field(default_factory=utc_now)


def build_leaderboard(
    results: Iterable[GameResult],
    page: int = 1,
    players_per_page: int = DEFAULT_PLAYERS_PER_PAGE,
) -> Leaderboard:
    """Rank players by total winnings and return one page."""
    page = max(page, 1)
    if players_per_page < 1:
        players_per_page = DEFAULT_PLAYERS_PER_PAGE

    by_player: Dict[str, PlayerStatistics] = {}
    for game in results:
        for hand in game.hands:
            stats = by_player.setdefault(hand.player_id, PlayerStatistics(player_id=hand.player_id))
            stats.record(hand, game.completed_at)

    ranks = [
        PlayerRank(
            stats=stats,
            profit_rate=stats.total_winnings / stats.total_bet if stats.total_bet else 0.0,
        )
        for stats in by_player.values()
        if stats.games_played > 0
    ]
    ranks.sort(key=lambda r: r.stats.total_winnings, reverse=True)

    if ranks:
        ranks[0].is_top_winner = True
        max(ranks, key=lambda r: r.stats.games_played).is_top_player = True
    for position, entry in enumerate(ranks, start=1):
        entry.rank = position

    total = len(ranks)
    total_pages = (total + players_per_page - 1) // players_per_page
    if total_pages and page > total_pages:
        page = total_pages
    start = (page - 1) * players_per_page

    return Leaderboard(
        players=ranks[start:start + players_per_page],
        total_players=total,
        current_page=page,
        total_pages=total_pages,
        players_per_page=players_per_page,
    )


class StatisticsService:
    """Read-side statistics over a ``GameRepository``."""

    def __init__(self, repository: GameRepository):
        self.repository = repository

    async def get_player_statistics(self, player_id: str) -> PlayerStatistics:
        results = await self.repository.get_player_results(player_id)
        stats = PlayerStatistics.from_results(player_id, results)
        logger.debug(f"Statistics for {player_id}: {stats.games_played} hands, net {stats.net_profit}")
        return stats

    async def get_channel_leaderboard(
        self,
        channel_id: str,
        page: int = 1,
        players_per_page: int = DEFAULT_PLAYERS_PER_PAGE,
        limit: int = LEADERBOARD_RESULTS_LIMIT,
    ) -> Leaderboard:
        results = await self.repository.get_channel_results(channel_id, limit)
        return build_leaderboard(results, page, players_per_page)
