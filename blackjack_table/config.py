import os
from dataclasses import dataclass, field
from dotenv import load_dotenv

load_dotenv()


def _get_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Конфигурация стола из переменных окружения."""

    # Database
    database_url: str = field(
        default_factory=lambda: os.getenv(
            "DATABASE_URL", "sqlite+aiosqlite:///./data/blackjack.db"
        )
    )

    # Logging
    log_level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper()
    )
    log_dir: str = field(default_factory=lambda: os.getenv("LOG_DIR", "logs"))

    # Table rules
    shoe_decks: int = field(default_factory=lambda: _get_int("BLACKJACK_DECKS", 6))
    reshuffle_threshold: int = field(
        default_factory=lambda: _get_int("BLACKJACK_RESHUFFLE_THRESHOLD", 75)
    )
    max_players: int = field(
        default_factory=lambda: _get_int("BLACKJACK_MAX_PLAYERS", 7)
    )
    # Split / double down / insurance round after the deal
    special_bets_enabled: bool = field(
        default_factory=lambda: _get_bool("BLACKJACK_SPECIAL_BETS", False)
    )

    # Wallet
    starting_balance: int = field(
        default_factory=lambda: _get_int("WALLET_STARTING_BALANCE", 100)
    )
    loan_increment: int = field(
        default_factory=lambda: _get_int("WALLET_LOAN_INCREMENT", 100)
    )


settings = Settings()
