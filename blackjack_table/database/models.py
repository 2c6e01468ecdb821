from datetime import datetime
from typing import Optional
from sqlalchemy import BigInteger, Integer, String, DateTime, Boolean, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .session import Base
from blackjack_table.utils import utc_now


class WalletRecord(Base):
    __tablename__ = "wallets"
    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    balance: Mapped[int] = mapped_column(BigInteger, default=0)
    loan_amount: Mapped[int] = mapped_column(BigInteger, default=0)
    last_updated: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    transactions: Mapped[list["WalletTransaction"]] = relationship(
        back_populates="wallet", cascade="all, delete-orphan"
    )


class WalletTransaction(Base):
    __tablename__ = "wallet_transactions"
    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("wallets.user_id"), index=True)
    amount: Mapped[int] = mapped_column(BigInteger)  # negative for removals
    type: Mapped[str] = mapped_column(String(16), index=True)  # BET, PAYOUT, LOAN, REPAYMENT
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    balance_after: Mapped[int] = mapped_column(BigInteger)
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=utc_now, index=True)

    wallet: Mapped[WalletRecord] = relationship(back_populates="transactions")


class ChannelDeck(Base):
    __tablename__ = "decks"
    channel_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    # [{"suit": "HEARTS", "rank": "A"}, ...] in draw order
    cards: Mapped[list] = mapped_column(JSON, default=list)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)


class GameRecord(Base):
    __tablename__ = "game_results"
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    channel_id: Mapped[str] = mapped_column(String(64), index=True)
    game_type: Mapped[str] = mapped_column(String(32), default="blackjack")
    completed_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, index=True)
    dealer_cards: Mapped[list] = mapped_column(JSON, default=list)
    dealer_score: Mapped[int] = mapped_column(Integer, default=0)
    dealer_blackjack: Mapped[bool] = mapped_column(Boolean, default=False)
    dealer_bust: Mapped[bool] = mapped_column(Boolean, default=False)

    hands: Mapped[list["HandRecord"]] = relationship(
        back_populates="game", cascade="all, delete-orphan", lazy="selectin",
        order_by="HandRecord.id",
    )


class HandRecord(Base):
    __tablename__ = "player_results"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    game_id: Mapped[str] = mapped_column(ForeignKey("game_results.id"), index=True)
    player_id: Mapped[str] = mapped_column(String(64), index=True)
    hand_id: Mapped[str] = mapped_column(String(80))
    parent_hand_id: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    cards: Mapped[list] = mapped_column(JSON, default=list)
    score: Mapped[int] = mapped_column(Integer, default=0)
    result: Mapped[str] = mapped_column(String(16))
    bet: Mapped[int] = mapped_column(BigInteger, default=0)
    payout: Mapped[int] = mapped_column(BigInteger, default=0)
    is_split: Mapped[bool] = mapped_column(Boolean, default=False)
    double_down_bet: Mapped[int] = mapped_column(BigInteger, default=0)
    insurance_bet: Mapped[int] = mapped_column(BigInteger, default=0)
    insurance_payout: Mapped[int] = mapped_column(BigInteger, default=0)

    game: Mapped[GameRecord] = relationship(back_populates="hands")
