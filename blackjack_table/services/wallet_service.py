"""
Wallet Service - single source of truth for player balances.

The table engine talks to wallets only through the ``WalletService``
protocol. ``SqlWalletService`` is the database-backed ledger: every balance
change is written together with a transaction row, and short balances are
topped up with a standard loan when a stake needs covering.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Protocol, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from blackjack_table.config import settings
from blackjack_table.database.models import WalletRecord, WalletTransaction
from blackjack_table.database.session import get_session
from blackjack_table.utils import utc_now

logger = logging.getLogger(__name__)


# Loans and repayments move in multiples of this
LOAN_STEP = 100


class WalletError(Exception):
    """Base class for wallet failures."""


class InsufficientFundsError(WalletError):
    def __init__(self, message: str = "insufficient funds"):
        super().__init__(message)


class InvalidAmountError(WalletError):
    def __init__(self, message: str = "amount must be positive"):
        super().__init__(message)


class LoanError(WalletError):
    """Loan or repayment request rejected."""


class TransactionType:
    BET = "BET"
    PAYOUT = "PAYOUT"
    LOAN = "LOAN"
    REPAYMENT = "REPAYMENT"


@dataclass
class Wallet:
    """A player's balance and outstanding loan."""
    user_id: str
    balance: int
    loan_amount: int = 0
    last_updated: Optional[datetime] = None


@dataclass
class Transaction:
    id: str
    user_id: str
    amount: int
    type: str
    description: str
    balance_after: int
    timestamp: datetime


class WalletService(Protocol):
    """Funds operations the table engine depends on."""

    async def get_or_create_wallet(self, user_id: str) -> Tuple[Wallet, bool]: ...

    async def add_funds(self, user_id: str, amount: int, description: str) -> None: ...

    async def remove_funds(self, user_id: str, amount: int, description: str) -> None: ...

    async def ensure_funds_with_loan(
        self, user_id: str, required_amount: int, loan_amount: int
    ) -> Tuple[Wallet, bool]: ...

    def get_standard_loan_increment(self) -> int: ...


def _to_wallet(record: WalletRecord) -> Wallet:
    return Wallet(
        user_id=record.user_id,
        balance=record.balance,
        loan_amount=record.loan_amount,
        last_updated=record.last_updated,
    )


class SqlWalletService:
    """Database-backed wallet ledger."""

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        starting_balance: Optional[int] = None,
        loan_increment: Optional[int] = None,
    ):
        self._session_factory = session_factory
        self.starting_balance = (
            settings.starting_balance if starting_balance is None else starting_balance
        )
        self.loan_increment = settings.loan_increment if loan_increment is None else loan_increment

    def _sessions(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory or get_session()

    async def _load(self, session: AsyncSession, user_id: str) -> Tuple[WalletRecord, bool]:
        result = await session.execute(
            select(WalletRecord).where(WalletRecord.user_id == user_id)
        )
        record = result.scalars().first()
        if record:
            return record, False

        record = WalletRecord(
            user_id=user_id,
            balance=self.starting_balance,
            loan_amount=0,
            last_updated=utc_now(),
        )
        session.add(record)
        await session.flush()
        logger.info(f"Created wallet for user {user_id} with balance {self.starting_balance}")
        return record, True

    def _record_transaction(
        self,
        session: AsyncSession,
        record: WalletRecord,
        amount: int,
        tx_type: str,
        description: str,
    ) -> None:
        session.add(WalletTransaction(
            id=str(uuid.uuid4()),
            user_id=record.user_id,
            amount=amount,
            type=tx_type,
            description=description,
            balance_after=record.balance,
            timestamp=utc_now(),
        ))

    async def get_or_create_wallet(self, user_id: str) -> Tuple[Wallet, bool]:
        async with self._sessions()() as session:
            record, created = await self._load(session, user_id)
            await session.commit()
            return _to_wallet(record), created

    async def get_balance(self, user_id: str) -> int:
        wallet, _ = await self.get_or_create_wallet(user_id)
        return wallet.balance

    async def add_funds(
        self,
        user_id: str,
        amount: int,
        description: str = "",
        tx_type: str = TransactionType.PAYOUT,
    ) -> None:
        """
        Add coins to the user's balance.

        Raises:
            InvalidAmountError: amount is not positive.
        """
        if amount <= 0:
            raise InvalidAmountError()

        async with self._sessions()() as session:
            record, _ = await self._load(session, user_id)
            record.balance += amount
            record.last_updated = utc_now()
            self._record_transaction(session, record, amount, tx_type, description)
            await session.commit()

            logger.info(f"Added {amount} to user {user_id}: {description} (new balance: {record.balance})")

    async def remove_funds(
        self,
        user_id: str,
        amount: int,
        description: str = "",
        tx_type: str = TransactionType.BET,
    ) -> None:
        """
        Deduct coins from the user's balance.

        Raises:
            InvalidAmountError: amount is not positive.
            InsufficientFundsError: balance is below amount.
        """
        if amount <= 0:
            raise InvalidAmountError()

        async with self._sessions()() as session:
            record, _ = await self._load(session, user_id)
            if record.balance < amount:
                await session.rollback()
                raise InsufficientFundsError(
                    f"insufficient funds: balance {record.balance}, need {amount}"
                )

            record.balance -= amount
            record.last_updated = utc_now()
            self._record_transaction(session, record, -amount, tx_type, description)
            await session.commit()

            logger.info(f"Deducted {amount} from user {user_id}: {description} (new balance: {record.balance})")

    async def take_loan(self, user_id: str, amount: int) -> Wallet:
        if amount <= 0:
            raise InvalidAmountError()

        async with self._sessions()() as session:
            record, _ = await self._load(session, user_id)
            record.balance += amount
            record.loan_amount += amount
            record.last_updated = utc_now()
            self._record_transaction(session, record, amount, TransactionType.LOAN, "Loan from the house")
            await session.commit()

            logger.info(f"Loaned {amount} to user {user_id} (loan total: {record.loan_amount})")
            return _to_wallet(record)

    async def ensure_funds_with_loan(
        self, user_id: str, required_amount: int, loan_amount: int
    ) -> Tuple[Wallet, bool]:
        """
        Make sure the user can cover ``required_amount``.

        When the balance is short a single loan of ``loan_amount`` is granted.

        Returns:
            (wallet after any loan, whether a loan was given)
        """
        wallet, _ = await self.get_or_create_wallet(user_id)
        if wallet.balance >= required_amount:
            return wallet, False

        wallet = await self.take_loan(user_id, loan_amount)
        return wallet, True

    def validate_loan(self, amount: int) -> None:
        if amount <= 0:
            raise InvalidAmountError()
        if amount % LOAN_STEP != 0:
            raise LoanError(f"loan amount must be in increments of {LOAN_STEP}")

    async def give_loan(self, user_id: str, amount: int) -> Wallet:
        self.validate_loan(amount)
        return await self.take_loan(user_id, amount)

    async def validate_repayment(self, user_id: str, amount: int) -> None:
        wallet, _ = await self.get_or_create_wallet(user_id)
        if wallet.loan_amount <= 0:
            raise LoanError("no loan to repay")
        if amount <= 0 or amount % LOAN_STEP != 0:
            raise LoanError(f"repayment amount must be in increments of {LOAN_STEP}")
        if wallet.balance < amount:
            raise InsufficientFundsError("insufficient funds to repay loan")
        if amount > wallet.loan_amount:
            raise LoanError(f"repayment amount exceeds loan amount of {wallet.loan_amount}")

    async def repay_loan(self, user_id: str, amount: int) -> Wallet:
        await self.validate_repayment(user_id, amount)

        async with self._sessions()() as session:
            record, _ = await self._load(session, user_id)
            record.balance -= amount
            record.loan_amount -= amount
            record.last_updated = utc_now()
            self._record_transaction(session, record, -amount, TransactionType.REPAYMENT, "Loan repayment")
            await session.commit()

            logger.info(f"User {user_id} repaid {amount} (loan left: {record.loan_amount})")
            return _to_wallet(record)

    def get_standard_loan_increment(self) -> int:
        return self.loan_increment

    async def calculate_repayment_amount(self, user_id: str) -> int:
        wallet, _ = await self.get_or_create_wallet(user_id)
        if wallet.loan_amount <= 0:
            raise LoanError("no loan to repay")
        return min(self.get_standard_loan_increment(), wallet.loan_amount)

    async def can_repay_loan(self, user_id: str) -> bool:
        wallet, _ = await self.get_or_create_wallet(user_id)
        return wallet.loan_amount > 0

    async def get_recent_transactions(self, user_id: str, limit: int = 10) -> List[Transaction]:
        async with self._sessions()() as session:
            result = await session.execute(
                select(WalletTransaction)
                .where(WalletTransaction.user_id == user_id)
                .order_by(WalletTransaction.timestamp.desc())
                .limit(limit)
            )
            return [
                Transaction(
                    id=row.id,
                    user_id=row.user_id,
                    amount=row.amount,
                    type=row.type,
                    description=row.description or "",
                    balance_after=row.balance_after,
                    timestamp=row.timestamp,
                )
                for row in result.scalars().all()
            ]
