from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fanview.db.models.wallet import Wallet, WalletTransaction

TYPE_TOPUP = "topup"


async def get_or_create_wallet(db_session: AsyncSession, user_id: UUID) -> Wallet:
    result = await db_session.execute(select(Wallet).where(Wallet.user_id == user_id))
    wallet = result.scalar_one_or_none()
    if wallet is not None:
        return wallet

    wallet = Wallet(user_id=user_id, balance=Decimal("0"))
    db_session.add(wallet)
    try:
        await db_session.commit()
    except IntegrityError:
        # Created concurrently by another request
        await db_session.rollback()
        result = await db_session.execute(select(Wallet).where(Wallet.user_id == user_id))
        return result.scalar_one()
    await db_session.refresh(wallet)
    return wallet


async def list_transactions(
    db_session: AsyncSession,
    user_id: UUID,
    limit: int = 20,
    offset: int = 0,
) -> list[WalletTransaction]:
    result = await db_session.execute(
        select(WalletTransaction)
        .where(WalletTransaction.user_id == user_id)
        .order_by(WalletTransaction.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all())


async def count_transactions(db_session: AsyncSession, user_id: UUID) -> int:
    total = await db_session.scalar(
        select(func.count()).select_from(WalletTransaction).where(WalletTransaction.user_id == user_id)
    )
    return total or 0


async def top_up(
    db_session: AsyncSession,
    user_id: UUID,
    amount: Decimal,
    paypal_transaction_id: str,
) -> tuple[Wallet, WalletTransaction]:
    """Credit the wallet and record a completed top-up transaction."""
    wallet = await get_or_create_wallet(db_session, user_id)

    await db_session.execute(
        update(Wallet)
        .where(Wallet.id == wallet.id)
        .values(balance=Wallet.balance + amount)
        .execution_options(synchronize_session=False)
    )
    transaction = WalletTransaction(
        user_id=user_id,
        type=TYPE_TOPUP,
        amount=amount,
        description="PayPal Top-up",
        paypal_transaction_id=paypal_transaction_id,
        status="completed",
    )
    db_session.add(transaction)
    await db_session.commit()
    await db_session.refresh(wallet)
    await db_session.refresh(transaction)
    return wallet, transaction
