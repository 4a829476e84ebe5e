from __future__ import annotations

from decimal import Decimal

from litestar import Controller, Request, Response, get, post
from sqlalchemy.ext.asyncio import AsyncSession

from fanview.controllers.helpers import read_json, serialize_transaction, serialize_wallet
from fanview.controllers.schemas import TopUpRequest
from fanview.db.models.user import User
from fanview.db.services import wallet_service
from fanview.lib.exceptions import ValidationError
from fanview.lib.responses import envelope

RECENT_TRANSACTIONS = 10
MAX_PAGE_SIZE = 100


class WalletController(Controller):
    path = "/api/wallet"

    @get("/")
    async def show(self, db_session: AsyncSession, current_user: User) -> Response:
        wallet = await wallet_service.get_or_create_wallet(db_session, current_user.id)
        transactions = await wallet_service.list_transactions(db_session, current_user.id, limit=RECENT_TRANSACTIONS)
        return envelope(
            "Wallet retrieved",
            {
                "wallet": serialize_wallet(wallet),
                "transactions": [serialize_transaction(t) for t in transactions],
            },
        )

    @post("/topup")
    async def top_up(self, request: Request, db_session: AsyncSession, current_user: User) -> Response:
        billing = request.app.state.settings.billing
        payload = await read_json(request, TopUpRequest)
        if not Decimal(str(billing.min_topup)) <= payload.amount <= Decimal(str(billing.max_topup)):
            raise ValidationError(
                f"Amount must be between ${billing.min_topup:g} and ${billing.max_topup:g}",
                errors=[{"field": "amount", "message": "out of range"}],
            )

        wallet, transaction = await wallet_service.top_up(
            db_session, current_user.id, payload.amount, payload.paypal_transaction_id
        )
        return envelope(
            "Wallet topped up successfully",
            {"wallet": serialize_wallet(wallet), "transaction": serialize_transaction(transaction)},
        )

    @get("/transactions")
    async def transactions(
        self,
        db_session: AsyncSession,
        current_user: User,
        page: int = 1,
        limit: int = 20,
    ) -> Response:
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        offset = (page - 1) * limit
        items = await wallet_service.list_transactions(db_session, current_user.id, limit=limit, offset=offset)
        total = await wallet_service.count_transactions(db_session, current_user.id)
        return envelope(
            "Transactions retrieved",
            {
                "transactions": [serialize_transaction(t) for t in items],
                "pagination": {
                    "page": page,
                    "limit": limit,
                    "total": total,
                    "hasMore": offset + len(items) < total,
                },
            },
        )
