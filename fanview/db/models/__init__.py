from fanview.db.models.content import Content, ContentLike
from fanview.db.models.creator import Creator
from fanview.db.models.subscription import Subscription
from fanview.db.models.user import User
from fanview.db.models.wallet import Wallet, WalletTransaction

__all__ = [
    "Content",
    "ContentLike",
    "Creator",
    "Subscription",
    "User",
    "Wallet",
    "WalletTransaction",
]
