from fanview.controllers.admin import AdminController
from fanview.controllers.auth import AuthController
from fanview.controllers.content import ContentController
from fanview.controllers.creators import CreatorController
from fanview.controllers.health import health
from fanview.controllers.profile import ProfileController
from fanview.controllers.subscriptions import SubscriptionController
from fanview.controllers.wallet import WalletController

ROUTE_HANDLERS = [
    health,
    AuthController,
    ProfileController,
    CreatorController,
    ContentController,
    SubscriptionController,
    WalletController,
    AdminController,
]

__all__ = ["ROUTE_HANDLERS"]
