"""
Service wiring.

Services are stateless: they hold only the shared cache handle and each
other, so one set is built at startup and shared by every request. Routers
receive it through the `get_services` dependency.
"""
from dataclasses import dataclass

from fastapi import Request

from game_economy.cache import UserViewCache
from game_economy.services.inventory import InventoryService
from game_economy.services.leveling import LevelService
from game_economy.services.rewards import RewardPackageService
from game_economy.services.store import StoreService
from game_economy.services.wallet import WalletService


@dataclass(frozen=True)
class Services:
    cache: UserViewCache
    wallet: WalletService
    level: LevelService
    inventory: InventoryService
    store: StoreService
    rewards: RewardPackageService


def build_services(cache: UserViewCache) -> Services:
    wallet = WalletService(cache)
    level = LevelService(wallet)
    inventory = InventoryService(cache)
    return Services(
        cache=cache,
        wallet=wallet,
        level=level,
        inventory=inventory,
        store=StoreService(wallet, inventory, level),
        rewards=RewardPackageService(wallet, inventory),
    )


def get_services(request: Request) -> Services:
    """FastAPI dependency: the instance built in the app lifespan."""
    return request.app.state.services
