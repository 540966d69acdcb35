"""
Run this script once against a fresh database to seed the level table, the
store catalogue, a starter reward package and a few demo players.
Usage:
    set DATABASE_URL=postgresql://...
    python seed_remote.py
"""
import os

if not os.environ.get("DATABASE_URL"):
    raise SystemExit("ERROR: DATABASE_URL environment variable is not set.")

from sqlalchemy import select

from game_economy.cache import UserViewCache
from game_economy.config import settings
from game_economy.database import SessionLocal, engine, unit_of_work
from game_economy.dependencies import build_services
from game_economy.models import Base, LevelConfig, RewardItemType, StoreItem
from game_economy.services.users import create_user

LEVELS = [
    # level, required_exp, coin, diamond, discount %
    (1,     0,    0,   0, 100),
    (2,   200,   50,   5,  98),
    (3,   500,  100,  10,  95),
    (4,  1000,  200,  20,  92),
    (5,  2000,  500,  50,  90),
    (6,  4000, 1000, 100,  85),
]

STORE_ITEMS = [
    # name, price, stock, cost type, tag
    ("Health Potion",   50, 10000, "coin",    "good"),
    ("Iron Sword",     300,   500, "coin",    "good"),
    ("Dragon Shield",   80,   100, "diamond", "good"),
    ("Rose Bouquet",    20,  5000, "coin",    "gift"),
    ("Golden Crown",   150,    50, "diamond", "gift"),
]

PLAYERS = [
    ("alice",   "alice@example.com"),
    ("bob",     "bob@example.com"),
    ("charlie", "charlie@example.com"),
]

print("Creating tables...")
Base.metadata.create_all(bind=engine)

services = build_services(UserViewCache.from_settings(settings))

with unit_of_work(SessionLocal) as db:
    # Skip if already seeded
    if db.execute(select(LevelConfig.id)).first():
        print("Database already seeded. Skipping.")
        raise SystemExit(0)

    print("Seeding level configs...")
    db.add_all([
        LevelConfig(
            level=level,
            required_exp=required,
            coin_reward=coin,
            diamond_reward=diamond,
            discount_percent=discount,
            description=f"Level {level}",
        )
        for level, required, coin, diamond, discount in LEVELS
    ])

    print("Seeding store items...")
    items = [
        StoreItem(name=name, price=price, stock=stock, cost_type=cost_type, tag=tag)
        for name, price, stock, cost_type, tag in STORE_ITEMS
    ]
    db.add_all(items)
    db.flush()

    print("Seeding starter reward package...")
    services.rewards.create_package(
        db,
        "Starter Pack",
        [
            {"item_type": RewardItemType.GOODS, "item_id": items[0].id, "quantity": 5},
            {"item_type": RewardItemType.CURRENCY, "item_id": 1, "quantity": 500},
            {"item_type": RewardItemType.CURRENCY, "item_id": 0, "quantity": 20},
        ],
        description="Granted to every new player",
    )

    print("Seeding players...")
    for username, email in PLAYERS:
        user = create_user(db, username, email, services.wallet)
        print(f"  {username} -> uid {user.uid}")

services.cache.close()
print("Seed complete.")
