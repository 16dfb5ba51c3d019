from pathlib import Path
import sys

from sqlalchemy import select

if __package__ is None or __package__ == "":
    sys.path.append(str(Path(__file__).resolve().parents[1]))

from campus_rewards.db.session import get_session_factory
from campus_rewards.models.reward import Reward


DEFAULT_REWARDS = (
    ("GDG T-Shirt", "Official GDG branded t-shirt", 100, 50, "Apparel"),
    ("GDG Hoodie", "Premium GDG hoodie", 250, 25, "Apparel"),
    ("Sticker Pack", "Pack of 10 assorted GDG stickers", 25, 200, "Accessories"),
    ("Water Bottle", "Insulated GDG water bottle", 75, 100, "Accessories"),
    ("Laptop Sticker", "Premium vinyl laptop sticker", 15, 300, "Accessories"),
    ("Coffee Mug", "Ceramic GDG coffee mug", 50, 75, "Accessories"),
)


def main() -> None:
    session_factory = get_session_factory()
    inserted = 0
    with session_factory() as db:
        for name, description, cost, stock, category in DEFAULT_REWARDS:
            existing = db.scalar(select(Reward).where(Reward.name == name))
            if existing:
                continue
            db.add(Reward(name=name, description=description, cost=cost, stock=stock, category=category))
            inserted += 1
        db.commit()
    print(f"Inserted rewards: {inserted}")


if __name__ == "__main__":
    main()
