"""
ChocoShop - Database Seeder
=============================
Seeds users and the product catalog for local development.

Usage:
    python scripts/seed.py          # Seed (skips rows that already exist)
    python scripts/seed.py --reset  # Drop all data and reseed

Seeded:
  1. Admin user + test customer (bearer tokens printed at the end)
  2. Products with stock
"""

import sys
import os
from decimal import Decimal

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.database import Base, engine, session_scope  # noqa: E402
from common.security import create_access_token  # noqa: E402
from modules.user.models import User, UserRole  # noqa: E402
from modules.catalog.models import Product  # noqa: E402
from modules.cart.models import Cart, CartItem  # noqa: F401, E402
from modules.order.models import Order, OrderItem, OrderStatusHistory  # noqa: F401, E402
from modules.payment.models import Transaction  # noqa: F401, E402


USERS = [
    {"name": "Shop Admin", "email": "admin@chocoshop.local", "role": UserRole.ADMIN.value},
    {"name": "Test Customer", "email": "customer@chocoshop.local", "role": UserRole.USER.value},
]

PRODUCTS = [
    {
        "name": "Dark Chocolate 70%",
        "category": "bars",
        "description": "Single-origin dark chocolate bar.",
        "price": Decimal("4.50"),
        "stock": 120,
        "key_features": ["70% cocoa", "Vegan", "100g"],
    },
    {
        "name": "Milk Chocolate Hazelnut",
        "category": "bars",
        "description": "Creamy milk chocolate with roasted hazelnuts.",
        "price": Decimal("3.90"),
        "stock": 80,
        "key_features": ["Whole hazelnuts", "100g"],
    },
    {
        "name": "Truffle Assortment",
        "category": "boxes",
        "description": "Twelve hand-rolled truffles.",
        "price": Decimal("18.00"),
        "stock": 25,
        "key_features": ["12 pieces", "Gift box"],
    },
    {
        "name": "Hot Chocolate Mix",
        "category": "drinks",
        "description": "Rich cocoa powder for hot chocolate.",
        "price": Decimal("7.25"),
        "stock": 40,
        "key_features": ["250g", "Makes 10 cups"],
    },
]


def seed():
    Base.metadata.create_all(bind=engine)

    with session_scope() as db:
        print("[1/2] Users...")
        users = []
        for data in USERS:
            user = db.query(User).filter(User.email == data["email"]).first()
            if not user:
                user = User(**data)
                db.add(user)
                print(f"  + {data['email']} ({data['role']})")
            users.append(user)
        db.flush()

        print("[2/2] Products...")
        for data in PRODUCTS:
            if db.query(Product).filter(Product.name == data["name"]).first():
                continue
            db.add(Product(**data))
            print(f"  + {data['name']} x{data['stock']}")

        db.commit()

        print("\nBearer tokens:")
        for user in users:
            token = create_access_token({"sub": str(user.id)})
            print(f"  {user.email}: {token}")

    print("\nSeed complete!")


def reset_and_seed():
    print("Dropping all tables...")
    Base.metadata.drop_all(bind=engine)
    seed()


if __name__ == "__main__":
    if "--reset" in sys.argv:
        reset_and_seed()
    else:
        seed()
