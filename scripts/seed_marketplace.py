"""Seed sellers (with payout accounts), a buyer, an admin and a product catalogue.

Goes through the user and product services, so every record also emits its
domain event. Safe to re-run: users are matched by email and only missing
ones are created.
"""

import asyncio
import os
import random
import sys

# Path setup so shared models + apps resolve
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, ROOT)

from shared.errors import DuplicateError  # noqa: E402
from shared.models.user import User, UserRole  # noqa: E402
from apps.order_service.config import ServiceConfig  # noqa: E402
from apps.order_service.db import init_db  # noqa: E402
from apps.order_service.kafka.producer import get_kafka_producer  # noqa: E402
from apps.order_service.services.product import ProductService  # noqa: E402
from apps.order_service.services.user import UserService  # noqa: E402

random.seed(42)

# ================================================================
# Accounts
# ================================================================

SELLERS = [
    {
        "name": "Ahmad Wijaya",
        "email": "ahmad.wijaya@tokoelektronik.com",
        "phone": "081234567890",
        "store_name": "Toko Elektronik Jaya",
        "bank": ("Bank Central Asia (BCA)", "1234567890"),
        "category": "electronics",
    },
    {
        "name": "Siti Nurhaliza",
        "email": "siti.nurhaliza@fashionstore.com",
        "phone": "081234567891",
        "store_name": "Fashion Store Central",
        "bank": ("Bank Mandiri", "2345678901"),
        "category": "fashion",
    },
    {
        "name": "Budi Santoso",
        "email": "budi.santoso@gadgetcorner.com",
        "phone": "081234567892",
        "store_name": "Gadget Corner",
        "bank": ("Bank Rakyat Indonesia (BRI)", "3456789012"),
        "category": "electronics",
    },
    {
        "name": "Maya Sari",
        "email": "maya.sari@styleboutique.com",
        "phone": "081234567893",
        "store_name": "Style Boutique",
        "bank": None,
        "category": "fashion",
    },
]

OTHER_USERS = [
    {"name": "Rina Pembeli", "email": "rina@example.com", "phone": "081298765432", "role": UserRole.BUYER},
    {"name": "Admin Marketplace", "email": "admin@marketplace.co.id", "phone": None, "role": UserRole.ADMIN},
]

# ================================================================
# Catalogue
# ================================================================

CATALOGUE = {
    "electronics": {
        "names": [
            "Speaker Bluetooth Mini",
            "Earbuds Nirkabel",
            "Power Bank 10000mAh",
            "Lampu Meja LED",
            "Keyboard Mekanik",
        ],
        "price_range": (50000, 750000),
        "variants": ["Hitam", "Putih"],
    },
    "fashion": {
        "names": [
            "Kaos Katun Polos",
            "Jaket Denim",
            "Sepatu Lari",
            "Tas Selempang Kulit",
            "Hijab Voal",
        ],
        "price_range": (35000, 450000),
        "variants": ["S", "M", "L", "XL"],
    },
}


def _price(low: int, high: int) -> int:
    # Round to the nearest 500 like real listings
    return random.randint(low // 500, high // 500) * 500


def generate_products(category: str) -> list[dict]:
    cfg = CATALOGUE[category]
    products = []
    for name in cfg["names"]:
        price = _price(*cfg["price_range"])
        variants = []
        if random.random() < 0.5:
            variants = [
                {"name": v, "price": price, "stock": random.randint(0, 40)}
                for v in cfg["variants"]
            ]
        products.append({
            "name": name,
            "price": price,
            "stock": 0 if variants else random.randint(5, 100),
            "category": category,
            "images": [f"https://picsum.photos/seed/{name.replace(' ', '-').lower()}/600"],
            "variants": variants,
        })
    return products


async def get_or_create_user(users: UserService, **fields) -> tuple[User, bool]:
    try:
        return await users.create_user(**fields), True
    except DuplicateError:
        return await User.find_one({"email": fields["email"].lower().strip()}), False


# ================================================================
# Entry point
# ================================================================

async def seed(users: UserService, products: ProductService) -> int:
    """Create the accounts and catalogue that are missing. Returns products created."""
    for entry in OTHER_USERS:
        user, created = await get_or_create_user(users, **entry)
        print(f"{user.role.value:<6} {user.email} {'created' if created else 'exists'}")

    total_products = 0
    for entry in SELLERS:
        seller, created = await get_or_create_user(
            users,
            name=entry["name"],
            email=entry["email"],
            phone=entry["phone"],
            role=UserRole.SELLER,
            store_name=entry["store_name"],
        )
        if not created:
            print(f"seller {seller.email} exists, skipping catalogue")
            continue
        if entry["bank"]:
            bank_name, account_number = entry["bank"]
            await users.set_bank_info(str(seller.id), bank_name, account_number, entry["name"])

        listings = generate_products(entry["category"])
        for listing in listings:
            await products.create_product(
                str(seller.id),
                description=f"{listing['name']} dari {seller.store_name}",
                **listing,
            )
        total_products += len(listings)
        print(f"seller {seller.email} created with {len(listings)} products"
              f"{'' if entry['bank'] else ' (no bank account)'}")
    return total_products


async def main():
    await init_db(ServiceConfig.from_env())
    producer = get_kafka_producer()

    total_products = await seed(UserService(producer), ProductService(producer))

    producer.flush()
    print(f"\nDone. {total_products} products created.")


if __name__ == "__main__":
    asyncio.run(main())
