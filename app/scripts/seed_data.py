# scripts/seed_data.py
import asyncio
import logging
from app.core.db import init_db, close_db
from app.models.customer import Address, DeliveryPerson, User
from app.models.order import Restaurant, MenuItem

log = logging.getLogger("seed_data")


async def seed():
    user, _ = await User.get_or_create(email="demo@foodontracks.dev", defaults={"name": "Demo Customer"})
    address, _ = await Address.get_or_create(
        user=user,
        address_line1="221B Baker Street",
        defaults={"city": "Springfield", "state": "IL", "zip_code": "62701", "is_default": True},
    )
    courier, _ = await DeliveryPerson.get_or_create(
        phone_number="+15550000001", defaults={"name": "Demo Courier", "vehicle_type": "bike"}
    )
    log.info("User: %s, address: %s, courier: %s", user.id, address.id, courier.id)

    # Create one restaurant
    rest, _ = await Restaurant.get_or_create(name="Demo Restaurant", defaults={"city": "Springfield"})
    log.info("Restaurant: %s", rest.id)

    # Create menu items with their starting stock
    seeds = [
        ("Paneer Wrap", "149.00", "wraps", 10, 50),
        ("Chili Paneer Rice", "199.00", "mains", 20, 30),
        ("Cold Drink", "49.00", "drinks", 1, 100),
    ]
    for name, price, category, prep, stock in seeds:
        item, _ = await MenuItem.get_or_create(
            restaurant=rest,
            name=name,
            defaults={"price": price, "category": category, "preparation_time": prep, "stock": stock},
        )
        # Reset stock on re-runs so the demo starts from known levels (idempotent)
        await MenuItem.filter(id=item.id).update(stock=stock)
        log.info("Menu item %s: %s (stock %s)", item.id, name, stock)

    log.info("Seed complete.")


async def main():
    # don't generate schemas on production databases; safe for local dev
    await init_db(generate_schemas=True)
    try:
        await seed()
    finally:
        await close_db()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    asyncio.run(main())
