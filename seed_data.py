from datetime import timedelta
from sqlmodel import Session, select
from thatsgoodtoo.core.clock import utcnow
from thatsgoodtoo.core.security import get_password_hash
from thatsgoodtoo.db.session import engine, create_db_and_tables
from thatsgoodtoo.models import Coupon, DiscountType, Listing, RecurrencePattern, User, UserRole

def seed_demo_data():
    print("Creating database and tables...")
    create_db_and_tables()

    with Session(engine) as session:
        # Check if users already exist to avoid duplicates
        existing_users = session.exec(select(User)).all()
        if existing_users:
            print(f"Database already contains {len(existing_users)} users. Skipping seed.")
            return

        print("Seeding demo accounts...")
        admin = User(
            name="Site Admin",
            email="admin@thatsgoodtoo.shop",
            password_hash=get_password_hash("admin12345"),
            roles=[UserRole.ADMIN.value, UserRole.SHOPPER.value],
        )
        vendor = User(
            name="Corner Bakery",
            email="bakery@example.com",
            password_hash=get_password_hash("vendor12345"),
            roles=[UserRole.SHOPPER.value, UserRole.VENDOR.value],
        )
        shopper = User(
            name="Sam Shopper",
            email="sam@example.com",
            password_hash=get_password_hash("shopper12345"),
        )
        session.add_all([admin, vendor, shopper])
        session.commit()
        session.refresh(vendor)

        listing = Listing(
            vendor_id=vendor.id,
            title="Sourdough Loaf",
            description="Naturally leavened, baked fresh every morning.",
            price=8.50,
        )
        session.add(listing)
        session.commit()
        session.refresh(listing)

        now = utcnow()
        coupons = [
            Coupon(
                vendor_id=vendor.id,
                code="BREAD20",
                discount_type=DiscountType.PERCENTAGE,
                discount_value=20,
                max_uses=50,
                start_date=now,
                end_date=now + timedelta(days=30),
                listing_id=listing.id,
                is_recurring=True,
                recurrence_pattern=RecurrencePattern.MONTHLY,
            ),
            Coupon(
                vendor_id=vendor.id,
                code="FREESHIP",
                discount_type=DiscountType.FREE_SHIPPING,
                discount_value=1,
                start_date=now,
                end_date=now + timedelta(days=7),
            ),
        ]

        for coupon in coupons:
            session.add(coupon)

        session.commit()
        print(f"Successfully seeded 3 users, 1 listing and {len(coupons)} coupons!")

if __name__ == "__main__":
    seed_demo_data()
