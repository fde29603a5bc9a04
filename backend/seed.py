"""Seed script for the Karigar backend.

Creates baseline data for local development:
- 1 admin user
- 3 verified providers with profiles and a few services each
- 2 customers

Idempotent: users and services that already exist are skipped.
Run with: python seed.py

Passwords are read from SEED_ADMIN_PASSWORD / SEED_USER_PASSWORD with
dev-only fallbacks.
"""

import asyncio
import os
import sys
from decimal import Decimal

from app.config import settings

if settings.APP_ENV == "production":
    print("ERROR: Cannot seed production database.")
    sys.exit(1)

from sqlalchemy import select

from app.auth.service import hash_password
from app.database import async_session
from app.models.enums import PriceType, ServiceCategory, UserRole
from app.models.provider_profile import ProviderProfile
from app.models.service import Service
from app.models.user import User


SEED_ADMIN_PASSWORD = os.environ.get("SEED_ADMIN_PASSWORD", "Admin1234")
SEED_USER_PASSWORD = os.environ.get("SEED_USER_PASSWORD", "Test1234")

SEED_USERS = [
    {"email": "admin@karigar.in", "name": "Karigar Admin", "role": UserRole.ADMIN, "phone": "+919800000000", "city": "Mumbai"},
    {"email": "ramesh@karigar.in", "name": "Ramesh Kumar", "role": UserRole.PROVIDER, "phone": "+919800000001", "city": "Mumbai"},
    {"email": "sunita@karigar.in", "name": "Sunita Sharma", "role": UserRole.PROVIDER, "phone": "+919800000002", "city": "Mumbai"},
    {"email": "arjun@karigar.in", "name": "Arjun Patel", "role": UserRole.PROVIDER, "phone": "+919800000003", "city": "Pune"},
    {"email": "priya@karigar.in", "name": "Priya Nair", "role": UserRole.CUSTOMER, "phone": "+919800000004", "city": "Mumbai"},
    {"email": "vikram@karigar.in", "name": "Vikram Singh", "role": UserRole.CUSTOMER, "phone": "+919800000005", "city": "Mumbai"},
]

PROVIDER_PROFILES = {
    "ramesh@karigar.in": {
        "business_name": "Ramesh Plumbing Works",
        "bio": "Leak repairs, fittings and bathroom installations.",
        "years_experience": 12,
        "service_areas": ["Andheri", "Bandra", "Juhu"],
        "availability": {"monday": "09:00-18:00", "saturday": "10:00-14:00"},
    },
    "sunita@karigar.in": {
        "business_name": "Sparkle Home Cleaning",
        "bio": "Deep cleaning for homes and offices.",
        "years_experience": 6,
        "service_areas": ["Powai", "Ghatkopar"],
        "availability": {"tuesday": "08:00-17:00", "thursday": "08:00-17:00"},
    },
    "arjun@karigar.in": {
        "business_name": "Patel Electricals",
        "bio": "Wiring, appliance installation and fault finding.",
        "years_experience": 9,
        "service_areas": ["Thane", "Mulund"],
        "availability": {"wednesday": "10:00-19:00", "friday": "10:00-19:00"},
    },
}

SEED_SERVICES = [
    ("ramesh@karigar.in", "Tap and leak repair", ServiceCategory.PLUMBER, "499", PriceType.FIXED),
    ("ramesh@karigar.in", "Bathroom fitting installation", ServiceCategory.PLUMBER, "350", PriceType.HOURLY),
    ("sunita@karigar.in", "Full home deep cleaning", ServiceCategory.CLEANER, "3500", PriceType.FIXED),
    ("sunita@karigar.in", "Sofa and carpet shampoo", ServiceCategory.CLEANER, "12", PriceType.SQFT),
    ("arjun@karigar.in", "Ceiling fan installation", ServiceCategory.ELECTRICIAN, "299", PriceType.FIXED),
    ("arjun@karigar.in", "House rewiring", ServiceCategory.ELECTRICIAN, "45", PriceType.SQFT),
]


async def seed() -> None:
    async with async_session() as db:
        user_map: dict[str, User] = {}

        for user_data in SEED_USERS:
            result = await db.execute(select(User).where(User.email == user_data["email"]))
            existing = result.scalar_one_or_none()
            if existing:
                print(f"  [skip] User {user_data['email']} already exists")
                user_map[user_data["email"]] = existing
                continue

            password = SEED_ADMIN_PASSWORD if user_data["role"] == UserRole.ADMIN else SEED_USER_PASSWORD
            user = User(
                email=user_data["email"],
                password_hash=hash_password(password),
                role=user_data["role"],
                name=user_data["name"],
                phone=user_data["phone"],
                address=f"{user_data['city']}, Maharashtra",
                city=user_data["city"],
                is_verified=True,
            )
            db.add(user)
            await db.flush()
            user_map[user_data["email"]] = user
            print(f"  [created] User {user_data['email']} ({user_data['role'].value})")

        for email, profile_data in PROVIDER_PROFILES.items():
            user = user_map[email]
            result = await db.execute(select(ProviderProfile).where(ProviderProfile.user_id == user.id))
            if result.scalar_one_or_none():
                print(f"  [skip] Profile for {email} already exists")
                continue
            db.add(ProviderProfile(user_id=user.id, is_verified=True, **profile_data))
            await db.flush()
            print(f"  [created] ProviderProfile for {email}")

        for email, title, category, price, price_type in SEED_SERVICES:
            provider = user_map[email]
            result = await db.execute(
                select(Service.id).where(Service.provider_id == provider.id, Service.title == title)
            )
            if result.scalar_one_or_none():
                continue
            db.add(Service(
                provider_id=provider.id,
                title=title,
                description=f"{title} by {provider.name}",
                category=category,
                price=Decimal(price),
                price_type=price_type,
                location="Mumbai",
            ))
            print(f"  [created] Service '{title}' for {email}")

        await db.commit()
        print("\nSeed completed successfully.")


if __name__ == "__main__":
    print("Seeding Karigar database...")
    asyncio.run(seed())
