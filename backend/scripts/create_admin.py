"""Create an admin user in the Karigar database, or promote an existing one.

Usage:
    python scripts/create_admin.py admin@karigar.in password123 ["Full Name"]
"""

import asyncio
import sys

from sqlalchemy import select

from app.auth.service import hash_password
from app.database import async_session
from app.models.enums import UserRole
from app.models.user import User


async def create_admin(email: str, password: str, name: str = "Administrator") -> None:
    """Create an admin with the given credentials; an existing account is promoted."""
    async with async_session() as db:
        result = await db.execute(select(User).where(User.email == email))
        existing = result.scalar_one_or_none()
        if existing:
            if existing.role == UserRole.ADMIN:
                print(f"User '{email}' is already an admin.")
                return
            existing.role = UserRole.ADMIN
            await db.commit()
            print(f"User '{email}' promoted to admin (id={existing.id})")
            return

        user = User(
            email=email,
            password_hash=hash_password(password),
            role=UserRole.ADMIN,
            name=name,
            is_verified=True,
        )
        db.add(user)
        await db.commit()

        print(f"Admin user created successfully: {email} (id={user.id})")


def main() -> None:
    if len(sys.argv) not in (3, 4):
        print('Usage: python scripts/create_admin.py <email> <password> ["Full Name"]')
        sys.exit(1)

    email, password = sys.argv[1], sys.argv[2]
    name = sys.argv[3] if len(sys.argv) == 4 else "Administrator"
    asyncio.run(create_admin(email, password, name))


if __name__ == "__main__":
    main()
