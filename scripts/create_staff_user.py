"""
Script to create or promote a staff user
Prints a bearer token for trying the admin API locally
"""

import sys
import asyncio
import uuid
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.database import database, connect_db, disconnect_db, utcnow
from app.auth import create_access_token

ROLES = ("staff", "admin")


async def create_staff_user(email: str, first_name: str, last_name: str, role: str = "staff"):
    """
    Create a staff user, or promote an existing user by email

    Args:
        email: User email
        first_name: First name
        last_name: Last name
        role: 'staff' or 'admin'
    """
    await connect_db()

    try:
        existing = await database.fetch_one(
            "SELECT id, role FROM users WHERE email = :email",
            {"email": email}
        )

        if existing:
            user_id = str(existing["id"])
            await database.execute(
                "UPDATE users SET role = :role, updated_at = :now WHERE id = :id",
                {"role": role, "now": utcnow(), "id": user_id}
            )
            print(f"Promoted {email} from {existing['role']} to {role}")
        else:
            user_id = str(uuid.uuid4())
            await database.execute(
                """
                INSERT INTO users (id, email, first_name, last_name, role, created_at, updated_at)
                VALUES (:id, :email, :first_name, :last_name, :role, :now, :now)
                """,
                {
                    "id": user_id,
                    "email": email,
                    "first_name": first_name,
                    "last_name": last_name,
                    "role": role,
                    "now": utcnow(),
                }
            )
            print(f"Created {role} user {email}")

        print(f"   User ID: {user_id}")
        print(f"   Token:   {create_access_token({'user_id': user_id})}")

    finally:
        await disconnect_db()


async def main():
    print("\n" + "=" * 60)
    print("CREATE STAFF USER")
    print("=" * 60 + "\n")

    email = input("Enter email: ").strip()
    first_name = input("Enter first name: ").strip()
    last_name = input("Enter last name: ").strip()
    role = input("Role (staff/admin) [staff]: ").strip().lower() or "staff"

    if role not in ROLES:
        print(f"Role must be one of: {', '.join(ROLES)}")
        return

    print()
    await create_staff_user(email, first_name, last_name, role)
    print()


if __name__ == "__main__":
    asyncio.run(main())
