import asyncio
from datetime import datetime
from typing import Dict, List
import logging
import os

from motor.motor_asyncio import AsyncIOMotorClient

from repairhub.config import settings
from repairhub.utils.avatar import pick_avatar
from repairhub.utils.security import hash_password

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

class UserSeeder:
    def __init__(self):
        self.client = AsyncIOMotorClient(settings.MONGODB_URI)
        self.db = self.client.get_database(settings.MONGODB_NAME)

    def _get_default_users(self) -> List[Dict]:
        """Demo accounts, one per role. Change the password outside local setups."""
        default_password = os.environ.get("SEED_PASSWORD", "P@ssw0rd123")
        hashed_password = hash_password(default_password)
        now = datetime.utcnow()

        return [
            {
                "email": "admin@repairhub.local",
                "username": "admin",
                "role": "admin",
                "password": hashed_password,
                "createdAt": now,
                "updatedAt": now,
            },
            {
                "email": "tech@repairhub.local",
                "username": "tech",
                "role": "technician",
                "password": hashed_password,
                "phone": "555-0100",
                "skills": ["Phones", "Laptops"],
                "createdAt": now,
                "updatedAt": now,
            },
            {
                "email": "customer@repairhub.local",
                "username": "customer",
                "role": "customer",
                "password": hashed_password,
                "createdAt": now,
                "updatedAt": now,
            },
        ]

    async def _user_exists(self, email: str) -> bool:
        return await self.db.users.find_one({"email": email}) is not None

    async def seed_users(self):
        for user in self._get_default_users():
            if await self._user_exists(user["email"]):
                logger.warning(f"User {user['email']} already exists, skipping")
                continue
            user["avatarUrl"] = (await pick_avatar(user["username"]))["avatarUrl"]
            await self.db.users.insert_one(user)
            logger.info(f"Created user: {user['email']} ({user['role']})")

    async def backfill_avatars(self):
        """Give every account created before avatars existed one now"""
        missing = {"$or": [{"avatarUrl": {"$exists": False}}, {"avatarUrl": None}, {"avatarUrl": ""}]}
        updated = 0
        async for user in self.db.users.find(missing, {"username": 1}):
            avatar = await pick_avatar(user.get("username") or "User")
            await self.db.users.update_one(
                {"_id": user["_id"]},
                {"$set": {"avatarUrl": avatar["avatarUrl"], "updatedAt": datetime.utcnow()}}
            )
            updated += 1
        logger.info(f"Backfilled avatars for {updated} users")

    async def run(self):
        try:
            await self.seed_users()
            await self.backfill_avatars()
            logger.info("Seeding completed successfully")
        except Exception as e:
            logger.error(f"Error during seeding: {str(e)}")
            raise
        finally:
            self.client.close()

async def main():
    seeder = UserSeeder()
    await seeder.run()

if __name__ == "__main__":
    asyncio.run(main())
