from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv
import os
import logging
from pathlib import Path

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

logger = logging.getLogger(__name__)

class Database:
    client: AsyncIOMotorClient = None
    db = None

    async def connect(self):
        try:
            mongo_url = os.environ.get('MONGO_URL', 'mongodb://localhost:27017')
            db_name = os.environ.get('DB_NAME', 'workfolio')
            self.client = AsyncIOMotorClient(mongo_url)
            self.db = self.client[db_name]
            # Verify connection
            await self.db.command("ping")
            logger.info(f"Connected to MongoDB: {db_name}")

            await self._create_indexes()
        except Exception as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise

    async def close(self):
        if self.client:
            self.client.close()
            logger.info("MongoDB connection closed")

    def get_db(self):
        return self.db

    async def _create_indexes(self):
        """Create MongoDB indexes for efficient queries."""
        try:
            # Users
            await self.db.users.create_index("user_id", unique=True)
            await self.db.users.create_index("email", unique=True)

            # Portfolios - exactly one current document per owner
            await self.db.portfolios.create_index("portfolio_id", unique=True)
            await self.db.portfolios.create_index("owner_id", unique=True)
            await self.db.portfolios.create_index([("owner_id", 1), ("updated_at", -1)])

            # Legacy relational rows (read-only fallback for public rendering)
            await self.db.portfolio_experiences.create_index([("portfolio_id", 1), ("order", 1)])
            await self.db.portfolio_projects.create_index([("portfolio_id", 1), ("order", 1)])
            await self.db.portfolio_skills.create_index([("portfolio_id", 1), ("order", 1)])

            # Audit log indexes - for timeline queries
            await self.db.audit_logs.create_index([("actor_id", 1), ("timestamp", -1)])
            await self.db.audit_logs.create_index([("resource_type", 1), ("resource_id", 1)])
            await self.db.audit_logs.create_index("action")
            logger.info("MongoDB indexes created/verified")
        except Exception as e:
            # Indexes may already exist, log but don't fail
            logger.warning(f"Index creation note: {e}")


database = Database()
