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
            mongo_url = os.environ['MONGO_URL']
            self.client = AsyncIOMotorClient(mongo_url)
            self.db = self.client[os.environ['DB_NAME']]
            # Verify connection
            await self.db.command("ping")
            logger.info(f"Connected to MongoDB: {os.environ['DB_NAME']}")

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
        """Create MongoDB indexes for order lookups."""
        # order_id uniqueness backs insert-unique; never swallow a failure here
        await self.db.orders.create_index("order_id", unique=True)
        try:
            await self.db.orders.create_index([("created_at", -1)])
            await self.db.orders.create_index("paid")
            await self.db.orders.create_index("payment_session_id", sparse=True)
            logger.info("MongoDB indexes created/verified")
        except Exception as e:
            # Secondary indexes may already exist with different options
            logger.warning(f"Index creation note: {e}")

# Global database instance
database = Database()

