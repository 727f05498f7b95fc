import logging
from motor.motor_asyncio import AsyncIOMotorClient
from backoffice.config import settings
from backoffice.repositories.access import MongoAccessStore
from backoffice.repositories.audit import AuditRepository
from backoffice.models.audit import AuditEvent

logger = logging.getLogger(__name__)

class Database:
    client: AsyncIOMotorClient = None
    
    # Repositories
    access: MongoAccessStore = None
    audit: AuditRepository = None
    
    def connect(self):
        """Initialize database connection and repositories."""
        self.client = AsyncIOMotorClient(settings.MONGODB_URL)
        db = self.client[settings.DB_NAME]
        
        self.access = MongoAccessStore(db.access_state, settings.TENANT_ID)
        self.audit = AuditRepository(db.audit_events, AuditEvent)
        
        logger.info(f"Connected to MongoDB database {settings.DB_NAME}")
        
    def close(self):
        """Close database connection."""
        if self.client:
            self.client.close()
            self.client = None
            logger.info("Disconnected from MongoDB")

db = Database()