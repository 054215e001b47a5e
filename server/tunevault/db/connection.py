import os
import logging
from pymongo import MongoClient
from typing import Optional, Callable, Any

# Configure logging
logger = logging.getLogger(__name__)

# MongoDB configuration from environment variables
MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017/?replicaSet=rs0")
DATABASE_NAME = os.getenv("MONGO_DATABASE", "tunevault")
MONGO_TIMEOUT_MS = int(os.getenv("MONGO_TIMEOUT_MS", "5000"))

# Multi-document transactions need a replica set; standalone servers must disable them
MONGO_TRANSACTIONS = os.getenv("MONGO_TRANSACTIONS", "true").lower() == "true"

# Process-wide client, created on first use
_client: Optional[MongoClient] = None
_database = None

def get_mongodb_client() -> MongoClient:
    """Get MongoDB client instance (singleton pattern)"""
    global _client
    if _client is None:
        logger.info(f"Connecting to MongoDB: {DATABASE_NAME}")
        _client = MongoClient(MONGO_URL, serverSelectionTimeoutMS=MONGO_TIMEOUT_MS)

        # Test the connection
        try:
            _client.admin.command('ping')
            logger.info("✅ MongoDB connection successful")
        except Exception as e:
            logger.error(f"❌ MongoDB connection failed: {e}")
            raise

    return _client

def get_database():
    """Get MongoDB database instance"""
    global _database
    if _database is None:
        client = get_mongodb_client()
        _database = client[DATABASE_NAME]
        logger.info(f"📁 Using database: {DATABASE_NAME}")

    return _database

def run_in_transaction(callback: Callable[[Any], Any]) -> Any:
    """
    Run callback(session) as a single transaction.

    With transactions disabled the callback receives session=None and its
    writes are applied one after another.
    """
    if not MONGO_TRANSACTIONS:
        return callback(None)

    client = get_mongodb_client()
    with client.start_session() as session:
        return session.with_transaction(callback)

def close_connection():
    """Close MongoDB connection"""
    global _client, _database
    if _client:
        _client.close()
        _client = None
        _database = None
        logger.info("🔌 MongoDB connection closed")
