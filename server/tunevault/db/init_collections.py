#!/usr/bin/env python3
"""
MongoDB Collection Initialization Script
Creates collections and indexes for the catalog, seeds sample data and
promotes administrators
"""

import os
import json
from pymongo import ASCENDING, DESCENDING
from datetime import datetime, timezone
import logging
from typing import Dict, List, Optional
from .connection import get_database
from jsonschema import validate, ValidationError

# Configure logging
logger = logging.getLogger(__name__)

# =============================================================================
# DATA STRUCTURE CONFIGURATION
# =============================================================================

SCHEMAS_DIR = os.path.join(os.path.dirname(__file__), 'schemas')

# Load JSON Schemas
def load_json_schema(collection_name: str) -> Dict:
    """Load JSON schema for a collection from the schemas directory"""
    collection_to_schema_file = {
        'users': 'user.json',
        'genres': 'genre.json',
        'moods': 'mood.json',
        'artists': 'artist.json',
        'albums': 'album.json',
        'tracks': 'track.json',
        'playlists': 'playlist.json',
        'favorites': 'favorite.json',
        'play_history': 'play_history.json',
    }

    schema_file = collection_to_schema_file.get(collection_name)
    if not schema_file:
        logger.warning(f"No schema mapping found for collection: {collection_name}")
        return {}

    schema_path = os.path.join(SCHEMAS_DIR, schema_file)
    try:
        with open(schema_path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except FileNotFoundError:
        logger.warning(f"Schema file not found: {schema_path}")
        return {}
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in schema file {schema_path}: {e}")
        return {}

# Collection Schema Definitions
COLLECTIONS_CONFIG = {
    "users": {
        "indexes": [
            {"fields": "id", "unique": True},
            {"fields": "email", "unique": True},
            {"fields": "role", "unique": False},
        ],
    },
    "genres": {
        "indexes": [
            {"fields": "id", "unique": True},
            {"fields": "name", "unique": True},
        ],
    },
    "moods": {
        "indexes": [
            {"fields": "id", "unique": True},
            {"fields": "name", "unique": True},
        ],
    },
    "artists": {
        "indexes": [
            {"fields": "id", "unique": True},
            {"fields": "name", "unique": False},
            {"fields": "genres", "unique": False},
            {"fields": "followers", "unique": False},
            {"fields": "is_verified", "unique": False},
        ],
    },
    "albums": {
        "indexes": [
            {"fields": "id", "unique": True},
            {"fields": "title", "unique": False},
            {"fields": "artist", "unique": False},
            {"fields": "genres", "unique": False},
            {"fields": [("release_date", DESCENDING)], "unique": False},
        ],
    },
    "tracks": {
        "indexes": [
            {"fields": "id", "unique": True},
            {"fields": "title", "unique": False},
            {"fields": "artist", "unique": False},
            {"fields": "album", "unique": False},
            {"fields": "genres", "unique": False},
            {"fields": "moods", "unique": False},
        ],
    },
    "playlists": {
        "indexes": [
            {"fields": "id", "unique": True},
            {"fields": "user", "unique": False},
            {"fields": "is_public", "unique": False},
            {"fields": "is_featured", "unique": False},
        ],
    },
    "favorites": {
        "indexes": [
            {"fields": "id", "unique": True},
            {"fields": [("user", ASCENDING), ("track", ASCENDING)], "unique": True},
            {"fields": "track", "unique": False},
        ],
    },
    "play_history": {
        "indexes": [
            {"fields": "id", "unique": True},
            {"fields": [("user", ASCENDING), ("played_at", DESCENDING)], "unique": False},
            {"fields": "track", "unique": False},
            {"fields": [("user", ASCENDING), ("track", ASCENDING)], "unique": False},
        ],
    },
}

# Load all schemas
JSON_SCHEMAS = {name: load_json_schema(name) for name in COLLECTIONS_CONFIG}

SEED_TIMESTAMP = "2024-01-01T00:00:00+00:00"

# Sample Data Templates
SAMPLE_DATA_TEMPLATES = {
    "genres": [
        {"id": "650000000000000000000001", "name": "Lo-fi", "description": "Laid-back beats",
         "color": "#6366f1", "is_active": True, "created_at": SEED_TIMESTAMP, "updated_at": SEED_TIMESTAMP},
        {"id": "650000000000000000000002", "name": "Jazz", "description": "Swing, bop and beyond",
         "color": "#f59e0b", "is_active": True, "created_at": SEED_TIMESTAMP, "updated_at": SEED_TIMESTAMP},
    ],
    "moods": [
        {"id": "650000000000000000000101", "name": "Chill", "description": "Slow down",
         "color": "#10b981", "icon": "🌙", "is_active": True, "created_at": SEED_TIMESTAMP, "updated_at": SEED_TIMESTAMP},
        {"id": "650000000000000000000102", "name": "Focus", "description": "Heads down",
         "color": "#3b82f6", "icon": "🎯", "is_active": True, "created_at": SEED_TIMESTAMP, "updated_at": SEED_TIMESTAMP},
    ],
    "artists": [
        {
            "id": "650000000000000000000201",
            "name": "Night Owls",
            "bio": "Late night tape loops",
            "image_url": "",
            "genres": ["650000000000000000000001"],
            "albums": ["650000000000000000000301"],
            "tracks": ["650000000000000000000401", "650000000000000000000402"],
            "followers": [],
            "monthly_listeners": 1200,
            "is_verified": True,
            "is_active": True,
            "created_at": SEED_TIMESTAMP,
            "updated_at": SEED_TIMESTAMP,
        }
    ],
    "albums": [
        {
            "id": "650000000000000000000301",
            "title": "Rainy Windows",
            "artist": "650000000000000000000201",
            "genres": ["650000000000000000000001"],
            "release_date": "2023-11-03",
            "cover_url": "",
            "description": "Recorded on a four-track",
            "tracks": ["650000000000000000000401", "650000000000000000000402"],
            "total_duration": 372,
            "is_active": True,
            "created_at": SEED_TIMESTAMP,
            "updated_at": SEED_TIMESTAMP,
        }
    ],
    "tracks": [
        {
            "id": "650000000000000000000401",
            "title": "Drizzle",
            "artist": "650000000000000000000201",
            "album": "650000000000000000000301",
            "genres": ["650000000000000000000001"],
            "moods": ["650000000000000000000101"],
            "duration": 181,
            "file_url": "https://example.com/tracks/drizzle.mp3",
            "cover_url": "",
            "lyrics": "",
            "play_count": 0,
            "is_active": True,
            "created_at": SEED_TIMESTAMP,
            "updated_at": SEED_TIMESTAMP,
        },
        {
            "id": "650000000000000000000402",
            "title": "Fogged Glass",
            "artist": "650000000000000000000201",
            "album": "650000000000000000000301",
            "genres": ["650000000000000000000001"],
            "moods": ["650000000000000000000101", "650000000000000000000102"],
            "duration": 191,
            "file_url": "https://example.com/tracks/fogged_glass.mp3",
            "cover_url": "",
            "lyrics": "",
            "play_count": 0,
            "is_active": True,
            "created_at": SEED_TIMESTAMP,
            "updated_at": SEED_TIMESTAMP,
        },
    ],
}

# =============================================================================
# VALIDATION FUNCTIONS
# =============================================================================

def validate_document(collection_name: str, document: Dict) -> bool:
    """
    Validate a document against its JSON schema

    Args:
        collection_name: Name of the collection
        document: Document to validate

    Returns:
        bool: True if valid, False otherwise
    """
    schema = JSON_SCHEMAS.get(collection_name)
    if not schema:
        logger.warning(f"No schema found for collection: {collection_name}")
        return True  # Skip validation if no schema

    try:
        validate(instance=document, schema=schema)
        return True
    except ValidationError as e:
        logger.error(f"Validation error for {collection_name}: {e.message}")
        return False

def validate_sample_data() -> bool:
    """Validate all sample data against their schemas"""
    logger.info("🔍 Validating sample data against JSON schemas...")

    for collection_name, sample_data in SAMPLE_DATA_TEMPLATES.items():
        for i, document in enumerate(sample_data):
            if not validate_document(collection_name, document):
                logger.error(f"Sample data validation failed for {collection_name}[{i}]")
                return False

        logger.info(f"✅ Sample data validation passed for {collection_name}")

    return True

# =============================================================================
# INITIALIZATION FUNCTIONS
# =============================================================================

def init_mongodb(drop_existing: bool = False, insert_samples: bool = True, db=None):
    """
    Initialize MongoDB collections and indexes

    Args:
        drop_existing: Whether to drop existing collections
        insert_samples: Whether to insert sample data
        db: Database to initialize, the configured one by default
    """
    try:
        if db is None:
            db = get_database()

        logger.info("🗄️  Initializing MongoDB collections...")

        if drop_existing:
            for collection_name in COLLECTIONS_CONFIG.keys():
                db[collection_name].drop()
                logger.info(f"🗑️  Dropped collection: {collection_name}")

        create_collections_and_indexes(db)

        if insert_samples:
            if not validate_sample_data():
                logger.error("❌ Sample data validation failed. Aborting initialization.")
                return False
            insert_sample_data(db)

        verify_setup(db)
        return True

    except Exception as e:
        logger.error(f"❌ Error initializing MongoDB: {e}")
        raise

def create_collections_and_indexes(db):
    """Create collections and their indexes based on configuration"""

    for collection_name, config in COLLECTIONS_CONFIG.items():
        collection = db[collection_name]

        logger.info(f"📁 Setting up collection: {collection_name}")

        for index_config in config["indexes"]:
            fields = index_config["fields"]
            unique = index_config.get("unique", False)

            collection.create_index(fields, unique=unique)

            index_name = fields if isinstance(fields, str) else str(fields)
            logger.debug(f"  ✅ Index created: {index_name}")

        schema_fields = list(JSON_SCHEMAS.get(collection_name, {}).get("properties", {}).keys())
        logger.debug(f"  📋 Schema fields: {schema_fields}")

def insert_sample_data(db):
    """Insert sample data based on templates"""

    for collection_name, sample_data in SAMPLE_DATA_TEMPLATES.items():
        collection = db[collection_name]

        # Only insert if collection is empty
        if collection.count_documents({}) == 0:
            collection.insert_many([dict(document) for document in sample_data])
            logger.info(f"✅ Sample data inserted into {collection_name}: {len(sample_data)} documents")
        else:
            logger.info(f"⏭️  Skipping sample data for {collection_name} (not empty)")

def verify_setup(db):
    """Verify that collections were created properly"""
    collections = db.list_collection_names()

    logger.info("🔍 Verification Results:")

    for collection_name in COLLECTIONS_CONFIG.keys():
        if collection_name in collections:
            count = db[collection_name].count_documents({})
            logger.info(f"  ✅ {collection_name}: {count} documents")
        else:
            logger.warning(f"  ⚠️  {collection_name}: no documents yet")

def promote_user(email: str, role: str = "admin", db=None) -> Optional[Dict]:
    """Set the role of the user registered with the given email"""
    if db is None:
        db = get_database()

    result = db.users.update_one(
        {"email": email.lower()},
        {"$set": {"role": role, "updated_at": datetime.now(timezone.utc).isoformat()}}
    )
    if result.matched_count == 0:
        logger.error(f"❌ No user registered with email: {email}")
        return None

    logger.info(f"👑 {email} is now {role}")
    return db.users.find_one({"email": email.lower()}, {"_id": 0, "password_hash": 0})

def list_indexes(collection_name: str) -> List[str]:
    return [
        fields if isinstance(fields, str) else ",".join(name for name, _ in fields)
        for fields in (index["fields"] for index in COLLECTIONS_CONFIG[collection_name]["indexes"])
    ]

# =============================================================================
# MAIN EXECUTION
# =============================================================================

if __name__ == "__main__":
    import argparse

    logging.basicConfig(level=logging.INFO)

    parser = argparse.ArgumentParser(description="Initialize MongoDB collections")
    parser.add_argument("--drop", action="store_true", help="Drop existing collections")
    parser.add_argument("--no-samples", action="store_true", help="Skip sample data insertion")
    parser.add_argument("--list-config", action="store_true", help="List current configuration")
    parser.add_argument("--promote", metavar="EMAIL", help="Grant the admin role to a registered user")

    args = parser.parse_args()

    if args.list_config:
        print("📋 Current Configuration:")
        for name in COLLECTIONS_CONFIG:
            print(f"\n🗂️  Collection: {name}")
            print(f"   Schema: {list(JSON_SCHEMAS.get(name, {}).get('properties', {}).keys())}")
            print(f"   Indexes: {list_indexes(name)}")
            if name in SAMPLE_DATA_TEMPLATES:
                print(f"   Sample Data: {len(SAMPLE_DATA_TEMPLATES[name])} documents")
    elif args.promote:
        promote_user(args.promote)
    else:
        init_mongodb(
            drop_existing=args.drop,
            insert_samples=not args.no_samples
        )
