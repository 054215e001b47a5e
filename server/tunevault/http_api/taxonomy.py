"""
Genres and moods

Both are flat, uniquely named labels with the same lifecycle, so they share
one set of handlers keyed by a Taxonomy description.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Dict, Type

from bson import ObjectId
from fastapi import Request, HTTPException
from pydantic import BaseModel, Field
from pymongo.errors import DuplicateKeyError

from ..db.connection import get_database
from .errors import ok, created, server_error

logger = logging.getLogger(__name__)

class GenreCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: str = Field("", max_length=200)
    color: str = "#6366f1"

class GenreUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=200)
    color: Optional[str] = None

class MoodCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: str = Field("", max_length=200)
    color: str = "#10b981"
    icon: str = "🎵"

class MoodUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=200)
    color: Optional[str] = None
    icon: Optional[str] = None

@dataclass(frozen=True)
class Taxonomy:
    collection: str
    singular: str
    plural: str
    create_model: Type[BaseModel]
    update_model: Type[BaseModel]

    @property
    def label(self) -> str:
        return self.singular.capitalize()

GENRES = Taxonomy("genres", "genre", "genres", GenreCreate, GenreUpdate)
MOODS = Taxonomy("moods", "mood", "moods", MoodCreate, MoodUpdate)

def get_db():
    return get_database()

def _find_active(db, taxonomy: Taxonomy, item_id: str) -> Optional[Dict]:
    item = db[taxonomy.collection].find_one({"id": item_id}, {"_id": 0})
    if not item or not item.get("is_active", False):
        return None
    return item

def _name_taken(db, taxonomy: Taxonomy, name: str, exclude_id: Optional[str] = None) -> bool:
    query = {"name": name}
    if exclude_id:
        query["id"] = {"$ne": exclude_id}
    return db[taxonomy.collection].find_one(query) is not None

def _duplicate(taxonomy: Taxonomy) -> HTTPException:
    return HTTPException(status_code=400, detail=f"{taxonomy.label} name already exists")

# API Endpoints
async def list_handler(request: Request, taxonomy: Taxonomy):
    try:
        db = get_db()
        items = list(db[taxonomy.collection].find({"is_active": True}, {"_id": 0}).sort([("name", 1)]))
        return ok({taxonomy.plural: items})

    except Exception as e:
        logger.error(f"Get {taxonomy.plural} error: {e}")
        raise server_error(f"Server error retrieving {taxonomy.plural}")

async def get_handler(request: Request, taxonomy: Taxonomy, item_id: str):
    try:
        item = _find_active(get_db(), taxonomy, item_id)
        if not item:
            raise HTTPException(status_code=404, detail=f"{taxonomy.label} not found")
        return ok({taxonomy.singular: item})

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get {taxonomy.singular} error: {e}")
        raise server_error(f"Server error retrieving {taxonomy.singular}")

async def create_handler(request: Request, taxonomy: Taxonomy, payload: BaseModel):
    try:
        db = get_db()
        fields = payload.model_dump()
        fields["name"] = fields["name"].strip()

        if _name_taken(db, taxonomy, fields["name"]):
            raise _duplicate(taxonomy)

        now = datetime.now(timezone.utc).isoformat()
        item = {"id": str(ObjectId()), **fields, "is_active": True, "created_at": now, "updated_at": now}
        db[taxonomy.collection].insert_one(item)
        item.pop("_id", None)

        return created({taxonomy.singular: item})

    except HTTPException:
        raise
    except DuplicateKeyError:
        raise _duplicate(taxonomy)
    except Exception as e:
        logger.error(f"Create {taxonomy.singular} error: {e}")
        raise server_error(f"Server error creating {taxonomy.singular}")

async def update_handler(request: Request, taxonomy: Taxonomy, item_id: str, payload: BaseModel):
    try:
        db = get_db()
        if not _find_active(db, taxonomy, item_id):
            raise HTTPException(status_code=404, detail=f"{taxonomy.label} not found")

        update_fields = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
        if "name" in update_fields:
            update_fields["name"] = update_fields["name"].strip()
            if _name_taken(db, taxonomy, update_fields["name"], exclude_id=item_id):
                raise _duplicate(taxonomy)
        update_fields["updated_at"] = datetime.now(timezone.utc).isoformat()

        db[taxonomy.collection].update_one({"id": item_id}, {"$set": update_fields})

        return ok({taxonomy.singular: _find_active(db, taxonomy, item_id)})

    except HTTPException:
        raise
    except DuplicateKeyError:
        raise _duplicate(taxonomy)
    except Exception as e:
        logger.error(f"Update {taxonomy.singular} error: {e}")
        raise server_error(f"Server error updating {taxonomy.singular}")

async def delete_handler(request: Request, taxonomy: Taxonomy, item_id: str):
    try:
        db = get_db()
        if not _find_active(db, taxonomy, item_id):
            raise HTTPException(status_code=404, detail=f"{taxonomy.label} not found")

        db[taxonomy.collection].update_one(
            {"id": item_id},
            {"$set": {"is_active": False, "updated_at": datetime.now(timezone.utc).isoformat()}}
        )

        return ok(message=f"{taxonomy.label} deleted successfully")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Delete {taxonomy.singular} error: {e}")
        raise server_error(f"Server error deleting {taxonomy.singular}")
