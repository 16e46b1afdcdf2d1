"""
MongoDB access for the booking API.

The client is process-wide state: `init_db()` opens it once at startup and
`close_db()` releases the connection pool at shutdown. Collection names are
the lowercased schema class names (User -> "user", TalentProfile ->
"talentprofile").
"""
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Union

from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

import config

logger = logging.getLogger(__name__)

_client: Optional[MongoClient] = None
_db: Optional[Database] = None
_transactions = config.DATABASE_TRANSACTIONS


class DatabaseUnavailable(RuntimeError):
    pass


def init_db(client: Optional[MongoClient] = None, name: Optional[str] = None,
            transactions: Optional[bool] = None) -> Optional[Database]:
    global _client, _db, _transactions
    if client is None:
        if not (config.DATABASE_URL and config.DATABASE_NAME):
            logger.warning("DATABASE_URL / DATABASE_NAME not set, database disabled")
            return None
        client = MongoClient(config.DATABASE_URL)
    _client = client
    _db = client[name or config.DATABASE_NAME or "bokt"]
    if transactions is not None:
        _transactions = transactions
    ensure_indexes(_db)
    logger.info("Connected to database %s (transactions %s)", _db.name, "on" if _transactions else "off")
    return _db


def close_db() -> None:
    global _client, _db
    if _client is not None:
        _client.close()
    _client = None
    _db = None


def get_db() -> Database:
    if _db is None:
        raise DatabaseUnavailable("Database not available. Check DATABASE_URL and DATABASE_NAME.")
    return _db


def ensure_indexes(db: Database) -> None:
    db["user"].create_index("email", unique=True)
    db["talentprofile"].create_index("user_id", unique=True)
    db["photo"].create_index([("profile_id", ASCENDING), ("created_at", ASCENDING)])
    db["booking"].create_index([("profile_id", ASCENDING), ("start_at", ASCENDING)])
    db["savedtalent"].create_index([("brand_id", ASCENDING), ("profile_id", ASCENDING)], unique=True)


@contextmanager
def transaction() -> Iterator[Any]:
    """Unit of work for writes spanning several documents.

    Yields the session every write inside the block must pass along. The
    transaction commits when the block exits cleanly and aborts on any
    exception. With transactions disabled the session is None and each
    statement stands alone.
    """
    get_db()
    if not _transactions:
        yield None
        return
    with _client.start_session() as session:
        with session.start_transaction():
            yield session


def _stamp(data: Union[BaseModel, dict]) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = data.copy()
    now = datetime.now(timezone.utc)
    if not data_dict.get("created_at"):
        data_dict["created_at"] = now
    data_dict["updated_at"] = now
    return data_dict


def create_document(collection_name: str, data: Union[BaseModel, dict], session=None) -> str:
    """Insert a single document, stamping created_at/updated_at."""
    result = get_db()[collection_name].insert_one(_stamp(data), session=session)
    return str(result.inserted_id)


def create_documents(collection_name: str, items: List[Union[BaseModel, dict]], session=None) -> List[str]:
    if not items:
        return []
    result = get_db()[collection_name].insert_many([_stamp(i) for i in items], ordered=True, session=session)
    return [str(i) for i in result.inserted_ids]

