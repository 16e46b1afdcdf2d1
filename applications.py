"""
Model application submission.

Both transports (photo URLs uploaded by the client, or multipart files the
server uploads) end in `submit_application`: duplicate-email check, photo
uploads with placeholder substitution, then one unit of work creating the
account, the talent profile and its photos.
"""
import asyncio
import logging
from typing import List, Optional, Sequence

from bson import ObjectId
from fastapi import HTTPException
from pydantic import BaseModel
from pymongo.errors import DuplicateKeyError

import config
from database import create_document, create_documents, get_db, transaction
from schemas import ModelApplication, Photo, TalentProfile, User
from security import random_password_hash
from storage import StorageError, hashed_name

logger = logging.getLogger(__name__)

PLACEHOLDER_URL = "https://via.placeholder.com/400x600/cccccc/666666?text=Photo+{index}"


class PhotoUpload(BaseModel):
    filename: Optional[str] = None
    content_type: str = "application/octet-stream"
    data: bytes


class ApplicationResult(BaseModel):
    user_id: str
    profile_id: str
    photos: List[str]


def is_placeholder(url: str) -> bool:
    return url.startswith(PLACEHOLDER_URL.split("?", 1)[0])


def ensure_email_free(email: str) -> None:
    if get_db()["user"].find_one({"email": email}):
        raise HTTPException(status_code=409, detail="Email already registered")


async def _upload_one(storage, profile_id: str, index: int, photo: PhotoUpload,
                      semaphore: asyncio.Semaphore) -> Photo:
    original = photo.filename or f"photo_{index + 1}"
    async with semaphore:
        try:
            name = hashed_name(photo.data, photo.filename, prefix=f"model_{profile_id}_{index}_")
            stored = await storage.upload(photo.data, name, "models", content_type=photo.content_type)
            return Photo(profile_id=profile_id, url=stored.url, path=stored.path, caption=original)
        except StorageError as e:
            logger.error("Photo %d for profile %s failed to upload, using placeholder: %s",
                         index + 1, profile_id, e)
            return Photo(profile_id=profile_id, url=PLACEHOLDER_URL.format(index=index + 1),
                         caption=f"Photo {index + 1} - {original}")


async def upload_photos(storage, profile_id: str, photos: Sequence[PhotoUpload],
                        concurrency: int = config.UPLOAD_CONCURRENCY) -> List[Photo]:
    """Upload every photo; a failed upload becomes a placeholder instead of an error."""
    semaphore = asyncio.Semaphore(max(1, concurrency))
    return list(await asyncio.gather(
        *(_upload_one(storage, profile_id, i, p, semaphore) for i, p in enumerate(photos))
    ))


def persist_application(application: ModelApplication, profile_id: ObjectId, photos: List[Photo]) -> str:
    user = User(
        name=application.name,
        email=application.email,
        phone=application.phone,
        password_hash=random_password_hash(),
        role="MODEL",
    )
    try:
        with transaction() as session:
            user_id = create_document("user", user, session=session)
            profile = TalentProfile(user_id=user_id, approved=False, available=True, **application.profile_fields())
            create_document("talentprofile", {"_id": profile_id, **profile.model_dump()}, session=session)
            create_documents("photo", photos, session=session)
    except DuplicateKeyError:
        # a concurrent submission with the same email won the race
        raise HTTPException(status_code=409, detail="Email already registered")
    return user_id


async def submit_application(application: ModelApplication, storage=None,
                             uploads: Optional[Sequence[PhotoUpload]] = None) -> ApplicationResult:
    ensure_email_free(application.email)
    profile_id = ObjectId()
    if uploads:
        photos = await upload_photos(storage, str(profile_id), uploads)
    else:
        photos = [Photo(profile_id=str(profile_id), url=url, path=None,
                        caption=f"Photo {i + 1}") for i, url in enumerate(application.photo_urls)]
    try:
        user_id = persist_application(application, profile_id, photos)
    except Exception:
        stored = [p.path for p in photos if p.path]
        if stored:
            await storage.delete(stored)
        raise
    placeholders = sum(1 for p in photos if is_placeholder(p.url))
    logger.info("Model application submitted: %s (%s), %d photo(s), %d placeholder(s)",
                application.email, application.name, len(photos), placeholders)
    return ApplicationResult(user_id=user_id, profile_id=str(profile_id), photos=[p.url for p in photos])
