"""
Photo object storage.

Two backends share one interface: LocalStorage writes under UPLOAD_DIR and the
app serves it at /uploads; SupabaseStorage talks to the Supabase Storage REST
API. Uploads raise StorageError; deletes are best-effort and only log.
"""
import hashlib
import logging
import os
import secrets
import time
from typing import Iterable, List, Optional
from urllib.parse import quote, unquote

import httpx
from pydantic import BaseModel

import config

logger = logging.getLogger(__name__)


class StorageError(Exception):
    pass


class StoredObject(BaseModel):
    url: str
    path: str


def _extension(filename: Optional[str]) -> str:
    if filename and "." in filename:
        ext = filename.rsplit(".", 1)[1].lower()
        if ext.isalnum() and len(ext) <= 5:
            return ext
    return "jpg"


def hashed_name(data: bytes, filename: Optional[str], prefix: str = "") -> str:
    """Content-addressed name, so identical bytes land on the same object."""
    digest = hashlib.sha1(data).hexdigest()[:12]
    return f"{prefix}{digest}.{_extension(filename)}"


def unique_name(filename: Optional[str], prefix: str = "") -> str:
    return f"{prefix}{int(time.time() * 1000)}_{secrets.token_hex(5)}.{_extension(filename)}"


class LocalStorage:
    def __init__(self, root: str = config.UPLOAD_DIR, base_url: str = "/uploads"):
        self.root = root
        self.base_url = base_url.rstrip("/")
        os.makedirs(self.root, exist_ok=True)

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/{path}"

    def path_from_url(self, url: str) -> Optional[str]:
        marker = f"{self.base_url}/"
        if not url or marker not in url:
            return None
        return url.split(marker, 1)[1] or None

    def _fs_path(self, path: str) -> str:
        full = os.path.abspath(os.path.join(self.root, path))
        if not full.startswith(os.path.abspath(self.root) + os.sep):
            raise StorageError(f"Invalid storage path: {path}")
        return full

    async def upload(self, data: bytes, filename: str, folder: str = "models",
                     content_type: str = "application/octet-stream") -> StoredObject:
        path = f"{folder}/{filename}"
        dest = self._fs_path(path)
        try:
            os.makedirs(os.path.dirname(dest), exist_ok=True)
            if not os.path.exists(dest):
                with open(dest, "wb") as f:
                    f.write(data)
        except OSError as e:
            raise StorageError(str(e)) from e
        return StoredObject(url=self.public_url(path), path=path)

    async def delete(self, paths: Iterable[str]) -> bool:
        ok = True
        for path in paths:
            try:
                os.remove(self._fs_path(path))
            except FileNotFoundError:
                continue
            except (OSError, StorageError) as e:
                logger.error("Failed to delete %s: %s", path, e)
                ok = False
        return ok

    async def close(self) -> None:
        pass


class SupabaseStorage:
    def __init__(self, url: str = config.SUPABASE_URL, key: str = config.SUPABASE_SERVICE_KEY,
                 bucket: str = config.SUPABASE_BUCKET, client: Optional[httpx.AsyncClient] = None):
        if not url or not key:
            raise StorageError("SUPABASE_URL and SUPABASE_SERVICE_KEY are required")
        self.url = url.rstrip("/")
        self.bucket = bucket
        self.client = client or httpx.AsyncClient(
            base_url=f"{self.url}/storage/v1",
            headers={"Authorization": f"Bearer {key}", "apikey": key},
            timeout=httpx.Timeout(120.0, connect=10.0),
        )

    def public_url(self, path: str) -> str:
        return f"{self.url}/storage/v1/object/public/{self.bucket}/{quote(path)}"

    def path_from_url(self, url: str) -> Optional[str]:
        marker = f"/storage/v1/object/public/{self.bucket}/"
        if not url or marker not in url:
            return None
        path = url.split(marker, 1)[1].split("?", 1)[0]
        return unquote(path) or None

    @staticmethod
    def _already_exists(response: httpx.Response) -> bool:
        if response.status_code == 409:
            return True
        if response.status_code != 400:
            return False
        try:
            body = response.json()
        except ValueError:
            return False
        return str(body.get("statusCode")) == "409" or body.get("error") == "Duplicate"

    async def upload(self, data: bytes, filename: str, folder: str = "models",
                     content_type: str = "application/octet-stream") -> StoredObject:
        path = f"{folder}/{filename}"
        try:
            response = await self.client.post(
                f"/object/{self.bucket}/{quote(path)}",
                content=data,
                headers={"Content-Type": content_type, "cache-control": "3600", "x-upsert": "false"},
            )
        except httpx.HTTPError as e:
            raise StorageError(f"Upload of {path} failed: {e}") from e
        if response.is_success or self._already_exists(response):
            return StoredObject(url=self.public_url(path), path=path)
        raise StorageError(f"Upload of {path} failed: {response.status_code} {response.text[:200]}")

    async def delete(self, paths: Iterable[str]) -> bool:
        prefixes: List[str] = list(paths)
        if not prefixes:
            return True
        try:
            response = await self.client.request("DELETE", f"/object/{self.bucket}", json={"prefixes": prefixes})
        except httpx.HTTPError as e:
            logger.error("Failed to delete %d object(s) from storage: %s", len(prefixes), e)
            return False
        if not response.is_success:
            logger.error("Failed to delete %d object(s) from storage: %s", len(prefixes), response.status_code)
            return False
        return True

    async def close(self) -> None:
        await self.client.aclose()


_storage = None


def init_storage(backend: str = config.STORAGE_BACKEND):
    global _storage
    if backend == "supabase":
        _storage = SupabaseStorage()
    elif backend == "local":
        _storage = LocalStorage()
    else:
        raise StorageError(f"Unknown STORAGE_BACKEND {backend!r}")
    logger.info("Using %s photo storage", backend)
    return _storage


async def close_storage() -> None:
    global _storage
    if _storage is not None:
        await _storage.close()
    _storage = None


def get_storage():
    if _storage is None:
        raise StorageError("Storage not initialised")
    return _storage


async def delete_urls(storage, urls: Iterable[str]) -> bool:
    """Best-effort removal of the objects behind public URLs. Never raises."""
    paths = [p for p in (storage.path_from_url(u) for u in urls) if p]
    if not paths:
        return True
    try:
        return await storage.delete(paths)
    except Exception:
        logger.exception("Storage cleanup failed for %d object(s)", len(paths))
        return False
