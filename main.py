import json
import logging
import os
import re
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError
from pydantic.alias_generators import to_camel
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError
from starlette.datastructures import UploadFile

import config
import validation
from applications import PhotoUpload, submit_application
from database import DatabaseUnavailable, close_db, create_document, create_documents, get_db, init_db, transaction
from schemas import (
    AvatarIn,
    Booking,
    BookingActionIn,
    BookingIn,
    CreateAdminIn,
    LoginIn,
    ModelApplication,
    ModelApplicationUrls,
    ModelDetailsIn,
    ModelIdIn,
    ModelUpdateIn,
    Photo,
    PhotoUrlsIn,
    ProfileIdIn,
    RegisterIn,
    SavedTalent,
    StepValidationIn,
    ToggleAvailabilityIn,
    UrlsIn,
    User,
)
from security import (
    TokenData,
    clear_session_cookie,
    create_access_token,
    get_current_user,
    get_optional_user,
    hash_password,
    require_admin,
    require_brand,
    require_model,
    set_session_cookie,
    verify_password,
)
from storage import StorageError, close_storage, delete_urls, get_storage, init_storage, unique_name

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("bokt")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    init_storage()
    yield
    await close_storage()
    close_db()


app = FastAPI(title="Bokt Talent Booking API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Local photo storage is served straight from disk
os.makedirs(config.UPLOAD_DIR, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=config.UPLOAD_DIR), name="uploads")

MULTIPART_ROUTES = ("/api/auth/model-register", "/api/admin/manage-photos")
MULTIPART_SLACK = 1024 * 1024  # form fields and boundaries on top of the files

DURATION_HOURS = {"HALF_DAY": 4, "FULL_DAY": 8}

# camelCase names that to_camel cannot derive
WIRE_NAMES = {"contact_whatsapp": "contactWhatsApp", "profile_id": "modelId"}


# ----------------------
# Errors
# ----------------------

def _field_errors(errors: List[Dict[str, Any]]) -> Dict[str, str]:
    fields: Dict[str, str] = {}
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        key = ".".join(loc) or "__root__"
        fields.setdefault(key, str(err.get("msg", "Invalid value")).removeprefix("Value error, "))
    return fields


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": "Invalid data", "fields": _field_errors(exc.errors())})


@app.exception_handler(ValidationError)
async def validation_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": "Invalid data", "fields": _field_errors(exc.errors())})


@app.exception_handler(DatabaseUnavailable)
async def database_unavailable_handler(request: Request, exc: DatabaseUnavailable):
    logger.error("Request to %s without a database: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Service temporarily unavailable. Please try again."})


@app.exception_handler(Exception)
async def unhandled_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error. Please try again."})


@app.middleware("http")
async def limit_upload_size(request: Request, call_next):
    if request.method == "POST" and request.url.path in MULTIPART_ROUTES:
        length = request.headers.get("content-length", "")
        if length.isdigit() and int(length) > config.MAX_TOTAL_PHOTO_BYTES + MULTIPART_SLACK:
            logger.warning("Rejected %s upload of %s bytes", request.url.path, length)
            return JSONResponse(status_code=413, content={
                "detail": f"Upload too large. Photos must be under {config.MAX_TOTAL_PHOTO_BYTES // (1024 * 1024)}MB in total."
            })
    return await call_next(request)


# ----------------------
# Utility functions
# ----------------------

def to_object_id(id_str: str, detail: str = "Not found") -> ObjectId:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=404, detail=detail)


def _iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _naive_utc(value: datetime) -> datetime:
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def serialize(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not doc:
        return doc
    out: Dict[str, Any] = {}
    for k, v in doc.items():
        if k == "password_hash":
            continue
        if k == "_id":
            out["id"] = str(v)
            continue
        if isinstance(v, ObjectId):
            v = str(v)
        elif isinstance(v, datetime):
            v = _iso(v)
        out[WIRE_NAMES.get(k, to_camel(k))] = v
    return out


def get_profile(profile_id: str) -> Dict[str, Any]:
    profile = get_db()["talentprofile"].find_one({"_id": to_object_id(profile_id, "Model profile not found")})
    if not profile:
        raise HTTPException(status_code=404, detail="Model profile not found")
    return profile


def profile_photos(profile_id: Any, session=None) -> List[Dict[str, Any]]:
    cursor = get_db()["photo"].find({"profile_id": str(profile_id)}, session=session)
    return list(cursor.sort([("created_at", 1), ("_id", 1)]))


def profile_out(profile: Dict[str, Any], with_user: bool = False) -> Dict[str, Any]:
    out = serialize(profile)
    photos = profile_photos(profile["_id"])
    out["photos"] = [serialize(p) for p in photos]
    if not out.get("avatarUrl") and photos:
        out["avatarUrl"] = photos[0]["url"]
    if with_user:
        user = get_db()["user"].find_one({"_id": to_object_id(profile["user_id"])}, {"name": 1, "email": 1, "phone": 1})
        out["user"] = serialize(user)
    return out


def own_profile(user: TokenData) -> Dict[str, Any]:
    profile = get_db()["talentprofile"].find_one({"user_id": user.user_id})
    if not profile:
        raise HTTPException(status_code=404, detail="Model profile not found")
    return profile


def check_urls(urls: List[str]) -> None:
    result = validation.check_photo_urls(urls, count=len(urls))
    if not result.ok:
        raise HTTPException(status_code=400, detail=result.message)


def booking_window(payload: BookingIn):
    start = _naive_utc(payload.start_at)
    if payload.duration == "MULTIPLE_DAYS":
        return start, _naive_utc(payload.end_at)
    return start, start + timedelta(hours=DURATION_HOURS[payload.duration])


# ----------------------
# Routes
# ----------------------

@app.get("/")
def read_root():
    return {"message": "Bokt Talent Booking API running"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if config.DATABASE_URL else "❌ Not Set",
        "database_name": "✅ Set" if config.DATABASE_NAME else "❌ Not Set",
        "connection_status": "Not Connected",
        "storage": config.STORAGE_BACKEND,
        "collections": [],
    }
    try:
        db = get_db()
        response["database"] = "✅ Available"
        response["connection_status"] = "Connected"
        try:
            response["collections"] = db.list_collection_names()
            response["database"] = "✅ Connected & Working"
        except Exception as e:
            response["database"] = f"⚠️ Connected but Error: {str(e)[:80]}"
    except DatabaseUnavailable:
        response["database"] = "⚠️ Available but not initialized"
    return response


# Auth
@app.post("/api/auth/register", status_code=201)
def register(payload: RegisterIn):
    if get_db()["user"].find_one({"email": payload.email}):
        raise HTTPException(status_code=409, detail="Email already registered")
    user = User(name=payload.name, email=payload.email, password_hash=hash_password(payload.password), role=payload.role)
    try:
        uid = create_document("user", user)
    except DuplicateKeyError:
        raise HTTPException(status_code=409, detail="Email already registered")
    logger.info("Account registered: %s (%s)", payload.email, payload.role)
    return {"id": uid}


@app.post("/api/auth/login")
def login(payload: LoginIn, response: Response):
    user = get_db()["user"].find_one({"email": payload.email.strip().lower()})
    if not user or not verify_password(payload.password, user.get("password_hash")):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    uid = str(user["_id"])
    token = create_access_token({"sub": uid, "role": user.get("role", "MODEL")})
    set_session_cookie(response, token)
    return {"token": token, "user": {"id": uid, "name": user.get("name"), "email": user.get("email"), "role": user.get("role")}}


@app.post("/api/auth/logout")
def logout(response: Response):
    clear_session_cookie(response)
    return {"ok": True}


@app.get("/api/auth/session")
def current_session(user: TokenData = Depends(get_current_user)):
    return {"id": user.user_id, "name": user.name, "email": user.email, "role": user.role}


# Model applications
@app.post("/api/auth/model-application/validate")
def validate_application_step(payload: StepValidationIn):
    errors = validation.validate_application_step(payload.step, payload.data)
    return {"step": payload.step, "valid": not errors, "errors": errors}


@app.post("/api/auth/model-register-urls", status_code=201)
async def model_register_urls(payload: ModelApplicationUrls):
    result = await submit_application(payload)
    return {"message": "Application submitted successfully", "userId": result.user_id, "profileId": result.profile_id,
            "photos": result.photos}


async def _read_photos(files: List[Any]) -> List[PhotoUpload]:
    uploads = []
    for f in files:
        if not isinstance(f, UploadFile):
            raise HTTPException(status_code=400, detail="Photos must be uploaded as files")
        uploads.append(PhotoUpload(filename=f.filename, content_type=f.content_type or "application/octet-stream",
                                   data=await f.read()))
    return uploads


@app.post("/api/auth/model-register", status_code=201)
async def model_register(request: Request, storage=Depends(get_storage)):
    async with request.form() as form:
        fields: Dict[str, Any] = {k: v for k, v in form.items() if not isinstance(v, UploadFile)}
        try:
            fields["categories"] = json.loads(fields.get("categories") or "[]")
        except ValueError:
            raise HTTPException(status_code=400, detail="Categories must be a JSON array")
        fields.pop("photoUrls", None)
        application = ModelApplication.model_validate(fields)
        files = form.getlist("photos")
        if len(files) != config.APPLICATION_PHOTO_COUNT:
            raise HTTPException(status_code=400, detail=f"Please upload exactly {config.APPLICATION_PHOTO_COUNT} photos")
        uploads = await _read_photos(files)
    size_check = validation.check_photo_files([len(u.data) for u in uploads])
    if not size_check.ok:
        raise HTTPException(status_code=413, detail=size_check.message)
    result = await submit_application(application, storage, uploads)
    return {"message": "Application submitted successfully", "userId": result.user_id, "profileId": result.profile_id,
            "photos": result.photos}


# Talents
@app.get("/api/talents")
def list_talents(category: Optional[str] = None, gender: Optional[str] = None, location: Optional[str] = None,
                 take: int = Query(30, ge=1, le=100)):
    filt: Dict[str, Any] = {"approved": True}
    if category:
        filt["categories"] = category
    if gender:
        filt["gender"] = gender
    if location:
        filt["location"] = {"$regex": re.escape(location), "$options": "i"}
    cursor = get_db()["talentprofile"].find(filt).sort("display_name", 1).limit(take)
    items = []
    for p in cursor:
        photo = get_db()["photo"].find_one({"profile_id": str(p["_id"])}, sort=[("created_at", 1)])
        items.append({
            "id": str(p["_id"]),
            "displayName": p.get("display_name"),
            "avatarUrl": p.get("avatar_url") or (photo or {}).get("url"),
            "location": p.get("location"),
            "categories": p.get("categories", []),
            "gender": p.get("gender"),
            "available": p.get("available", False),
        })
    return {"items": items}


@app.get("/api/talents/{profile_id}")
def get_talent(profile_id: str):
    profile = get_profile(profile_id)
    if not profile.get("approved"):
        raise HTTPException(status_code=404, detail="Model profile not found")
    return profile_out(profile)


# Model self-service
@app.get("/api/model/me")
def model_me(user: TokenData = Depends(require_model)):
    profile = get_db()["talentprofile"].find_one({"user_id": user.user_id})
    return {"profile": profile_out(profile) if profile else None}


@app.post("/api/model/details/update")
def model_update_details(payload: ModelDetailsIn, user: TokenData = Depends(require_model)):
    profile = own_profile(user)
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    changes["updated_at"] = datetime.now(timezone.utc)
    get_db()["talentprofile"].update_one({"_id": profile["_id"]}, {"$set": changes})
    return {"profile": profile_out(get_db()["talentprofile"].find_one({"_id": profile["_id"]}))}


@app.post("/api/model/photos/add")
def model_add_photos(payload: UrlsIn, user: TokenData = Depends(require_model)):
    profile = own_profile(user)
    check_urls(payload.urls)
    create_documents("photo", [Photo(profile_id=str(profile["_id"]), url=u) for u in payload.urls])
    return {"photos": [serialize(p) for p in profile_photos(profile["_id"])]}


@app.post("/api/model/set-avatar")
def model_set_avatar(payload: AvatarIn, user: TokenData = Depends(require_model)):
    profile = own_profile(user)
    get_db()["talentprofile"].update_one(
        {"_id": profile["_id"]}, {"$set": {"avatar_url": payload.photo_url, "updated_at": datetime.now(timezone.utc)}}
    )
    return {"success": True, "profile": profile_out(get_db()["talentprofile"].find_one({"_id": profile["_id"]}))}


# Brand bookmarks
@app.get("/api/brand/saved")
def brand_saved(user: TokenData = Depends(require_brand)):
    items = []
    for saved in get_db()["savedtalent"].find({"brand_id": user.user_id}).sort("created_at", -1):
        profile = get_db()["talentprofile"].find_one({"_id": to_object_id(saved["profile_id"])})
        if profile and profile.get("approved"):
            items.append({"id": str(saved["_id"]), "model": profile_out(profile)})
    return {"items": items}


@app.post("/api/brand/saved", status_code=201)
def brand_save_talent(payload: ModelIdIn, user: TokenData = Depends(require_brand)):
    profile = get_profile(payload.model_id)
    if not profile.get("approved"):
        raise HTTPException(status_code=404, detail="Model profile not found")
    key = {"brand_id": user.user_id, "profile_id": str(profile["_id"])}
    existing = get_db()["savedtalent"].find_one(key)
    if existing:
        return {"id": str(existing["_id"])}
    try:
        return {"id": create_document("savedtalent", SavedTalent(**key))}
    except DuplicateKeyError:
        return {"id": str(get_db()["savedtalent"].find_one(key)["_id"])}


@app.delete("/api/brand/saved/{profile_id}")
def brand_unsave_talent(profile_id: str, user: TokenData = Depends(require_brand)):
    res = get_db()["savedtalent"].delete_one({"brand_id": user.user_id, "profile_id": profile_id})
    if res.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Saved talent not found")
    return {"ok": True}


# Bookings
@app.post("/api/booking/create", status_code=201)
def create_booking(payload: BookingIn, user: Optional[TokenData] = Depends(get_optional_user)):
    budget = validation.check_budget(payload.duration, payload.offered_budget_egp)
    if not budget.ok:
        raise HTTPException(status_code=400, detail=budget.message)
    profile = get_db()["talentprofile"].find_one({"_id": to_object_id(payload.profile_id, "Talent not found")})
    if not profile or not profile.get("approved"):
        raise HTTPException(status_code=404, detail="Talent not found")
    if not profile.get("available"):
        raise HTTPException(status_code=400, detail="This talent is not available for bookings right now")
    start_at, end_at = booking_window(payload)
    booking = Booking(
        **payload.model_dump(exclude={"start_at", "end_at"}),
        start_at=start_at,
        end_at=end_at,
        created_by_id=user.user_id if user else None,
        status="PENDING",
    )
    booking_id = create_document("booking", booking)
    logger.info("Booking %s created for talent %s (%s, %d EGP)", booking_id, payload.profile_id,
                payload.duration, payload.offered_budget_egp)
    return {"id": booking_id}


# ----------------------
# Admin
# ----------------------

@app.get("/api/admin/models")
def admin_list_models(status: str = Query("pending", pattern="^(pending|approved|all)$"),
                      admin: TokenData = Depends(require_admin)):
    filt: Dict[str, Any] = {}
    if status != "all":
        filt["approved"] = status == "approved"
    profiles = get_db()["talentprofile"].find(filt).sort("created_at", -1)
    return {"items": [profile_out(p, with_user=True) for p in profiles]}


@app.post("/api/admin/approve")
def admin_approve(payload: ProfileIdIn, admin: TokenData = Depends(require_admin)):
    profile = get_db()["talentprofile"].find_one_and_update(
        {"_id": to_object_id(payload.id, "Model profile not found")},
        {"$set": {"approved": True, "available": True, "updated_at": datetime.now(timezone.utc)}},
        return_document=ReturnDocument.AFTER,
    )
    if not profile:
        raise HTTPException(status_code=404, detail="Model profile not found")
    logger.info("Model application approved: %s by %s", profile["display_name"], admin.email)
    return {"message": "Model application approved successfully", "modelProfile": serialize(profile)}


@app.post("/api/admin/reject")
async def admin_reject(payload: ProfileIdIn, admin: TokenData = Depends(require_admin),
                       storage=Depends(get_storage)):
    profile = get_profile(payload.id)
    user = get_db()["user"].find_one({"_id": to_object_id(profile["user_id"])}) or {}
    with transaction() as session:
        photos = profile_photos(profile["_id"], session=session)
        get_db()["photo"].delete_many({"profile_id": str(profile["_id"])}, session=session)
        get_db()["savedtalent"].delete_many({"profile_id": str(profile["_id"])}, session=session)
        get_db()["talentprofile"].delete_one({"_id": profile["_id"]}, session=session)
        get_db()["user"].delete_one({"_id": to_object_id(profile["user_id"])}, session=session)
    await delete_urls(storage, [p["url"] for p in photos])
    logger.info("Model application rejected: %s (%s)%s", user.get("email"), user.get("name"),
                f", reason: {payload.reason}" if payload.reason else "")
    return {
        "message": "Model application rejected successfully",
        "rejectedModel": {"email": user.get("email"), "name": user.get("name"),
                          "reason": payload.reason or "No reason provided"},
    }


@app.post("/api/admin/toggle-availability")
def admin_toggle_availability(payload: ToggleAvailabilityIn, admin: TokenData = Depends(require_admin)):
    profile = get_profile(payload.model_id)
    available = payload.available if payload.available is not None else not profile.get("available", False)
    get_db()["talentprofile"].update_one(
        {"_id": profile["_id"]}, {"$set": {"available": available, "updated_at": datetime.now(timezone.utc)}}
    )
    profile["available"] = available
    logger.info("Model %s availability set to %s", profile["display_name"], available)
    return {
        "success": True,
        "message": f"Model {'made available' if available else 'made unavailable'} successfully",
        "model": serialize(profile),
    }


@app.post("/api/admin/update-model")
def admin_update_model(payload: ModelUpdateIn, admin: TokenData = Depends(require_admin)):
    changes = payload.changes()
    changes["updated_at"] = datetime.now(timezone.utc)
    profile = get_db()["talentprofile"].find_one_and_update(
        {"_id": to_object_id(payload.model_id, "Model profile not found")},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    if not profile:
        raise HTTPException(status_code=404, detail="Model profile not found")
    return {"success": True, "message": "Model profile updated successfully", "modelProfile": profile_out(profile, with_user=True)}


@app.post("/api/admin/save-photo-urls")
def admin_save_photo_urls(payload: PhotoUrlsIn, admin: TokenData = Depends(require_admin)):
    profile = get_profile(payload.model_id)
    check_urls(payload.urls)
    known = {p["url"] for p in profile_photos(profile["_id"])}
    fresh = [u for u in dict.fromkeys(payload.urls) if u not in known]
    create_documents("photo", [Photo(profile_id=str(profile["_id"]), url=u) for u in fresh])
    return {
        "success": True,
        "message": f"{len(fresh)} photo(s) added successfully",
        "photos": [p["url"] for p in profile_photos(profile["_id"])],
    }


@app.delete("/api/admin/delete-model")
async def admin_delete_model(payload: ModelIdIn, admin: TokenData = Depends(require_admin),
                             storage=Depends(get_storage)):
    profile = get_profile(payload.model_id)
    with transaction() as session:
        photos = profile_photos(profile["_id"], session=session)
        get_db()["photo"].delete_many({"profile_id": str(profile["_id"])}, session=session)
        get_db()["savedtalent"].delete_many({"profile_id": str(profile["_id"])}, session=session)
        get_db()["talentprofile"].delete_one({"_id": profile["_id"]}, session=session)
    cleaned = await delete_urls(storage, [p["url"] for p in photos])
    logger.info("Model deleted: %s, %d photo(s), storage cleanup %s",
                profile["display_name"], len(photos), "ok" if cleaned else "incomplete")
    return {"success": True, "message": "Model deleted successfully"}


@app.post("/api/admin/manage-photos")
async def admin_add_photos(request: Request, model_id: str = Query(..., alias="modelId"),
                           admin: TokenData = Depends(require_admin), storage=Depends(get_storage)):
    profile = get_profile(model_id)
    async with request.form() as form:
        files = form.getlist("photos")
        if not files:
            raise HTTPException(status_code=400, detail="No photos provided")
        uploads = await _read_photos(files)
    for u in uploads:
        if len(u.data) > config.MAX_PHOTO_BYTES:
            raise HTTPException(status_code=413, detail=f"{u.filename or 'Photo'} is larger than {config.MAX_PHOTO_BYTES // (1024 * 1024)}MB")
    added, failed = [], []
    for i, u in enumerate(uploads):
        try:
            stored = await storage.upload(u.data, unique_name(u.filename), f"models/{model_id}", content_type=u.content_type)
        except StorageError as e:
            logger.error("Admin photo upload for %s failed: %s", model_id, e)
            failed.append(u.filename or f"photo_{i + 1}")
            continue
        added.append(Photo(profile_id=str(profile["_id"]), url=stored.url, path=stored.path, caption=u.filename))
    if not added:
        raise HTTPException(status_code=502, detail="Photo storage failed, no photos were added")
    create_documents("photo", added)
    return {
        "success": True,
        "message": f"{len(added)} photo(s) added successfully",
        "photos": [p["url"] for p in profile_photos(profile["_id"])],
        "failed": failed,
    }


@app.delete("/api/admin/manage-photos")
async def admin_remove_photo(model_id: str = Query(..., alias="modelId"), photo_index: int = Query(..., alias="photoIndex", ge=0),
                             admin: TokenData = Depends(require_admin), storage=Depends(get_storage)):
    profile = get_profile(model_id)
    photos = profile_photos(profile["_id"])
    if photo_index >= len(photos):
        raise HTTPException(status_code=400, detail="Photo index out of range")
    photo = photos[photo_index]
    get_db()["photo"].delete_one({"_id": photo["_id"]})
    if profile.get("avatar_url") == photo["url"]:
        get_db()["talentprofile"].update_one({"_id": profile["_id"]}, {"$set": {"avatar_url": None}})
    await delete_urls(storage, [photo["url"]])
    return {
        "success": True,
        "message": "Photo removed successfully",
        "photos": [p["url"] for p in profile_photos(profile["_id"])],
    }


@app.get("/api/admin/bookings")
def admin_list_bookings(status: Optional[str] = Query(None, pattern="^(PENDING|CONFIRMED|CANCELLED)$"),
                        admin: TokenData = Depends(require_admin)):
    filt = {"status": status} if status else {}
    items = []
    for b in get_db()["booking"].find(filt).sort("created_at", -1):
        out = serialize(b)
        profile = None
        if ObjectId.is_valid(b.get("profile_id", "")):
            profile = get_db()["talentprofile"].find_one({"_id": ObjectId(b["profile_id"])}, {"display_name": 1})
        out["modelName"] = profile.get("display_name") if profile else None
        items.append(out)
    return {"items": items}


def _pending_booking(booking_id: str, session=None) -> Dict[str, Any]:
    booking = get_db()["booking"].find_one({"_id": to_object_id(booking_id, "Booking not found")}, session=session)
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    if booking.get("status") != "PENDING":
        raise HTTPException(status_code=409, detail=f"Booking is already {booking.get('status', '').lower()}")
    return booking


@app.post("/api/admin/confirm-booking")
def admin_confirm_booking(payload: BookingActionIn, admin: TokenData = Depends(require_admin)):
    with transaction() as session:
        booking = _pending_booking(payload.booking_id, session=session)
        clash = get_db()["booking"].find_one({
            "_id": {"$ne": booking["_id"]},
            "profile_id": booking["profile_id"],
            "status": "CONFIRMED",
            "start_at": {"$lt": booking["end_at"]},
            "end_at": {"$gt": booking["start_at"]},
        }, session=session)
        if clash:
            raise HTTPException(status_code=409, detail="Talent already has a confirmed booking in this time window")
        booking = get_db()["booking"].find_one_and_update(
            {"_id": booking["_id"], "status": "PENDING"},
            {"$set": {"status": "CONFIRMED", "updated_at": datetime.now(timezone.utc)}},
            return_document=ReturnDocument.AFTER,
            session=session,
        )
    logger.info("Booking %s confirmed by %s", payload.booking_id, admin.email)
    return {"success": True, "booking": serialize(booking), "message": "Booking confirmed"}


@app.post("/api/admin/cancel-booking")
def admin_cancel_booking(payload: BookingActionIn, admin: TokenData = Depends(require_admin)):
    booking = _pending_booking(payload.booking_id)
    note = booking.get("note")
    if payload.reason:
        note = f"{note or ''}\n\nCancelled: {payload.reason}".strip()
    booking = get_db()["booking"].find_one_and_update(
        {"_id": booking["_id"], "status": "PENDING"},
        {"$set": {"status": "CANCELLED", "note": note, "updated_at": datetime.now(timezone.utc)}},
        return_document=ReturnDocument.AFTER,
    )
    if not booking:
        raise HTTPException(status_code=409, detail="Booking is no longer pending")
    logger.info("Booking %s cancelled by %s", payload.booking_id, admin.email)
    return {"success": True, "booking": serialize(booking), "message": "Booking cancelled"}


@app.post("/api/admin/create-admin", status_code=201)
def create_admin(payload: CreateAdminIn):
    db = get_db()
    if db["user"].find_one({"role": "ADMIN"}):
        raise HTTPException(status_code=409, detail="Admin user already exists")
    if db["user"].find_one({"email": payload.email}):
        raise HTTPException(status_code=409, detail="Email already registered")
    uid = create_document("user", User(name=payload.name, email=payload.email,
                                       password_hash=hash_password(payload.password), role="ADMIN"))
    logger.info("Admin user created: %s", payload.email)
    return {"message": "Admin user created successfully", "id": uid}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
