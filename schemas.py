"""
Database Schemas for the Bokt talent booking API

Each Pydantic model maps to a MongoDB collection (lowercased class name).
- User -> "user"
- TalentProfile -> "talentprofile"
- Photo -> "photo"
- Booking -> "booking"
- SavedTalent -> "savedtalent"

Request bodies follow below the collection schemas. They speak camelCase on
the wire and snake_case in Python/Mongo.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationInfo, field_validator, model_validator
from pydantic.alias_generators import to_camel

import validation

Role = Literal["MODEL", "BRAND", "ADMIN"]
Duration = Literal["HALF_DAY", "FULL_DAY", "MULTIPLE_DAYS"]
BookingStatus = Literal["PENDING", "CONFIRMED", "CANCELLED"]


class User(BaseModel):
    name: str = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Unique, lowercased email address")
    phone: Optional[str] = Field(None, description="Contact phone")
    password_hash: Optional[str] = Field(None, description="BCrypt hash of password")
    role: Role = Field("MODEL", description="MODEL | BRAND | ADMIN")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TalentProfile(BaseModel):
    user_id: str = Field(..., description="Owning account id")
    display_name: str
    location: str
    instagram_handle: str
    gender: str
    height_cm: int
    bust_cm: int
    waist_cm: int
    age: int
    shirt_size: str
    pant_size: str
    shoes_size: str
    modeling_experience: str
    bio: str = ""
    categories: List[str] = Field(default_factory=list)
    approved: bool = Field(False, description="Publicly listed only when true")
    available: bool = Field(True, description="Bookable only when true")
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Photo(BaseModel):
    profile_id: str = Field(..., description="Talent profile id")
    url: str = Field(..., description="Public URL of the photo")
    path: Optional[str] = Field(None, description="Storage path, when stored by us")
    caption: Optional[str] = None
    created_at: Optional[datetime] = None


class Booking(BaseModel):
    profile_id: str
    created_by_id: Optional[str] = Field(None, description="Account id when the requester was signed in")
    requester_name: str
    requester_phone: str
    requester_email: Optional[EmailStr] = None
    requester_brand: Optional[str] = None
    brand_website: Optional[str] = None
    brand_instagram: Optional[str] = None
    contact_whatsapp: bool = False
    start_at: datetime
    end_at: datetime
    duration: Duration
    offered_budget_egp: int
    note: Optional[str] = None
    status: BookingStatus = "PENDING"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SavedTalent(BaseModel):
    brand_id: str
    profile_id: str
    created_at: Optional[datetime] = None


# ----------------------
# Request bodies
# ----------------------

class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _raise(result: validation.RuleResult) -> None:
    if not result.ok:
        raise ValueError(result.message)


class ProfileRules(ApiModel):
    """Rules shared by everything that writes talent profile fields. None means "not given"."""

    @field_validator("name", "location", "gender", "shirt_size", "pant_size", "shoes_size",
                     "modeling_experience", "display_name", check_fields=False)
    @classmethod
    def _required_text(cls, v: Optional[str], info: ValidationInfo):
        if v is None:
            return v
        _raise(validation.check_required(v, to_camel(info.field_name)))
        return v.strip()

    @field_validator("email", mode="before", check_fields=False)
    @classmethod
    def _email(cls, v: Any):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("phone", check_fields=False)
    @classmethod
    def _phone(cls, v: Optional[str]):
        if v is None or not v.strip():
            return None
        _raise(validation.check_phone(v))
        return v.strip()

    @field_validator("instagram_handle", check_fields=False)
    @classmethod
    def _instagram(cls, v: Optional[str]):
        if v is None:
            return v
        _raise(validation.check_instagram_handle(v))
        return validation.clean_instagram_handle(v)

    @field_validator("height_cm", check_fields=False)
    @classmethod
    def _height(cls, v: Optional[int]):
        if v is not None:
            _raise(validation.check_height(v))
        return v

    @field_validator("bust_cm", "waist_cm", check_fields=False)
    @classmethod
    def _measurement(cls, v: Optional[int], info: ValidationInfo):
        if v is not None:
            _raise(validation.check_measurement(v, to_camel(info.field_name)))
        return v

    @field_validator("age", check_fields=False)
    @classmethod
    def _age(cls, v: Optional[int]):
        if v is not None:
            _raise(validation.check_age(v))
        return v

    @field_validator("categories", check_fields=False)
    @classmethod
    def _categories(cls, v: Optional[List[str]]):
        if v is None:
            return v
        cleaned = validation.split_categories(v)
        if not cleaned:
            raise ValueError("Please choose at least one category")
        return cleaned


class ModelApplication(ProfileRules):
    name: str
    email: EmailStr
    phone: Optional[str] = None
    nickname: Optional[str] = None
    location: str
    instagram_handle: str
    gender: str
    height_cm: int
    shirt_size: str
    pant_size: str
    shoes_size: str
    bust_cm: int
    waist_cm: int
    age: int
    categories: List[str]
    modeling_experience: str
    bio: Optional[str] = None
    terms_accepted: bool
    photo_urls: List[str] = Field(default_factory=list)

    @field_validator("terms_accepted")
    @classmethod
    def _terms(cls, v: bool):
        if v is not True:
            raise ValueError("Terms must be accepted")
        return v

    def profile_fields(self) -> Dict[str, Any]:
        return {
            "display_name": (self.nickname or "").strip() or self.name,
            "location": self.location,
            "instagram_handle": self.instagram_handle,
            "gender": self.gender,
            "height_cm": self.height_cm,
            "bust_cm": self.bust_cm,
            "waist_cm": self.waist_cm,
            "age": self.age,
            "shirt_size": self.shirt_size,
            "pant_size": self.pant_size,
            "shoes_size": self.shoes_size,
            "modeling_experience": self.modeling_experience,
            "bio": self.bio or "",
            "categories": self.categories,
        }


class ModelApplicationUrls(ModelApplication):
    @field_validator("photo_urls")
    @classmethod
    def _photo_urls(cls, v: List[str]):
        _raise(validation.check_photo_urls(v))
        return v


class ModelUpdateIn(ProfileRules):
    """Partial update of a talent profile; unset fields stay untouched."""
    model_id: str = Field(..., alias="modelId")
    display_name: Optional[str] = None
    location: Optional[str] = None
    instagram_handle: Optional[str] = None
    gender: Optional[str] = None
    height_cm: Optional[int] = None
    bust_cm: Optional[int] = None
    waist_cm: Optional[int] = None
    age: Optional[int] = None
    shirt_size: Optional[str] = None
    pant_size: Optional[str] = None
    shoes_size: Optional[str] = None
    modeling_experience: Optional[str] = None
    bio: Optional[str] = None
    categories: Optional[List[str]] = None
    approved: Optional[bool] = None
    available: Optional[bool] = None
    avatar_url: Optional[str] = None

    model_config = ConfigDict(protected_namespaces=())

    def changes(self) -> Dict[str, Any]:
        data = self.model_dump(exclude_unset=True, exclude={"model_id"})
        return {k: v for k, v in data.items() if v is not None or k in ("avatar_url", "bio")}


class ModelDetailsIn(ProfileRules):
    """Fields a model may edit on their own profile."""
    display_name: Optional[str] = None
    location: Optional[str] = None
    height_cm: Optional[int] = None
    bust_cm: Optional[int] = None
    waist_cm: Optional[int] = None
    shirt_size: Optional[str] = None
    pant_size: Optional[str] = None
    shoes_size: Optional[str] = None
    bio: Optional[str] = None
    available: Optional[bool] = None


class RegisterIn(ProfileRules):
    name: str
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Literal["MODEL", "BRAND"] = "MODEL"


class LoginIn(ApiModel):
    email: EmailStr
    password: str


class CreateAdminIn(ProfileRules):
    name: str
    email: EmailStr
    password: str = Field(..., min_length=8)


class BookingIn(ApiModel):
    profile_id: str = Field(..., alias="modelId", min_length=1)
    start_at: datetime
    end_at: Optional[datetime] = None
    duration: Duration
    note: Optional[str] = None
    requester_name: str = Field(..., min_length=2)
    requester_phone: str = Field(..., min_length=5)
    requester_brand: Optional[str] = None
    requester_email: Optional[EmailStr] = None
    brand_website: Optional[str] = None
    brand_instagram: Optional[str] = None
    contact_whatsapp: bool = Field(False, alias="contactWhatsApp")
    offered_budget_egp: int = Field(..., gt=0)

    @field_validator("requester_phone")
    @classmethod
    def _phone(cls, v: str):
        _raise(validation.check_phone(v))
        return v.strip()

    @field_validator("requester_email", mode="before")
    @classmethod
    def _email(cls, v: Any):
        if isinstance(v, str):
            return v.strip().lower() or None
        return v

    @field_validator("brand_website")
    @classmethod
    def _website(cls, v: Optional[str]):
        return validation.normalize_website(v)

    @field_validator("brand_instagram")
    @classmethod
    def _brand_instagram(cls, v: Optional[str]):
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("start_at", "end_at")
    @classmethod
    def _utc(cls, v: Optional[datetime]):
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @model_validator(mode="after")
    def _window(self):
        if self.duration == "MULTIPLE_DAYS":
            if self.end_at is None:
                raise ValueError("End date is required for multiple-day bookings")
            if self.end_at <= self.start_at:
                raise ValueError("End date must be after the start date")
        return self


class ProfileIdIn(ApiModel):
    id: str = Field(..., min_length=1)
    reason: Optional[str] = None


class ModelIdIn(ApiModel):
    model_id: str = Field(..., alias="modelId", min_length=1)

    model_config = ConfigDict(protected_namespaces=())


class ToggleAvailabilityIn(ModelIdIn):
    available: Optional[bool] = None


class PhotoUrlsIn(ModelIdIn):
    urls: List[str] = Field(..., min_length=1)


class UrlsIn(ApiModel):
    urls: List[str] = Field(..., min_length=1)


class AvatarIn(ApiModel):
    photo_url: str = Field(..., min_length=1)


class BookingActionIn(ApiModel):
    booking_id: str = Field(..., min_length=1)
    reason: Optional[str] = None


class StepValidationIn(ApiModel):
    step: int = Field(..., ge=1, le=4)
    data: Dict[str, Any] = Field(default_factory=dict)
