"""
Field rules shared by the application wizard and the API.

Each rule is a pure function over primitive input returning a RuleResult.
The wizard calls `validate_application_step` to show step-scoped errors;
the request schemas call the same rules so the server re-checks everything.
"""
import re
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Sequence
from urllib.parse import urlparse

from email_validator import EmailNotValidError, validate_email

import config

PHONE_RE = re.compile(r"^\+?\d{1,16}$")
INSTAGRAM_RE = re.compile(r"^[a-z._]+$")

AGE_RANGE = (16, 80)
HEIGHT_RANGE = (100, 250)
MEASUREMENT_RANGE = (0, 150)

BUDGET_FLOORS = {
    "HALF_DAY": 2500,
    "FULL_DAY": 3500,
    "MULTIPLE_DAYS": 3500,
}
DURATION_LABELS = {
    "HALF_DAY": "half-day",
    "FULL_DAY": "full-day",
    "MULTIPLE_DAYS": "multiple days",
}


class RuleResult(NamedTuple):
    ok: bool
    message: str = ""


PASS = RuleResult(True)


def _fail(message: str) -> RuleResult:
    return RuleResult(False, message)


def label(field: str) -> str:
    """heightCm -> Height cm"""
    words = re.sub(r"([A-Z])", r" \1", field).strip().split()
    return " ".join(words).capitalize()


def check_required(value: Any, field: str = "value") -> RuleResult:
    if value is None:
        return _fail(f"{label(field)} is required")
    if isinstance(value, str) and not value.strip():
        return _fail(f"{label(field)} is required")
    if isinstance(value, (list, tuple)) and not value:
        return _fail(f"{label(field)} is required")
    return PASS


def check_email(email: str) -> RuleResult:
    try:
        validate_email(email or "", check_deliverability=False)
    except EmailNotValidError:
        return _fail("Please enter a valid email address")
    return PASS


def check_phone(phone: str) -> RuleResult:
    cleaned = re.sub(r"\s", "", phone or "")
    if not PHONE_RE.match(cleaned):
        return _fail("Please enter a valid phone number")
    return PASS


def clean_instagram_handle(handle: str) -> str:
    return (handle or "").strip().removeprefix("@")


def check_instagram_handle(handle: str) -> RuleResult:
    # digits and uppercase are rejected on purpose
    cleaned = clean_instagram_handle(handle)
    if not cleaned or not INSTAGRAM_RE.match(cleaned):
        return _fail("Instagram handle may only contain lowercase letters, dots and underscores")
    return PASS


def normalize_website(value: Optional[str]) -> Optional[str]:
    """Prefix https:// when no scheme is given. Raises ValueError for junk."""
    if value is None or not value.strip():
        return None
    url = value.strip()
    if not re.match(r"^https?://", url, re.IGNORECASE):
        url = f"https://{url}"
    parsed = urlparse(url)
    if not parsed.netloc or re.search(r"\s", url):
        raise ValueError("Invalid URL format")
    return url


def check_range(value: Any, low: float, high: float, field: str = "value") -> RuleResult:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return _fail(f"{label(field)} must be a number")
    if value < low or value > high:
        return _fail(f"{label(field)} must be between {low} and {high}")
    return PASS


def check_age(age: Any) -> RuleResult:
    return check_range(age, *AGE_RANGE, field="age")


def check_height(height_cm: Any) -> RuleResult:
    return check_range(height_cm, *HEIGHT_RANGE, field="heightCm")


def check_measurement(value: Any, field: str) -> RuleResult:
    return check_range(value, *MEASUREMENT_RANGE, field=field)


def budget_floor(duration: str) -> int:
    return BUDGET_FLOORS[duration]


def check_budget(duration: str, offered: int) -> RuleResult:
    floor = budget_floor(duration)
    if offered < floor:
        return _fail(f"Minimum budget for {DURATION_LABELS[duration]} is {floor:,} EGP")
    return PASS


def check_photo_files(sizes: Sequence[int], count: int = config.APPLICATION_PHOTO_COUNT,
                      max_bytes: int = config.MAX_PHOTO_BYTES,
                      max_total: int = config.MAX_TOTAL_PHOTO_BYTES) -> RuleResult:
    """File constraints by byte size: exact count, per-file and aggregate ceilings."""
    if len(sizes) != count:
        return _fail(f"Please upload exactly {count} photos")
    for i, size in enumerate(sizes, start=1):
        if size <= 0:
            return _fail(f"Photo {i} is empty")
        if size > max_bytes:
            return _fail(f"Photo {i} is larger than {max_bytes // (1024 * 1024)}MB")
    if sum(sizes) > max_total:
        return _fail(f"Photos must be smaller than {max_total // (1024 * 1024)}MB in total")
    return PASS


def check_photo_urls(urls: Sequence[str], count: int = config.APPLICATION_PHOTO_COUNT) -> RuleResult:
    if len(urls) != count:
        return _fail(f"Please upload exactly {count} photos")
    for url in urls:
        parsed = urlparse(url or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            return _fail("Photo URLs must be valid http(s) URLs")
    return PASS


def collect_errors(results: Dict[str, RuleResult]) -> Dict[str, str]:
    return {field: r.message for field, r in results.items() if not r.ok}


# ----------------------
# Application wizard
# ----------------------

APPLICATION_STEPS = {
    1: ["name", "email", "phone", "location", "instagramHandle"],
    2: ["gender", "heightCm", "shirtSize", "pantSize", "shoesSize", "bustCm", "waistCm", "age"],
    3: ["categories", "modelingExperience", "photos"],
    4: ["termsAccepted"],
}
OPTIONAL_FIELDS = {"phone", "nickname", "bio"}


def _check_field(field: str, value: Any) -> RuleResult:
    if field in OPTIONAL_FIELDS and (value is None or value == ""):
        return PASS
    required = check_required(value, field)
    if not required.ok:
        return required
    if field == "email":
        return check_email(value)
    if field == "phone":
        return check_phone(value)
    if field == "instagramHandle":
        return check_instagram_handle(value)
    if field == "heightCm":
        return check_height(value)
    if field == "age":
        return check_age(value)
    if field in ("bustCm", "waistCm"):
        return check_measurement(value, field)
    if field == "categories":
        if not isinstance(value, list) or not all(isinstance(c, str) and c.strip() for c in value):
            return _fail("Please choose at least one category")
        return PASS
    if field == "photos":
        # the wizard sends either byte sizes or already-uploaded URLs
        if isinstance(value, list) and value and all(isinstance(v, str) for v in value):
            return check_photo_urls(value)
        if isinstance(value, list) and all(isinstance(v, int) and not isinstance(v, bool) for v in value):
            return check_photo_files(value)
        return _fail("Photos must be a list of file sizes or URLs")
    if field == "termsAccepted":
        return PASS if value is True else _fail("Terms must be accepted")
    return PASS


def validate_application_step(step: int, data: Dict[str, Any]) -> Dict[str, str]:
    """Field-keyed errors for one wizard step (1-4)."""
    if step not in APPLICATION_STEPS:
        raise ValueError(f"Unknown step {step}")
    return collect_errors({f: _check_field(f, data.get(f)) for f in APPLICATION_STEPS[step]})


def split_categories(values: Iterable[str]) -> List[str]:
    seen: List[str] = []
    for v in values:
        v = v.strip()
        if v and v not in seen:
            seen.append(v)
    return seen
