"""
Domain models.

All models serialise to camelCase JSON, which is the format used by the local
cache, the REST backend and the messaging bridge. Input also accepts the
snake_case column names returned by the SQL-backed REST variant.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .config import settings


class ServiceType(str, Enum):
    DTH = "DTH Connection"
    BROADBAND = "WiFi / Broadband"


class LeadStatus(str, Enum):
    NEW = "New"
    CONTACTED = "Contacted"
    INTERESTED = "Interested"
    INSTALLED = "Installed"
    CANCELLED = "Cancelled"


class Operator(str, Enum):
    TATA_PLAY = "Tata Play"
    AIRTEL_DTH = "Airtel Digital TV"
    DISH_TV = "Dish TV"
    VIDEOCON_D2H = "Videocon d2h"
    JIO_FIBER = "Jio Fiber"
    AIRTEL_XSTREAM = "Airtel Xstream"
    ACT_FIBERNET = "ACT Fibernet"
    OTHER = "Other"


class LeadSource(str, Enum):
    WEBSITE = "Website"
    WHATSAPP = "WhatsApp"
    MANUAL = "Manual"
    FACEBOOK = "Facebook"


class Channel(str, Enum):
    EMAIL = "email"
    TELEGRAM = "telegram"
    WHATSAPP = "whatsapp"
    DESKTOP = "desktop"


DTH_OPERATORS: list[Operator] = [
    Operator.TATA_PLAY,
    Operator.AIRTEL_DTH,
    Operator.DISH_TV,
    Operator.VIDEOCON_D2H,
]

BROADBAND_OPERATORS: list[Operator] = [
    Operator.JIO_FIBER,
    Operator.AIRTEL_XSTREAM,
    Operator.ACT_FIBERNET,
    Operator.OTHER,
]

OPERATORS_BY_SERVICE: dict[ServiceType, list[Operator]] = {
    ServiceType.DTH: DTH_OPERATORS,
    ServiceType.BROADBAND: BROADBAND_OPERATORS,
}


def now_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def _to_epoch_ms(value: Any) -> Any:
    """SQL rows may carry timestamps as datetimes or ISO strings."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)
    if isinstance(value, str) and not value.strip().isdigit():
        try:
            return _to_epoch_ms(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            return value
    return value


def _check_operator(service_type: Optional[ServiceType], operator: Optional[Operator]) -> None:
    if service_type is None or operator is None:
        return
    if operator not in OPERATORS_BY_SERVICE[service_type]:
        raise ValueError(f"operator {operator.value!r} is not offered for {service_type.value!r}")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Leads
# ---------------------------------------------------------------------------

class LeadNote(CamelModel):
    id: str
    text: str
    created_at: int
    created_by: str


class Lead(CamelModel):
    id: str
    name: str
    mobile: str
    location: str = ""
    service_type: Optional[ServiceType] = None
    operator: Optional[Operator] = None
    status: LeadStatus = LeadStatus.NEW
    source: LeadSource = LeadSource.WEBSITE
    created_at: int = Field(default_factory=now_ms)
    order_id: Optional[str] = None
    notes: Optional[list[LeadNote]] = None
    follow_up_date: Optional[int] = None
    user_id: Optional[str] = None

    @field_validator("created_at", "follow_up_date", mode="before")
    @classmethod
    def _epoch_ms(cls, v: Any) -> Any:
        return _to_epoch_ms(v)

    @model_validator(mode="after")
    def _operator_matches_service(self) -> "Lead":
        _check_operator(self.service_type, self.operator)
        return self

    def core_fields(self) -> dict[str, Any]:
        """Everything except the backend-assigned identifier."""
        data = self.to_json()
        data.pop("id", None)
        return data


class LeadCaptureForm(CamelModel):
    """Lead form payload, validated before any persistence attempt."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True
    )

    name: str = Field(min_length=1)
    mobile: str = Field(pattern=r"^[0-9]{10}$")
    location: str = Field(min_length=1)
    service_type: ServiceType
    operator: Operator

    @model_validator(mode="after")
    def _operator_matches_service(self) -> "LeadCaptureForm":
        _check_operator(self.service_type, self.operator)
        return self


# ---------------------------------------------------------------------------
# Notification settings
# ---------------------------------------------------------------------------

class NotificationConfig(CamelModel):
    email_enabled: bool = False
    web3forms_key: str = Field(default="", alias="web3formsKey")
    admin_email: str = ""

    telegram_enabled: bool = False
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""

    whatsapp_enabled: bool = False
    whatsapp_api_url: str = Field(default_factory=lambda: settings.whatsapp_api_url)
    whatsapp_api_key: str = ""
    whatsapp_session_id: str = "DTHSTORE"
    whatsapp_admin_number: str = ""

    browser_notifications_enabled: bool = True

    def is_ready(self, channel: Channel) -> bool:
        """Enabled and every required credential present; anything less means off."""
        if channel is Channel.EMAIL:
            return self.email_enabled and bool(self.web3forms_key)
        if channel is Channel.TELEGRAM:
            return (
                self.telegram_enabled
                and bool(self.telegram_bot_token)
                and bool(self.telegram_chat_id)
            )
        if channel is Channel.WHATSAPP:
            return (
                self.whatsapp_enabled
                and bool(self.whatsapp_api_url)
                and bool(self.whatsapp_admin_number)
            )
        return self.browser_notifications_enabled

    @property
    def whatsapp_base_url(self) -> str:
        return self.whatsapp_api_url.rstrip("/")

    def whatsapp_headers(self, json_body: bool = True) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"} if json_body else {}
        if self.whatsapp_api_key:
            headers["x-api-key"] = self.whatsapp_api_key
        return headers


# ---------------------------------------------------------------------------
# Catalog / CMS / users
# ---------------------------------------------------------------------------

class Product(CamelModel):
    id: str
    title: str
    price: str
    original_price: str = ""
    type: Literal["DTH", "Broadband"]
    features: list[str] = Field(default_factory=list)
    image: str = ""
    color: str = ""
    is_best_seller: Optional[bool] = None

    @field_validator("features", mode="before")
    @classmethod
    def _features_from_json(cls, v: Any) -> Any:
        # MySQL returns the JSON column as a string
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [v]
        return v


class NavLink(CamelModel):
    id: str
    label: str
    target: str
    is_special: Optional[bool] = None


class HeroSlide(CamelModel):
    id: str
    image: str
    title: str
    subtitle: str
    cta: str


class SpecialOfferImages(CamelModel):
    hero_background: str = ""
    side_image: str = ""


class SiteConfig(CamelModel):
    logo_text: str
    logo_color_class: str
    logo_image: Optional[str] = None
    nav_links: list[NavLink] = Field(default_factory=list)
    hero_slides: list[HeroSlide] = Field(default_factory=list)
    special_offer_images: SpecialOfferImages = Field(default_factory=SpecialOfferImages)


class User(CamelModel):
    id: str
    username: str
    name: str
    role: Literal["ADMIN", "STAFF"]
