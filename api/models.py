"""
API request and response models for Products CMS REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
catalog/models.py, which own the internal domain representation. Route
handlers map between the two.

Every response uses the same envelope:
    {"success": bool, "data"?: {...}, "error"?: str, "message"?: str}
Absent keys are omitted (model_dump(exclude_none=True)), never sent as null.

Auth request bodies declare every field optional on purpose. Missing-field
checks belong to auth.operations so the client gets the documented 400
message rather than a generic schema error.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import User
from catalog.models import Product

# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


class ApiResponse(BaseModel):
    """Shared envelope for every JSON response."""

    model_config = ConfigDict(frozen=True)

    success: bool
    data: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    message: Optional[str] = None

    def body(self) -> dict:
        return self.model_dump(exclude_none=True)


def ok(data: Optional[dict[str, Any]] = None, message: Optional[str] = None) -> dict:
    return ApiResponse(success=True, data=data, message=message).body()


def fail(error: str) -> dict:
    return ApiResponse(success=False, error=error).body()


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/auth/register.

    No whitespace stripping here: it would alter passwords. The credential
    store trims name and email itself.
    """

    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    age: Optional[int] = None


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login."""

    email: Optional[str] = None
    password: Optional[str] = None


class PublicUser(BaseModel):
    """Sanitized user. There is no password field to populate."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    age: Optional[int] = None
    is_active: bool
    last_login: Optional[str] = None
    created_at: str
    updated_at: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "PublicUser":
        return cls(**user.to_public())


def user_payload(user: User) -> dict:
    """data payload for auth responses: {"user": {...}}."""
    return {"user": PublicUser.from_user(user).model_dump()}


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


class ProductStatusEnum(str, Enum):
    draft = "Draft"
    published = "Published"
    archived = "Archived"


class ProductCreate(BaseModel):
    """Request body for POST /api/products."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    status: ProductStatusEnum = ProductStatusEnum.draft


class ProductUpdate(BaseModel):
    """Request body for PUT /api/products/{id}. Omitted fields are left unchanged."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    status: Optional[ProductStatusEnum] = None


class ProductOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    description: Optional[str]
    status: str
    created_by: str
    updated_by: Optional[str]
    created_at: str
    updated_at: str
    is_deleted: bool

    @classmethod
    def from_product(cls, product: Product) -> "ProductOut":
        return cls(
            id=product.id,
            name=product.name,
            description=product.description,
            status=product.status,
            created_by=product.created_by,
            updated_by=product.updated_by,
            created_at=product.created_at,
            updated_at=product.updated_at,
            is_deleted=product.is_deleted,
        )


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    database: str = "ok"
