"""
API request and response models for the catalog REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in catalog/models.py and
auth/models.py, which own the internal domain representation. Route handlers
map between the two.

Every response is an envelope: `success` plus `data` on success, or
`success=false` with `code` and `message` on error (see ErrorResponse).

Product request bodies accept the English field names and, for existing
clients, the legacy Spanish names (nombre, precio, categoria, ...).
"""

from dataclasses import asdict
from typing import Annotated, Any, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    field_validator,
    model_validator,
)

from auth.models import TokenClaims, User
from auth.policy import is_valid_email, password_problems
from catalog.models import CatalogStats, Product

# ---------------------------------------------------------------------------
# Shared validators
# ---------------------------------------------------------------------------


def _check_password_strength(value: str) -> str:
    problems = password_problems(value)
    if problems:
        raise ValueError("Password must contain " + ", ".join(problems) + ".")
    return value


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


# Identifiers are trimmed. Passwords are taken byte-for-byte so the value
# hashed on register/change-password is the value checked on login.
Identifier = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
Password = Annotated[str, StringConstraints(strip_whitespace=False, min_length=1, max_length=255)]


# ---------------------------------------------------------------------------
# Product request models
# ---------------------------------------------------------------------------


class ProductCreate(BaseModel):
    """Request body for POST /api/products.

    The single validation schema for product creation. Every descriptive
    field is required; availability, rating, review count and timestamps are
    set by the server and ignored if sent.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    name: str = Field(min_length=1, max_length=255, validation_alias=_alias("name", "nombre"))
    model: str = Field(min_length=1, max_length=255, validation_alias=_alias("model", "modelo"))
    description: str = Field(min_length=1, max_length=5000, validation_alias=_alias("description", "descripcion"))
    price: float = Field(ge=0, allow_inf_nan=False, validation_alias=_alias("price", "precio"))
    category: str = Field(min_length=1, max_length=100, validation_alias=_alias("category", "categoria"))
    brand: str = Field(min_length=1, max_length=100, validation_alias=_alias("brand", "marca"))
    stock: int = Field(ge=0)
    featured: bool = Field(default=False, validation_alias=_alias("featured", "destacado"))
    rgb: bool = False
    tags: list[str] = Field(default_factory=list, max_length=50)


class ProductUpdate(BaseModel):
    """Request body for PUT /api/products/{id}.

    Partial: only the fields present in the body are written. Explicit nulls
    are rejected because every stored field is non-nullable.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    name: Optional[str] = Field(default=None, min_length=1, max_length=255, validation_alias=_alias("name", "nombre"))
    model: Optional[str] = Field(default=None, min_length=1, max_length=255, validation_alias=_alias("model", "modelo"))
    description: Optional[str] = Field(
        default=None, min_length=1, max_length=5000, validation_alias=_alias("description", "descripcion")
    )
    price: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False, validation_alias=_alias("price", "precio"))
    category: Optional[str] = Field(
        default=None, min_length=1, max_length=100, validation_alias=_alias("category", "categoria")
    )
    brand: Optional[str] = Field(default=None, min_length=1, max_length=100, validation_alias=_alias("brand", "marca"))
    stock: Optional[int] = Field(default=None, ge=0)
    featured: Optional[bool] = Field(default=None, validation_alias=_alias("featured", "destacado"))
    rgb: Optional[bool] = None
    rating: Optional[float] = Field(default=None, ge=0, le=5, validation_alias=_alias("rating", "valoracion"))
    review_count: Optional[int] = Field(default=None, ge=0, validation_alias=_alias("review_count", "num_reviews"))
    tags: Optional[list[str]] = Field(default=None, max_length=50)

    @model_validator(mode="after")
    def reject_explicit_nulls(self) -> "ProductUpdate":
        for name in self.model_fields_set:
            if getattr(self, name) is None:
                raise ValueError(f"Field '{name}' cannot be null.")
        return self

    def changes(self) -> dict[str, Any]:
        """Return only the fields the client sent."""
        return self.model_dump(exclude_unset=True)


class StockUpdate(BaseModel):
    """Request body for PATCH /api/products/{id}/stock."""

    stock: int = Field(ge=0)


# ---------------------------------------------------------------------------
# Product response models
# ---------------------------------------------------------------------------


class ProductOut(BaseModel):
    """Wire representation of a catalog product."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    model: str
    description: str
    price: float
    category: str
    brand: str
    stock: int
    availability: str
    featured: bool
    rgb: bool
    rating: float
    review_count: int
    tags: list[str]
    created_at: str
    updated_at: str

    @classmethod
    def from_product(cls, product: Product) -> "ProductOut":
        """Factory Method: the dataclass-to-wire mapping lives with the wire model."""
        return cls(**asdict(product))


class ProductResponse(BaseModel):
    """Single-product envelope (get, create, update, stock update)."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: Optional[str] = None
    data: ProductOut


class ProductListResponse(BaseModel):
    """Envelope for GET /api/products/featured."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: list[ProductOut]
    count: int


class CategoryResponse(BaseModel):
    """Envelope for GET /api/products/category/{categoria}."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: list[ProductOut]
    category: str
    count: int


class SearchResponse(BaseModel):
    """Envelope for GET /api/products/search. filters echoes only the filters applied."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: list[ProductOut]
    count: int
    search_term: Optional[str] = None
    filters: dict[str, Any] = Field(default_factory=dict)


class PaginationMeta(BaseModel):
    """Cursor pagination metadata.

    has_more is a heuristic (batch size == page size), not an exact count.
    total_items is the size of this page. Pass next_cursor back as ?cursor=
    to fetch the following page.
    """

    model_config = ConfigDict(frozen=True)

    current_page: int
    page_size: int
    has_more: bool
    total_items: int
    next_cursor: Optional[str] = None


class PaginatedProductsResponse(BaseModel):
    """Envelope for GET /api/products."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: list[ProductOut]
    pagination: PaginationMeta


class StatsOut(BaseModel):
    """Aggregate catalog statistics. Averages are null when the catalog is empty."""

    model_config = ConfigDict(frozen=True)

    total: int
    in_stock: int
    out_of_stock: int
    featured: int
    with_rgb: int
    average_rating: Optional[float]
    average_price: Optional[float]
    categories: list[str]
    brands: list[str]

    @classmethod
    def from_stats(cls, stats: CatalogStats) -> "StatsOut":
        return cls(**asdict(stats))


class StatsResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: StatsOut


# ---------------------------------------------------------------------------
# Auth request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /login. username may also be the account email."""

    username: Identifier
    password: Password


class RegisterRequest(BaseModel):
    """Request body for POST /register.

    Email shape and password strength are checked here, before the roster is
    consulted for uniqueness.
    """

    username: Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=50)]
    email: Identifier
    password: Password

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        if not is_valid_email(value):
            raise ValueError("Email address is not valid.")
        return value

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        return _check_password_strength(value)


class ChangePasswordRequest(BaseModel):
    """Request body for POST /change-password."""

    current_password: Password
    new_password: Password

    @field_validator("new_password")
    @classmethod
    def check_new_password(cls, value: str) -> str:
        return _check_password_strength(value)


# ---------------------------------------------------------------------------
# Auth response models
# ---------------------------------------------------------------------------


class UserOut(BaseModel):
    """Public view of a user. Never includes the password hash."""

    model_config = ConfigDict(frozen=True)

    id: str
    username: str
    email: str
    role: str

    @classmethod
    def from_user(cls, user: User) -> "UserOut":
        return cls(id=user.id or "", username=user.username, email=user.email, role=user.role)

    @classmethod
    def from_claims(cls, claims: TokenClaims) -> "UserOut":
        return cls(**claims.as_dict())


class TokenOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str
    token_type: str = "bearer"
    expires_in: int


class SessionOut(BaseModel):
    """Login/register payload: the user plus a freshly issued token."""

    model_config = ConfigDict(frozen=True)

    user: UserOut
    token: str
    token_type: str = "bearer"
    expires_in: int


class SessionResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    data: SessionOut


class ProfileOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: UserOut


class ProfileResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    data: ProfileOut


class TokenResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    data: TokenOut


# ---------------------------------------------------------------------------
# Generic envelopes
# ---------------------------------------------------------------------------


class MessageResponse(BaseModel):
    """Success envelope with no payload (delete, change-password)."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str


class HealthOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str


class HealthResponse(BaseModel):
    """Response for GET /."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    data: HealthOut


class ErrorDetail(BaseModel):
    """Machine-readable error payload carried in HTTPException.detail."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str


class ErrorResponse(BaseModel):
    """Error envelope returned on 4xx/5xx responses.

    code is machine-readable; message is safe to show to users and never
    contains internal exception text.
    """

    model_config = ConfigDict(frozen=True)

    success: bool = False
    code: str
    message: str
