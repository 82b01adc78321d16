"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from domain.product import Product, ProductVariant


# ============================================================================
# Product Models
# ============================================================================

class ProductVariantModel(BaseModel):
    """Variant of a catalog product."""
    id: str
    in_stock: bool = True
    size: Optional[str] = None
    color: Optional[str] = None


class ProductModel(BaseModel):
    """Catalog product read model supplied by the storefront."""
    id: str
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    name: Optional[str] = None
    slug: Optional[str] = None
    variants: List[ProductVariantModel] = Field(default_factory=list)

    def to_domain(self) -> Product:
        return Product(
            product_id=self.id,
            price=self.price,
            name=self.name,
            slug=self.slug,
            variants=tuple(
                ProductVariant(variant_id=v.id, in_stock=v.in_stock, size=v.size, color=v.color)
                for v in self.variants
            ),
        )


# ============================================================================
# Cart Models
# ============================================================================

class AddItemRequest(BaseModel):
    """Request to add a product variant to the cart."""
    product: ProductModel
    variant_id: str
    quantity: int = 1
    earned_discount: Optional[int] = Field(
        None,
        description="Discount percent for this line. Omit to use the product's live earned discount."
    )

    class Config:
        json_schema_extra = {
            "example": {
                "product": {
                    "id": "cursed-tee",
                    "price": "20.00",
                    "variants": [{"id": "cursed-tee-m", "in_stock": True}]
                },
                "variant_id": "cursed-tee-m",
                "quantity": 2
            }
        }


class UpdateQuantityRequest(BaseModel):
    """Quantities outside 1-99 are clamped."""
    quantity: int


class ApplyDiscountRequest(BaseModel):
    item_id: str


class CartItemResponse(BaseModel):
    """Single cart line with its price breakdown."""
    item_id: str
    product_id: str
    variant_id: str
    quantity: int
    earned_discount: int
    added_at: datetime
    unit_price: Decimal
    original_price: Decimal
    discount_amount: Decimal
    final_price: Decimal


class DiscountResponse(BaseModel):
    discount_id: str
    product_id: str
    game_type: str
    discount_percent: int
    earned_at: datetime
    expires_at: datetime
    applied: bool


class CartTotalsResponse(BaseModel):
    subtotal: Decimal
    total_discount: Decimal
    effective_discount_percent: Decimal
    total: Decimal
    item_count: int
    savings: Decimal

    class Config:
        json_schema_extra = {
            "example": {
                "subtotal": "40.00",
                "total_discount": "6.00",
                "effective_discount_percent": "15.0",
                "total": "34.00",
                "item_count": 2,
                "savings": "6.00"
            }
        }


class CartResponse(BaseModel):
    """Cart with live discounts and derived totals."""
    session_id: str
    items: List[CartItemResponse]
    discounts: List[DiscountResponse]
    totals: CartTotalsResponse
    last_updated: datetime


# ============================================================================
# Game Models
# ============================================================================

class TierResponse(BaseModel):
    minimum_score: int
    discount_percent: int


class GameResponse(BaseModel):
    game_type: str
    title: str
    duration_seconds: float
    tier_table: str
    tiers: List[TierResponse]
    lives: Optional[int] = None
    completion_bonus: int = 0


class OpenSessionRequest(BaseModel):
    product_id: str = Field(..., min_length=1)


class PointsRequest(BaseModel):
    """Positive delta adds points, negative delta subtracts them."""
    delta: int


class LoseLifeRequest(BaseModel):
    count: int = Field(1, ge=1)


class NextThresholdResponse(BaseModel):
    threshold: int
    points_needed: int
    discount_percent: int


class AwardResponse(BaseModel):
    discount_id: str
    discount_percent: int
    message: str
    subtext: str
    emoji: str
    can_retry: bool
    expires_at: datetime


class SessionResponse(BaseModel):
    session_id: str
    game_type: str
    product_id: str
    status: str
    score: int
    duration_seconds: float
    remaining_seconds: float
    lives: Optional[int] = None
    accepted: Optional[bool] = None
    next_threshold: Optional[NextThresholdResponse] = None
    progress_message: str
    award: Optional[AwardResponse] = None


class PlayedResponse(BaseModel):
    product_id: str
    played: bool


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    status_code: int
