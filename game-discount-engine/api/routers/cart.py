"""
Cart API Endpoints.

Endpoints for cart lines, earned discounts and totals. Unknown item or
discount ids are not errors: the cart is returned unchanged.
"""

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_cart_service
from api.models import (
    AddItemRequest,
    ApplyDiscountRequest,
    CartItemResponse,
    CartResponse,
    CartTotalsResponse,
    DiscountResponse,
    UpdateQuantityRequest,
)
from domain.cart import Discount
from domain.games import GameType
from domain.totals import CartTotals, compute_totals, line_prices
from services.cart_service import CartService

router = APIRouter()


def _discount_response(discount: Discount) -> DiscountResponse:
    game_type = discount.game_type
    return DiscountResponse(
        discount_id=discount.discount_id,
        product_id=discount.product_id,
        game_type=game_type.value if isinstance(game_type, GameType) else str(game_type),
        discount_percent=discount.discount_percent,
        earned_at=discount.earned_at,
        expires_at=discount.expires_at,
        applied=discount.applied,
    )


def _totals_response(totals: CartTotals) -> CartTotalsResponse:
    return CartTotalsResponse(
        subtotal=totals.subtotal,
        total_discount=totals.total_discount,
        effective_discount_percent=totals.effective_discount_percent,
        total=totals.total,
        item_count=totals.item_count,
        savings=totals.savings,
    )


def _cart_response(service: CartService) -> CartResponse:
    session_id, cart, discounts = service.snapshot()
    prices = {price.item_id: price for price in line_prices(cart)}

    items = [
        CartItemResponse(
            item_id=item.item_id,
            product_id=item.product_id,
            variant_id=item.variant_id,
            quantity=item.quantity,
            earned_discount=item.earned_discount,
            added_at=item.added_at,
            unit_price=item.product.price,
            original_price=prices[item.item_id].original_price,
            discount_amount=prices[item.item_id].discount_amount,
            final_price=prices[item.item_id].final_price,
        )
        for item in cart.items
    ]

    return CartResponse(
        session_id=session_id,
        items=items,
        discounts=[_discount_response(d) for d in discounts],
        totals=_totals_response(compute_totals(cart)),
        last_updated=cart.last_updated,
    )


@router.get("/cart", response_model=CartResponse, summary="Get Cart")
def get_cart(service: CartService = Depends(get_cart_service)):
    """Current cart with live (unexpired) discounts and totals."""
    return _cart_response(service)


@router.delete("/cart", response_model=CartResponse, summary="Clear Cart")
def clear_cart(service: CartService = Depends(get_cart_service)):
    """Remove every line and discount and start a new cart session."""
    service.clear_cart()
    return _cart_response(service)


@router.get("/cart/totals", response_model=CartTotalsResponse, summary="Get Cart Totals")
def get_totals(service: CartService = Depends(get_cart_service)):
    """
    Totals with the cart-level discount cap applied.

    Total discount never exceeds 15% of the subtotal, however many lines carry
    an earned discount.
    """
    return _totals_response(service.totals())


@router.post("/cart/items", response_model=CartResponse, summary="Add Item")
def add_item(request: AddItemRequest, service: CartService = Depends(get_cart_service)):
    """
    Add a product variant to the cart.

    Lines merge only when product, variant and earned discount all match.
    When `earned_discount` is omitted the product's live game discount is used.
    """
    try:
        service.add_to_cart(
            request.product.to_domain(),
            request.variant_id,
            quantity=request.quantity,
            earned_discount=request.earned_discount,
        )
        return _cart_response(service)

    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to add item: {str(e)}"
        )


@router.patch("/cart/items/{item_id}", response_model=CartResponse, summary="Update Quantity")
def update_quantity(item_id: str, request: UpdateQuantityRequest, service: CartService = Depends(get_cart_service)):
    service.update_quantity(item_id, request.quantity)
    return _cart_response(service)


@router.delete("/cart/items/{item_id}", response_model=CartResponse, summary="Remove Item")
def remove_item(item_id: str, service: CartService = Depends(get_cart_service)):
    service.remove_from_cart(item_id)
    return _cart_response(service)


@router.get("/cart/discounts", response_model=list[DiscountResponse], summary="List Live Discounts")
def list_discounts(service: CartService = Depends(get_cart_service)):
    return [_discount_response(d) for d in service.live_discounts()]


@router.post("/cart/discounts/{discount_id}/apply", response_model=CartResponse, summary="Apply Discount")
def apply_discount(discount_id: str, request: ApplyDiscountRequest, service: CartService = Depends(get_cart_service)):
    """
    Apply an earned discount to a cart line.

    Expired discounts and discounts for a different product are ignored.
    """
    service.apply_discount(discount_id, request.item_id)
    return _cart_response(service)


@router.post("/cart/discounts/{discount_id}/remove", response_model=CartResponse, summary="Unapply Discount")
def remove_discount(discount_id: str, service: CartService = Depends(get_cart_service)):
    """Mark a discount unapplied. Lines keep the percent they already captured."""
    service.remove_discount(discount_id)
    return _cart_response(service)
