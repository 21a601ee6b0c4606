"""Cart reconciliation: unit price resolution and cart totals.

Per-line display prices and the cart summary are both derived from
``price_with_discount`` so the summary always equals the sum of the lines.
"""
from typing import Iterable, Optional

from quickcart.schemas.cart import CartLineItem, CartSummary, LinePrice
from quickcart.schemas.product import Product, Variation


def price_with_discount(price: float, discount: float = 0) -> float:
    """Discounted unit price in cents; line totals multiply this rounded figure."""
    price = float(price or 0)
    discount_pct = float(discount or 0)
    return round(price * (1 - discount_pct / 100), 2) if discount_pct else round(price, 2)


def resolve_variation(product: Product, variation_id: Optional[str], selected_size: Optional[str] = None) -> Optional[Variation]:
    """Variation a line item refers to: by id first, then by size label."""
    if not product.hasVariations or not variation_id:
        return None
    for variation in product.variations:
        if variation.id == str(variation_id):
            return variation
    if selected_size:
        for variation in product.variations:
            if variation.size == selected_size:
                return variation
    return None


def unit_price(item: CartLineItem) -> float:
    # A variation that no longer exists falls back to the product base price
    variation = resolve_variation(item.product, item.variationId, item.selectedSize)
    if variation is not None:
        return float(variation.price)
    return float(item.product.price)


def price_line(item: CartLineItem) -> LinePrice:
    base = unit_price(item)
    discounted = price_with_discount(base, item.product.discount)
    original_total = round(base * item.quantity, 2)
    discounted_total = round(discounted * item.quantity, 2)
    return LinePrice(
        unitPrice=round(base, 2),
        discountedUnitPrice=discounted,
        quantity=item.quantity,
        lineOriginalPrice=original_total,
        lineDiscountedPrice=discounted_total,
        saving=round(original_total - discounted_total, 2),
        discount=item.product.discount,
    )


def summarize(items: Iterable[CartLineItem]) -> CartSummary:
    total_qty = 0
    total_discounted = 0.0
    total_original = 0.0
    for item in items:
        line = price_line(item)
        total_qty += item.quantity
        total_discounted += line.lineDiscountedPrice
        total_original += line.lineOriginalPrice
    return CartSummary(
        totalQuantity=total_qty,
        totalDiscountedPrice=round(total_discounted, 2),
        totalOriginalPrice=round(total_original, 2),
    )


def savings(summary: CartSummary) -> float:
    return round(summary.totalOriginalPrice - summary.totalDiscountedPrice, 2)
