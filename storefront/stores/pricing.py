"""Cart-page price summary: shipping, tax and coupon discount."""

from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel

CENT = Decimal("0.01")


class InvalidCoupon(ValueError):
    """Raised for a coupon code the store does not know."""


class OrderSummary(BaseModel):
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal
    coupon_code: str | None = None


class PricingRules(BaseModel):
    free_shipping_threshold: Decimal = Decimal("50")
    shipping_flat_rate: Decimal = Decimal("9.99")
    tax_rate: Decimal = Decimal("0.08")
    coupons: dict[str, Decimal] = {"SAVE10": Decimal("0.10")}

    @classmethod
    def from_settings(cls, settings) -> "PricingRules":
        return cls(
            free_shipping_threshold=Decimal(str(settings.FREE_SHIPPING_THRESHOLD)),
            shipping_flat_rate=Decimal(str(settings.SHIPPING_FLAT_RATE)),
            tax_rate=Decimal(str(settings.TAX_RATE)),
            coupons={code.upper(): Decimal(str(rate)) for code, rate in settings.COUPONS.items()},
        )


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def order_summary(
    subtotal: Decimal | float,
    coupon_code: str | None = None,
    rules: PricingRules | None = None,
) -> OrderSummary:
    """
    Price a cart subtotal.

    Shipping is free above the threshold, tax is a flat rate of the subtotal
    and a coupon takes a percentage of the subtotal. Codes are matched
    case-insensitively; an unknown code raises InvalidCoupon.
    """
    rules = rules or PricingRules()
    subtotal = _money(Decimal(str(subtotal)))

    code = coupon_code.strip().upper() if coupon_code and coupon_code.strip() else None
    if code is not None and code not in rules.coupons:
        raise InvalidCoupon(f"Coupon {coupon_code!r} is not valid")

    shipping = Decimal("0") if subtotal > rules.free_shipping_threshold else rules.shipping_flat_rate
    tax = _money(subtotal * rules.tax_rate)
    discount = _money(subtotal * rules.coupons[code]) if code else Decimal("0")
    return OrderSummary(
        subtotal=subtotal,
        shipping=_money(shipping),
        tax=tax,
        discount=discount,
        total=_money(subtotal + shipping + tax - discount),
        coupon_code=code,
    )


def clamp_quantity(requested: int, stock: int | None) -> int:
    """Keep a quantity picker inside 1..stock. A display hint; the backend decides."""
    upper = stock if stock is not None and stock > 0 else requested
    return max(1, min(requested, upper))
