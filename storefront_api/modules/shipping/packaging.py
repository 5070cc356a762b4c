"""
Package planning.

Builds the box list for a cart from CMS shipping metadata, with per-item
overrides from the request and configured defaults for anything unknown.
Also decides whether the cart must go freight or needs no shipping at all.
"""
import logging
import math
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from storefront_api.core.exceptions import ShippingValidationError
from storefront_api.modules.shipping.types import Package, PackagePlan
from storefront_api.schemas.shipping import CartItemInput
from storefront_api.services.sanity_client import CatalogProduct

logger = logging.getLogger(__name__)

FREIGHT_CLASS = "freight"
INSTALL_ONLY_CLASS = "installonly"
MIN_PACKAGE_WEIGHT_LB = 0.1


@dataclass(frozen=True)
class PackagingDefaults:
    """Default box and freight thresholds (inches / pounds)."""
    length: float = 12.0
    width: float = 9.0
    height: float = 3.0
    weight: float = 2.0
    freight_weight_lb: float = 150.0
    freight_dimension_in: float = 60.0

    @classmethod
    def from_settings(cls, settings) -> "PackagingDefaults":
        return cls(
            length=settings.DEFAULT_BOX_LENGTH,
            width=settings.DEFAULT_BOX_WIDTH,
            height=settings.DEFAULT_BOX_HEIGHT,
            weight=settings.DEFAULT_BOX_WEIGHT_LB,
            freight_weight_lb=settings.FREIGHT_WEIGHT_THRESHOLD_LB,
            freight_dimension_in=settings.FREIGHT_DIMENSION_THRESHOLD_IN,
        )

    @property
    def dimensions(self) -> Tuple[float, float, float]:
        return (self.length, self.width, self.height)


def parse_dims(value: Optional[str]) -> Optional[Tuple[float, float, float]]:
    """
    Parse a CMS box dimension string such as '24 x 12 x 6 in'.

    Returns None unless three positive numbers are found.
    """
    if not value:
        return None
    cleaned = re.sub(r"[^0-9xX.]", "", str(value)).lower()
    parts = cleaned.split("x")
    if len(parts) < 3:
        return None
    try:
        numbers = [float(p) for p in parts[:3]]
    except ValueError:
        return None
    if all(n > 0 for n in numbers):
        return numbers[0], numbers[1], numbers[2]
    return None


def normalize_shipping_class(value: Optional[str]) -> str:
    """'Install Only', 'install_only' and 'install-only' -> 'installonly'"""
    return re.sub(r"[\s_-]+", "", (value or "").lower())


def _positive(value: Optional[float]) -> Optional[float]:
    return value if value is not None and value > 0 else None


def _index_products(products: Iterable[CatalogProduct]) -> Dict[str, CatalogProduct]:
    index: Dict[str, CatalogProduct] = {}
    for product in products:
        for key in (product.id, product.sku):
            if key and key not in index:
                index[key] = product
    return index


def plan_packages(
    cart: List[CartItemInput],
    products: Iterable[CatalogProduct],
    defaults: PackagingDefaults,
) -> PackagePlan:
    """
    Build the package plan for a cart.

    Args:
        cart: Normalized cart lines
        products: Catalog entries found for the cart identifiers
        defaults: Default box size/weight and freight thresholds

    Returns:
        PackagePlan with packages, unknown identifiers, totals and flags

    Raises:
        ShippingValidationError: cart weight or subtotal overflows
    """
    index = _index_products(products)
    plan = PackagePlan()
    total_weight = 0.0
    subtotal = 0.0

    for item in cart:
        product = None
        for key in (item.sku, item.id):
            if key and key in index:
                product = index[key]
                break

        quantity = item.quantity
        price = item.price if item.price is not None else (product.price if product else None)
        if price:
            subtotal += price * quantity

        shipping_class = normalize_shipping_class(product.shipping_class if product else None)
        if shipping_class == FREIGHT_CLASS:
            plan.freight = True
        if shipping_class == INSTALL_ONLY_CLASS:
            plan.install_only = True
            continue

        if item.dimensions:
            dims = (item.dimensions.length, item.dimensions.width, item.dimensions.height)
        else:
            dims = parse_dims(product.box_dimensions if product else None) or defaults.dimensions

        weight = (
            _positive(item.weight)
            or _positive(product.shipping_weight if product else None)
            or defaults.weight
        )
        weight = max(MIN_PACKAGE_WEIGHT_LB, weight)

        plan.max_dimension = max(plan.max_dimension, *dims)
        total_weight += weight * quantity

        sku = (product.sku if product and product.sku else None) or item.identifier
        title = product.title if product else None

        if product is None:
            plan.missing.append(item.identifier)

        if product is None or product.ships_alone:
            for _ in range(quantity):
                plan.packages.append(Package(round(weight, 2), *dims, sku=sku, title=title))
        else:
            plan.packages.append(Package(round(weight * quantity, 2), *dims, sku=sku, title=title))

    if not (math.isfinite(subtotal) and math.isfinite(total_weight)):
        raise ShippingValidationError("Cart totals are out of range", field="cart")

    plan.total_weight = round(total_weight, 2)
    plan.subtotal = round(subtotal, 2)

    if plan.total_weight >= defaults.freight_weight_lb or plan.max_dimension >= defaults.freight_dimension_in:
        plan.freight = True

    if plan.missing:
        logger.info(f"Packed {len(plan.missing)} cart item(s) with default dimensions: {plan.missing}")

    return plan
