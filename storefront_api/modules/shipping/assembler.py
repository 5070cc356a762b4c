"""
Quote assembly: ordering, recommendation and free shipping.
"""
from dataclasses import dataclass, replace
from typing import List

from storefront_api.modules.shipping.rate_source import sort_options
from storefront_api.modules.shipping.types import PackagePlan, QuoteResult, RateLookup, ShippingOption

FREIGHT_MESSAGE = "Freight required due to weight/dimensions or product class."
INSTALL_ONLY_MESSAGE = "Selected products are install-only and do not require shipping."


@dataclass(frozen=True)
class FreeShippingPolicy:
    """Subtotal at or above `threshold` ships free. A threshold of 0 disables it."""
    threshold: float = 0.0

    def applies(self, subtotal: float) -> bool:
        return self.threshold > 0 and subtotal >= self.threshold


def apply_free_shipping(options: List[ShippingOption]) -> List[ShippingOption]:
    """Zero out the cheapest option; the rest stay for comparison."""
    if not options:
        return options
    cheapest = replace(options[0], rate=0.0, free_shipping=True)
    return [cheapest] + list(options[1:])


def assemble_quote(lookup: RateLookup, plan: PackagePlan, policy: FreeShippingPolicy) -> QuoteResult:
    """
    Build the success result for a rated plan.

    Args:
        lookup: Options from the rate source
        plan: Package plan the options were rated for
        policy: Free-shipping rule

    Returns:
        QuoteResult with options cheapest first and the cheapest recommended
    """
    options = sort_options(lookup.options)
    if policy.applies(plan.subtotal):
        options = apply_free_shipping(options)

    return QuoteResult(
        success=True,
        options=options,
        recommended=options[0] if options else None,
        freight=False,
        install_only=plan.install_only,
        missing=list(plan.missing),
        packages=list(plan.packages),
        subtotal=plan.subtotal,
        source=lookup.source,
    )


def freight_quote(plan: PackagePlan) -> QuoteResult:
    return QuoteResult(
        success=True,
        freight=True,
        install_only=plan.install_only,
        missing=list(plan.missing),
        packages=list(plan.packages),
        subtotal=plan.subtotal,
        message=FREIGHT_MESSAGE,
    )


def install_only_quote(plan: PackagePlan) -> QuoteResult:
    return QuoteResult(
        success=True,
        install_only=True,
        missing=list(plan.missing),
        packages=[],
        subtotal=plan.subtotal,
        message=INSTALL_ONLY_MESSAGE,
    )
