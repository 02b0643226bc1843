import logging
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.db import transaction

from apps.catalog.models import Metal, Product, Purity, normalize_purity
from apps.common.exceptions import DomainError
from apps.rates.models import Rate

logger = logging.getLogger(__name__)


class RateError(DomainError):
    code = "invalid_rate"


def _parse_price(price):
    try:
        value = Decimal(str(price))
    except (InvalidOperation, TypeError, ValueError):
        raise RateError("Price must be a number.", fields={"price": ["Price must be a number."]})
    if not value.is_finite() or value < 0:
        raise RateError("Price must be zero or greater.", fields={"price": ["Price must be zero or greater."]})
    return value.quantize(Decimal("0.01"))


def set_rate(metal, purity, price, *, user=None):
    metal = str(metal or "").strip().lower()
    if metal not in Metal.values:
        raise RateError(f"Unknown metal '{metal}'.", fields={"metal": ["Must be gold or silver."]})
    purity = normalize_purity(metal, purity)
    price = _parse_price(price)

    with transaction.atomic():
        rate = Rate.objects.select_for_update().filter(metal=metal, purity=purity).first()
        if rate is None:
            rate = Rate.objects.create(metal=metal, purity=purity, price=price, updated_by=user)
        else:
            rate.price = price
            rate.updated_by = user
            rate.save(update_fields=["price", "updated_by", "updated_at"])

        products = Product.objects.filter(metal=metal)
        if metal == Metal.GOLD:
            products = products.filter(purity=purity)
        products = list(products)
        for product in products:
            product.price = product.price_for_rate(price)
        Product.objects.bulk_update(products, ["price"])

    logger.info("rate %s/%s set to %s, repriced %s products", metal, purity, price, len(products))
    return rate, len(products)


def current_rate(metal, purity=None):
    purity = normalize_purity(metal, purity)
    rate = Rate.objects.filter(metal=metal, purity=purity).first()
    return rate.price if rate else None


def current_gold_rate(purity=None):
    return current_rate(Metal.GOLD, purity or settings.CHIT_DEFAULT_PURITY)


def seed_rates():
    created = []
    defaults = [(Metal.GOLD, purity) for purity in (Purity.K24, Purity.K22, Purity.K18)] + [(Metal.SILVER, None)]
    for metal, purity in defaults:
        rate, was_created = Rate.objects.get_or_create(metal=metal, purity=purity, defaults={"price": Decimal("0.00")})
        if was_created:
            created.append(rate)
    logger.info("seeded %s rate rows", len(created))
    return created
