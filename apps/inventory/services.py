import logging
import uuid
from collections import defaultdict

from django.db import transaction
from django.db.models import Sum
from django.db.models.functions import Coalesce

from apps.catalog.models import Product
from apps.common.exceptions import DomainError
from apps.inventory.models import InventoryMovement, MovementReason

logger = logging.getLogger(__name__)


class StockError(DomainError):
    code = "invalid_stock"


def stock_on_hand(product_id):
    result = InventoryMovement.objects.filter(product_id=product_id).aggregate(pieces=Coalesce(Sum("pieces"), 0))
    return result["pieces"]


def sync_availability(product_ids):
    """Flag each product available only while it has pieces on hand."""
    product_ids = set(product_ids)
    if not product_ids:
        return
    on_hand = dict(
        InventoryMovement.objects.filter(product_id__in=product_ids)
        .values("product_id")
        .annotate(pieces=Sum("pieces"))
        .values_list("product_id", "pieces")
    )
    in_stock = [pk for pk in product_ids if on_hand.get(pk, 0) > 0]
    Product.objects.filter(pk__in=product_ids).exclude(pk__in=in_stock).update(available=False)
    Product.objects.filter(pk__in=in_stock).update(available=True)


def record_movement(*, product, reason, pieces, reference, note="", user=None):
    if reason == MovementReason.COUNT and stock_on_hand(product.id) + pieces < 0:
        raise StockError(
            f"A stock count cannot leave {product.sku} below zero pieces.",
            fields={"pieces": ["Exceeds pieces on hand."]},
        )
    with transaction.atomic():
        movement = InventoryMovement.objects.create(
            product=product,
            reason=reason,
            pieces=pieces,
            reference=reference,
            note=note,
            created_by=user,
        )
        sync_availability([product.id])
    return movement


def count_to(product, target, note, user=None):
    """Book a count correction that brings ``product`` to ``target`` pieces."""
    delta = target - stock_on_hand(product.id)
    if delta == 0:
        return None
    return record_movement(
        product=product,
        reason=MovementReason.COUNT,
        pieces=delta,
        reference=f"count-{uuid.uuid4().hex[:12]}",
        note=note,
        user=user,
    )


def _pieces_by_product(lines):
    pieces = defaultdict(int)
    for line in lines:
        if line.product_id:
            pieces[line.product_id] += line.qty
    return pieces


def book_sale(order, lines, user=None):
    """Take sold pieces off the shelf. Sales are never refused for lack of stock."""
    pieces = _pieces_by_product(lines)
    for product in Product.objects.filter(pk__in=pieces):
        InventoryMovement.objects.create(
            product=product,
            reason=MovementReason.SALE,
            pieces=-pieces[product.pk],
            order=order,
            reference=order.order_id,
            note=f"Invoice {order.invoice_number}",
            created_by=user,
        )
        remaining = stock_on_hand(product.pk)
        if remaining < 0:
            logger.warning("order %s oversold %s, stock now %s", order.order_id, product.sku, remaining)
    sync_availability(pieces)


def reverse_sale(order, user=None):
    """Put an order's pieces back on the shelf before the order is removed."""
    pieces = _pieces_by_product(order.lines.all())
    for product in Product.objects.filter(pk__in=pieces):
        InventoryMovement.objects.create(
            product=product,
            reason=MovementReason.SALE_REVERSAL,
            pieces=pieces[product.pk],
            order=order,
            reference=order.order_id,
            note=f"Order {order.order_id} deleted",
            created_by=user,
        )
    sync_availability(pieces)
