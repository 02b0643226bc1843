import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction

from apps.catalog.models import Product
from apps.chits.models import GRAMS, Chit, ChitStatus, SettlementType
from apps.common.exceptions import DomainError
from apps.customers.models import Customer, normalize_phone
from apps.inventory.services import book_sale, reverse_sale
from apps.orders.models import MONEY, MULTIPLE_PAYMENT_MODE, Order, OrderLine, OrderPayment, PaymentMethod
from apps.rates.services import current_gold_rate
from apps.sequences.services import next_formatted_number

logger = logging.getLogger(__name__)

SETTLEABLE_CHIT_STATUSES = {ChitStatus.COMPLETED, ChitStatus.SETTLED}


class OrderError(DomainError):
    code = "invalid_order"


class ChitSettlementError(OrderError):
    code = "invalid_settlement"


def _amount(value, label, default=None):
    if value in (None, ""):
        if default is None:
            raise OrderError(f"{label} is required.", fields={label: ["This field is required."]})
        return default
    try:
        result = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise OrderError(f"{label} must be a number.", fields={label: ["Must be a number."]})
    if not result.is_finite() or result < 0:
        raise OrderError(f"{label} must be zero or greater.", fields={label: ["Must be zero or greater."]})
    return result


def chit_settlement_terms(chit_id, amount, gold_rate=None):
    chit = Chit.objects.filter(pk=chit_id).first()
    if chit is None:
        raise ChitSettlementError("Chit not found for settlement.", fields={"chit": ["Chit not found."]})
    if chit.status not in SETTLEABLE_CHIT_STATUSES:
        raise ChitSettlementError(
            f"Chit {chit.chit_number} is {chit.status}; only completed or settled chits can pay for an order.",
            fields={"chit": ["Chit is not completed."]},
        )

    rate = Decimal(str(gold_rate)) if gold_rate not in (None, "") else None
    if rate is None or rate <= 0:
        rate = current_gold_rate()
    if rate is None or rate <= 0:
        rate = chit.current_gold_rate

    gold_value = (chit.total_gold_weight * rate).quantize(MONEY)
    return {
        "chit": chit,
        "chit_number": chit.chit_number,
        "chit_customer_name": chit.customer_name,
        "chit_customer_phone": chit.customer_phone,
        "accumulated_gold": chit.total_gold_weight.quantize(GRAMS),
        "chit_amount": chit.chit_amount,
        "paid_amount": chit.total_paid_amount,
        "chit_gold_rate": Decimal(rate).quantize(MONEY),
        "gold_value": gold_value,
        "extra_amount": max(Decimal("0.00"), Decimal(amount) - gold_value).quantize(MONEY),
    }


def _line_snapshot(item):
    sku = str(item.get("sku") or "").strip()
    product = Product.objects.filter(sku=sku).first() if sku else None
    qty = int(item.get("qty") or 1)
    if qty < 1:
        raise OrderError("Item quantity must be at least 1.", fields={"qty": ["Must be at least 1."]})
    line = {
        "product": product,
        "sku": sku,
        "name": item.get("name") or (product.name if product else sku),
        "price": _amount(item.get("price"), "price").quantize(MONEY),
        "qty": qty,
    }
    if product is not None:
        line.update(
            category=product.category,
            metal=product.metal,
            cost_price=product.cost_price or Decimal("0"),
            metal_weight=product.weight,
            stone_weight=product.stone_weight,
            net_weight=product.net_weight,
        )
    else:
        line.update(
            category=item.get("category") or "",
            metal=item.get("metal") or "",
            cost_price=_amount(item.get("cost_price"), "cost_price", Decimal("0")),
            metal_weight=_amount(item.get("metal_weight"), "metal_weight", Decimal("0")),
            stone_weight=_amount(item.get("stone_weight"), "stone_weight", Decimal("0")),
            net_weight=_amount(item.get("net_weight"), "net_weight", Decimal("0")),
        )
    return line


def _payment_snapshot(payment):
    method = payment.get("method")
    if method not in PaymentMethod.values:
        raise OrderError(f"Unknown payment method '{method}'.", fields={"method": ["Invalid choice."]})
    amount = _amount(payment.get("amount"), "amount").quantize(MONEY)
    snapshot = {"method": method, "amount": amount}

    if method == PaymentMethod.GOLD_EXCHANGE:
        weight = _amount(payment.get("gold_weight"), "gold_weight")
        rate = _amount(payment.get("gold_rate_per_gram"), "gold_rate_per_gram")
        snapshot.update(
            gold_weight=weight.quantize(GRAMS),
            gold_rate_per_gram=rate.quantize(MONEY),
            calculated_amount=(weight * rate).quantize(MONEY),
        )
    elif method == PaymentMethod.CHIT_SETTLEMENT:
        if not payment.get("chit"):
            raise ChitSettlementError("A chit is required for chit settlement payments.", fields={"chit": ["This field is required."]})
        snapshot.update(chit_settlement_terms(payment["chit"], amount, payment.get("gold_rate")))
    return snapshot


def _payment_mode(payments):
    if len(payments) == 1:
        return PaymentMethod(payments[0]["method"]).label
    return MULTIPLE_PAYMENT_MODE


def create_order(*, items, payments=None, customer=None, discount=None, tax=None, user=None):
    if not items:
        raise OrderError("An order needs at least one item.", fields={"items": ["At least one item is required."]})
    customer = customer or {}
    payments = payments or []

    lines = [_line_snapshot(item) for item in items]
    payment_rows = [_payment_snapshot(payment) for payment in payments]
    subtotal = sum((line["price"] * line["qty"] for line in lines), Decimal("0.00")).quantize(MONEY)
    discount = _amount(discount, "discount", Decimal("0")).quantize(MONEY)
    tax = _amount(tax, "tax", Decimal("0")).quantize(MONEY)
    grand_total = (subtotal - discount + tax).quantize(MONEY)
    if grand_total < 0:
        raise OrderError("Discount cannot exceed the order total.", fields={"discount": ["Exceeds order total."]})

    phone = str(customer.get("phone") or "").strip()
    linked_customer = Customer.objects.filter(phone_normalized=normalize_phone(phone)).first() if phone else None
    settlement = next((row for row in payment_rows if row["method"] == PaymentMethod.CHIT_SETTLEMENT), None)

    with transaction.atomic():
        order = Order.objects.create(
            order_id=next_formatted_number("ORD", "-"),
            invoice_number=next_formatted_number("INV", "/"),
            cashier=user if user is not None and user.is_authenticated else None,
            customer=linked_customer,
            customer_name=customer.get("name") or (linked_customer.name if linked_customer else ""),
            customer_phone=phone,
            customer_email=customer.get("email") or "",
            customer_gst_number=customer.get("gst_number") or "",
            customer_aadhar_number=customer.get("aadhar_number") or "",
            customer_pan_number=customer.get("pan_number") or "",
            payment_mode=_payment_mode(payment_rows),
            subtotal=subtotal,
            discount=discount,
            tax=tax,
            grand_total=grand_total,
            chit=settlement["chit"] if settlement else None,
            chit_number=settlement["chit_number"] if settlement else "",
            chit_settlement_amount=settlement["amount"] if settlement else None,
            chit_settlement_type=(
                (settlement["chit"].settlement_type or SettlementType.CHIT_SETTLEMENT) if settlement else ""
            ),
        )
        created_lines = OrderLine.objects.bulk_create([OrderLine(order=order, **line) for line in lines])
        OrderPayment.objects.bulk_create([OrderPayment(order=order, **row) for row in payment_rows])

        book_sale(order, created_lines, user=order.cashier)

    logger.info("order %s created, invoice %s, total %s", order.order_id, order.invoice_number, grand_total)
    return order


def delete_order(order, user=None):
    summary = {
        "order_id": order.order_id,
        "invoice_number": order.invoice_number,
        "grand_total": str(order.grand_total),
    }
    with transaction.atomic():
        reverse_sale(order, user=user if user is not None and user.is_authenticated else None)
        order.delete()
    logger.info("order %s deleted, stock restored", summary["order_id"])
    return summary
