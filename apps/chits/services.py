import logging
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from dateutil.relativedelta import relativedelta
from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Count, DecimalField, ExpressionWrapper, F, Q, Sum, Value
from django.db.models.functions import Coalesce
from django.shortcuts import get_object_or_404
from django.utils import timezone

from apps.chits.models import (
    GOLD_SETTLEMENT_TYPES,
    GRAMS,
    MONEY,
    PURCHASE_SETTLEMENT_TYPES,
    Chit,
    ChitPayment,
    ChitPaymentMethod,
    ChitPurchaseItem,
    ChitStatus,
    PaymentStatus,
    SettlementStatus,
    SettlementType,
)
from apps.common.exceptions import DomainError
from apps.rates.services import current_gold_rate
from apps.sequences.services import generate_chit_number, generate_receipt_number

logger = logging.getLogger(__name__)

MONEY_FIELD = DecimalField(max_digits=14, decimal_places=2)
WEIGHT_FIELD = DecimalField(max_digits=18, decimal_places=6)
LATERAL_STATUSES = {ChitStatus.DEFAULTED, ChitStatus.CANCELLED}


class ChitError(DomainError):
    code = "invalid_state"


class ChitPaymentError(ChitError):
    code = "invalid_payment"


class InstallmentMismatch(ChitPaymentError):
    code = "installment_mismatch"


class SettlementError(ChitError):
    code = "invalid_settlement"


def _decimal(value, label, error_class=ChitError):
    try:
        result = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise error_class(f"{label} must be a number.", fields={label: ["Must be a number."]})
    if not result.is_finite():
        raise error_class(f"{label} must be a number.", fields={label: ["Must be a number."]})
    return result


def _positive(value, label, error_class=ChitError):
    result = _decimal(value, label, error_class)
    if result <= 0:
        raise error_class(f"{label} must be greater than 0.", fields={label: ["Must be greater than 0."]})
    return result


def installment_amount_for(chit_amount, total_installments):
    return (Decimal(chit_amount) / Decimal(total_installments)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def resolve_creation_gold_rate():
    rate = current_gold_rate()
    if rate is None or rate <= 0:
        return Decimal(settings.CHIT_DEFAULT_GOLD_RATE)
    return rate


def create_chit(
    *,
    customer,
    start_date,
    end_date,
    chit_amount,
    total_installments=11,
    agent_name="",
    notes="",
    user=None,
):
    chit_amount = _positive(chit_amount, "chit_amount")
    if total_installments is None or int(total_installments) < 1:
        raise ChitError("Total installments must be at least 1.", code="invalid", fields={"total_installments": ["Must be at least 1."]})
    total_installments = int(total_installments)
    if end_date < start_date:
        raise ChitError("End date cannot be before start date.", code="invalid", fields={"end_date": ["Must not be before start date."]})

    installment_amount = installment_amount_for(chit_amount, total_installments)
    gold_rate = resolve_creation_gold_rate()

    with transaction.atomic():
        chit = Chit.objects.create(
            chit_number=generate_chit_number(),
            customer=customer,
            customer_name=customer.name,
            customer_phone=customer.phone,
            start_date=start_date,
            end_date=end_date,
            total_installments=total_installments,
            chit_amount=chit_amount.quantize(MONEY),
            installment_amount=installment_amount,
            next_due_date=start_date + relativedelta(months=1),
            total_gold_weight=Decimal("0"),
            gold_weight_per_installment=(installment_amount / gold_rate).quantize(GRAMS),
            current_gold_rate=gold_rate,
            gold_purity=settings.CHIT_DEFAULT_PURITY,
            gold_updated_at=timezone.now(),
            agent_name=agent_name or "",
            notes=notes or "",
            created_by=user,
        )
    logger.info("chit %s created for customer %s", chit.chit_number, customer.id)
    return chit


def _history_entry(payment):
    return {
        "installment_number": payment.installment_number,
        "date": payment.payment_date.isoformat(),
        "amount": str(payment.amount),
        "gold_rate": str(payment.gold_rate),
        "gold_weight": str(payment.gold_weight),
        "receipt_number": payment.receipt_number,
    }


def record_payment(
    chit_id,
    amount,
    payment_method,
    current_gold_rate,
    installment_number=None,
    receipt_number=None,
    payment_date=None,
    notes="",
    collected_by="Admin",
    user=None,
):
    if current_gold_rate in (None, ""):
        raise ChitPaymentError("Current gold rate is required.", fields={"current_gold_rate": ["This field is required."]})
    gold_rate = _positive(current_gold_rate, "current_gold_rate", ChitPaymentError)
    amount = _positive(amount, "amount", ChitPaymentError)
    payment_method = payment_method or ChitPaymentMethod.CASH
    if payment_method not in ChitPaymentMethod.values:
        raise ChitPaymentError(f"Unknown payment method '{payment_method}'.", fields={"payment_method": ["Invalid choice."]})

    with transaction.atomic():
        chit = get_object_or_404(Chit.objects.select_for_update(), pk=chit_id)
        if chit.status != ChitStatus.ACTIVE:
            logger.warning("payment rejected for chit %s in status %s", chit.chit_number, chit.status)
            raise ChitError(f"Cannot record payment for a chit that is {chit.status}.")

        expected = chit.paid_installments + 1
        if installment_number is not None and int(installment_number) != expected:
            logger.warning("installment mismatch for chit %s: got %s expected %s", chit.chit_number, installment_number, expected)
            raise InstallmentMismatch(
                f"Installment number mismatch. Expected installment {expected}.",
                fields={"installment_number": [f"Expected {expected}."]},
            )

        if receipt_number:
            if ChitPayment.objects.filter(receipt_number=receipt_number).exists():
                raise ChitPaymentError(f"Receipt number {receipt_number} already exists.", code="duplicate")
        else:
            receipt_number = generate_receipt_number()

        amount = amount.quantize(MONEY)
        gold_rate = gold_rate.quantize(MONEY)
        gold_weight = (amount / gold_rate).quantize(GRAMS)
        try:
            with transaction.atomic():
                payment = ChitPayment.objects.create(
                    chit=chit,
                    customer_id=chit.customer_id,
                    chit_number=chit.chit_number,
                    customer_name=chit.customer_name,
                    installment_number=expected,
                    amount=amount,
                    payment_date=payment_date or timezone.now(),
                    payment_method=payment_method,
                    receipt_number=receipt_number,
                    gold_rate=gold_rate,
                    gold_weight=gold_weight,
                    gold_purity=chit.gold_purity,
                    calculated_value=amount,
                    status=PaymentStatus.COMPLETED,
                    notes=notes or "",
                    collected_by=collected_by or "Admin",
                    created_by=user,
                )
        except IntegrityError:
            logger.warning("concurrent write for chit %s installment %s", chit.chit_number, expected)
            raise ChitPaymentError(
                f"Installment {expected} was already recorded for chit {chit.chit_number}.",
                code="conflict",
            )

        chit.paid_installments = expected
        chit.payment_method = payment_method
        chit.total_gold_weight = (chit.total_gold_weight + gold_weight).quantize(GRAMS)
        chit.current_gold_rate = gold_rate
        chit.gold_updated_at = timezone.now()
        chit.next_due_date = (chit.next_due_date or chit.start_date) + relativedelta(months=1)
        chit.payment_history = list(chit.payment_history or []) + [_history_entry(payment)]
        chit.save()

    logger.info(
        "chit %s installment %s/%s paid, receipt %s",
        chit.chit_number,
        chit.paid_installments,
        chit.total_installments,
        payment.receipt_number,
    )
    return payment, chit


def _lock_completed_chit(chit_id):
    chit = get_object_or_404(Chit.objects.select_for_update(), pk=chit_id)
    if chit.status != ChitStatus.COMPLETED:
        logger.warning("settlement rejected for chit %s in status %s", chit.chit_number, chit.status)
        raise SettlementError(f"Only completed chits can be settled. This chit is {chit.status}.")
    return chit


def settle(chit_id, settlement_type, settlement_amount=None, settlement_date=None, settlement_gold_rate=None):
    if settlement_type not in SettlementType.values:
        raise SettlementError(f"Unknown settlement type '{settlement_type}'.", fields={"settlement_type": ["Invalid choice."]})

    with transaction.atomic():
        chit = _lock_completed_chit(chit_id)
        if settlement_type in GOLD_SETTLEMENT_TYPES:
            if settlement_gold_rate in (None, ""):
                raise SettlementError(
                    "Settlement gold rate is required for gold settlements.",
                    fields={"settlement_gold_rate": ["This field is required."]},
                )
            rate = _positive(settlement_gold_rate, "settlement_gold_rate", SettlementError)
            amount = chit.total_gold_weight * rate
        else:
            rate = None
            if settlement_gold_rate not in (None, ""):
                rate = _positive(settlement_gold_rate, "settlement_gold_rate", SettlementError)
            amount = _decimal(settlement_amount if settlement_amount not in (None, "") else 0, "settlement_amount", SettlementError)
            if amount < 0:
                raise SettlementError("Settlement amount cannot be negative.", fields={"settlement_amount": ["Must be 0 or greater."]})

        chit.status = ChitStatus.SETTLED
        chit.settlement_type = settlement_type
        chit.settlement_amount = amount.quantize(MONEY)
        chit.settlement_gold_rate = rate.quantize(MONEY) if rate is not None else None
        chit.settlement_date = settlement_date or timezone.now()
        chit.settlement_status = SettlementStatus.COMPLETED
        chit.save()

    logger.info("chit %s settled (%s) for %s", chit.chit_number, settlement_type, chit.settlement_amount)
    return chit


def settle_for_purchase(
    chit_id,
    purchase_amount,
    invoice_number,
    items,
    settlement_type=SettlementType.PURCHASE_SETTLEMENT,
    settlement_date=None,
    settlement_gold_rate=None,
):
    settlement_type = settlement_type or SettlementType.PURCHASE_SETTLEMENT
    if settlement_type not in PURCHASE_SETTLEMENT_TYPES:
        raise SettlementError(
            "Purchase settlements must use purchase_settlement or chit_settlement.",
            fields={"settlement_type": ["Invalid choice."]},
        )
    if not invoice_number:
        raise SettlementError("Invoice number is required.", fields={"invoice_number": ["This field is required."]})
    amount = _decimal(purchase_amount, "purchase_amount", SettlementError)
    if amount < 0:
        raise SettlementError("Purchase amount cannot be negative.", fields={"purchase_amount": ["Must be 0 or greater."]})
    rate = None
    if settlement_gold_rate not in (None, ""):
        rate = _positive(settlement_gold_rate, "settlement_gold_rate", SettlementError)

    with transaction.atomic():
        chit = _lock_completed_chit(chit_id)
        chit.status = ChitStatus.SETTLED
        chit.settlement_type = settlement_type
        chit.settlement_amount = amount.quantize(MONEY)
        chit.settlement_gold_rate = rate.quantize(MONEY) if rate is not None else None
        chit.settlement_date = settlement_date or timezone.now()
        chit.settlement_status = SettlementStatus.COMPLETED
        chit.invoice_number = invoice_number
        note = f"Settled for purchase - Invoice: {invoice_number}"
        chit.notes = f"{chit.notes}\n{note}" if chit.notes else note
        chit.save()

        ChitPurchaseItem.objects.bulk_create(
            [
                ChitPurchaseItem(
                    chit=chit,
                    name=item.get("name", ""),
                    sku=item.get("sku", ""),
                    price=_decimal(item.get("price", 0), "price", SettlementError).quantize(MONEY),
                    quantity=int(item.get("quantity", 1) or 1),
                )
                for item in items or []
            ]
        )

    logger.info("chit %s settled against invoice %s", chit.chit_number, invoice_number)
    return chit


def change_status(chit_id, new_status):
    if new_status not in ChitStatus.values:
        raise ChitError(f"Invalid status '{new_status}'.", code="invalid", fields={"status": ["Invalid choice."]})

    with transaction.atomic():
        chit = get_object_or_404(Chit.objects.select_for_update(), pk=chit_id)
        if chit.status != ChitStatus.ACTIVE or new_status not in LATERAL_STATUSES:
            logger.warning("status change %s -> %s rejected for chit %s", chit.status, new_status, chit.chit_number)
            raise ChitError(f"Cannot change status from {chit.status} to {new_status}.")
        previous = chit.status
        chit.status = new_status
        chit.save(update_fields=["status"])

    logger.info("chit %s status %s -> %s", chit.chit_number, previous, new_status)
    return chit, previous


def delete_chit(chit):
    summary = {
        "chit_number": chit.chit_number,
        "customer_id": str(chit.customer_id),
        "payments": chit.payments.count(),
    }
    with transaction.atomic():
        chit.delete()
    logger.info("chit %s deleted with %s payments", summary["chit_number"], summary["payments"])
    return summary


def _upcoming_window():
    today = timezone.localdate()
    return today, today + timedelta(days=settings.CHIT_UPCOMING_DUE_DAYS)


def chit_summary():
    today, horizon = _upcoming_window()
    counts = {row["status"]: row["total"] for row in Chit.objects.values("status").annotate(total=Count("id"))}
    totals = Chit.objects.filter(
        status__in=[ChitStatus.ACTIVE, ChitStatus.COMPLETED, ChitStatus.SETTLED]
    ).aggregate(
        investment=Coalesce(Sum("chit_amount"), Value(0, output_field=MONEY_FIELD), output_field=MONEY_FIELD),
        paid=Coalesce(
            Sum(ExpressionWrapper(F("paid_installments") * F("installment_amount"), output_field=MONEY_FIELD)),
            Value(0, output_field=MONEY_FIELD),
            output_field=MONEY_FIELD,
        ),
        gold_weight=Coalesce(Sum("total_gold_weight"), Value(0, output_field=WEIGHT_FIELD), output_field=WEIGHT_FIELD),
    )
    settled = (
        Chit.objects.filter(status=ChitStatus.SETTLED)
        .values("settlement_type")
        .annotate(
            count=Count("id"),
            total_amount=Coalesce(Sum("settlement_amount"), Value(0, output_field=MONEY_FIELD), output_field=MONEY_FIELD),
            total_gold_weight=Coalesce(Sum("total_gold_weight"), Value(0, output_field=WEIGHT_FIELD), output_field=WEIGHT_FIELD),
        )
        .order_by("settlement_type")
    )
    active = Chit.objects.filter(status=ChitStatus.ACTIVE)
    total_collection = Decimal(totals["paid"]).quantize(MONEY)
    return {
        "total_chits": sum(counts.values()),
        "active_chits": counts.get(ChitStatus.ACTIVE, 0),
        "completed_chits": counts.get(ChitStatus.COMPLETED, 0),
        "settled_chits": counts.get(ChitStatus.SETTLED, 0),
        "defaulted_chits": counts.get(ChitStatus.DEFAULTED, 0),
        "cancelled_chits": counts.get(ChitStatus.CANCELLED, 0),
        "overdue_chits": active.filter(next_due_date__lt=today).count(),
        "upcoming_due": active.filter(next_due_date__gte=today, next_due_date__lte=horizon).count(),
        "total_collection": str(total_collection),
        "pending_collection": str((Decimal(totals["investment"]) - total_collection).quantize(MONEY)),
        "total_gold_weight": str(Decimal(totals["gold_weight"]).quantize(GRAMS)),
        "settled_breakdown": [
            {
                "settlement_type": row["settlement_type"],
                "count": row["count"],
                "total_amount": str(Decimal(row["total_amount"]).quantize(MONEY)),
                "total_gold_weight": str(Decimal(row["total_gold_weight"]).quantize(GRAMS)),
            }
            for row in settled
        ],
    }


def customer_chit_stats(customer):
    today, horizon = _upcoming_window()
    chits = list(Chit.objects.filter(customer=customer).order_by("-created_at"))
    active = [chit for chit in chits if chit.status == ChitStatus.ACTIVE]
    return {
        "total_chits": len(chits),
        "active_chits": len(active),
        "completed_chits": sum(1 for chit in chits if chit.status == ChitStatus.COMPLETED),
        "settled_chits": sum(1 for chit in chits if chit.status == ChitStatus.SETTLED),
        "defaulted_chits": sum(1 for chit in chits if chit.status == ChitStatus.DEFAULTED),
        "total_investment": str(sum((chit.chit_amount for chit in chits), Decimal("0.00")).quantize(MONEY)),
        "total_paid": str(sum((chit.total_paid_amount for chit in chits), Decimal("0.00")).quantize(MONEY)),
        "total_gold_weight": str(sum((chit.total_gold_weight for chit in chits), Decimal("0")).quantize(GRAMS)),
        "overdue_chits": sum(1 for chit in active if chit.next_due_date and chit.next_due_date < today),
        "upcoming_due": sum(1 for chit in active if chit.next_due_date and chit.next_due_date <= horizon),
    }, chits


def payment_stats(start_date=None, end_date=None):
    payments = ChitPayment.objects.filter(status=PaymentStatus.COMPLETED)
    if start_date:
        payments = payments.filter(payment_date__date__gte=start_date)
    if end_date:
        payments = payments.filter(payment_date__date__lte=end_date)

    totals = payments.aggregate(
        total_payments=Count("id"),
        total_amount=Coalesce(Sum("amount"), Value(0, output_field=MONEY_FIELD), output_field=MONEY_FIELD),
        total_gold_weight=Coalesce(Sum("gold_weight"), Value(0, output_field=WEIGHT_FIELD), output_field=WEIGHT_FIELD),
        **{
            f"{method}_payments": Count("id", filter=Q(payment_method=method))
            for method in ChitPaymentMethod.values
        },
    )
    by_method = (
        payments.values("payment_method")
        .annotate(
            count=Count("id"),
            total_amount=Coalesce(Sum("amount"), Value(0, output_field=MONEY_FIELD), output_field=MONEY_FIELD),
            total_gold_weight=Coalesce(Sum("gold_weight"), Value(0, output_field=WEIGHT_FIELD), output_field=WEIGHT_FIELD),
        )
        .order_by("payment_method")
    )
    total_amount = Decimal(totals.pop("total_amount")).quantize(MONEY)
    total_gold_weight = Decimal(totals.pop("total_gold_weight")).quantize(GRAMS)
    return {
        **totals,
        "total_amount": str(total_amount),
        "net_amount": str(total_amount),
        "total_gold_weight": str(total_gold_weight),
        "by_method": [
            {
                "payment_method": row["payment_method"],
                "count": row["count"],
                "total_amount": str(Decimal(row["total_amount"]).quantize(MONEY)),
                "total_gold_weight": str(Decimal(row["total_gold_weight"]).quantize(GRAMS)),
            }
            for row in by_method
        ],
    }
