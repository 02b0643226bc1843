import logging

from django.db import transaction

from apps.chits.models import Chit, ChitPayment

logger = logging.getLogger(__name__)


def sync_customer_snapshots(customer):
    with transaction.atomic():
        chits = Chit.objects.filter(customer=customer).update(
            customer_name=customer.name,
            customer_phone=customer.phone,
        )
        payments = ChitPayment.objects.filter(customer=customer).update(customer_name=customer.name)
    if chits or payments:
        logger.info("synced customer %s snapshot onto %s chits and %s payments", customer.id, chits, payments)
    return chits, payments
