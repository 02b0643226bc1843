import logging

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from apps.sequences.models import Counter

logger = logging.getLogger(__name__)


def next_value(name):
    with transaction.atomic():
        Counter.objects.get_or_create(name=name)
        Counter.objects.filter(name=name).update(value=F("value") + 1)
        return Counter.objects.values_list("value", flat=True).get(name=name)


def generate_chit_number():
    year = timezone.localdate().year
    seq = next_value(f"chit_{year}")
    return f"CHIT{year}{seq:04d}"


def generate_receipt_number():
    year = timezone.localdate().year
    seq = next_value(f"receipt_{year}")
    return f"RC{year}{seq:06d}"


def next_formatted_number(prefix, separator="-"):
    year = timezone.localdate().year
    seq = next_value(prefix)
    return f"{prefix}{separator}{year}{separator}{seq:04d}"
