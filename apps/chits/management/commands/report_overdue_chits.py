from django.core.management.base import BaseCommand
from django.utils import timezone

from apps.chits.models import Chit, ChitStatus


class Command(BaseCommand):
    help = "List active chits whose next installment is past due."

    def add_arguments(self, parser):
        parser.add_argument("--min-days", type=int, default=1, help="Only report chits at least this many days overdue.")

    def handle(self, *args, **options):
        today = timezone.localdate()
        min_days = max(options["min_days"], 1)
        queryset = Chit.objects.filter(status=ChitStatus.ACTIVE, next_due_date__lt=today).order_by("next_due_date")
        reported = 0
        for chit in queryset:
            if chit.days_overdue < min_days:
                continue
            self.stdout.write(
                f"{chit.chit_number}\t{chit.customer_name}\t{chit.customer_phone}\t"
                f"due {chit.next_due_date.isoformat()}\t{chit.days_overdue} days\t"
                f"{chit.paid_installments}/{chit.total_installments}"
            )
            reported += 1
        self.stdout.write(self.style.SUCCESS(f"Overdue chits: {reported}"))
