# documents/numbering.py
"""
Default numbering backend.

Numbers come from a NumberSeries row per (company, key), locked with
select_for_update while the next value is taken. A series with the
default prefix for the key is created on first use.
"""

from django.db import IntegrityError, transaction
from django.utils import timezone

from core.write_barrier import command_writes_allowed
from documents.chain import DEFAULT_PREFIXES
from documents.models import NumberSeries


LEDGER_PREFIXES = {
    "AP_INVOICE": "API-",
    "AR_INVOICE": "ARI-",
    "AP_PAYMENT": "PV-",
    "AR_RECEIPT": "OR-",
}


def default_prefix(key: str) -> str:
    return DEFAULT_PREFIXES.get(key) or LEDGER_PREFIXES.get(key) or f"{key[:3].upper()}-"


def expand_tokens(text: str, when) -> str:
    if not text:
        return ""
    return (
        text.replace("{YYYY}", f"{when.year:04d}")
        .replace("{YY}", f"{when.year % 100:02d}")
        .replace("{MM}", f"{when.month:02d}")
    )


def format_number(series: NumberSeries, value: int, when=None) -> str:
    when = when or timezone.localdate()
    padded = str(value).zfill(series.number_length)
    return f"{expand_tokens(series.prefix, when)}{padded}{expand_tokens(series.suffix, when)}"


class SeriesNumbering:

    def next_number(self, company, key: str) -> str:
        """
        Allocate the next number for a company/key pair.
        Uses select_for_update to avoid concurrent duplicates.
        """
        with command_writes_allowed():
            try:
                series = NumberSeries.objects.select_for_update().get(company=company, key=key)
            except NumberSeries.DoesNotExist:
                try:
                    with transaction.atomic():
                        series = NumberSeries.objects.create(
                            company=company,
                            key=key,
                            prefix=default_prefix(key),
                        )
                except IntegrityError:
                    series = NumberSeries.objects.select_for_update().get(company=company, key=key)

            value = series.next_value
            series.next_value = value + 1
            series.save(update_fields=["next_value", "updated_at"])
            return format_number(series, value)
