# documents/inventory.py
"""
Default inventory backend.

Records one StockMovement per (document line, direction). Applying the
same direction again only brings each row's quantity in line with the
current line quantity, so the call is idempotent per document and
direction. Stock balances are derived from these rows elsewhere.
"""

import logging

from core.write_barrier import command_writes_allowed
from documents.models import StockMovement


logger = logging.getLogger(__name__)


class StockMovementInventory:

    def apply_stock_movement(self, document, direction: str) -> None:
        if direction not in StockMovement.Direction.values:
            raise ValueError(f"Unknown stock direction: {direction}")

        with command_writes_allowed():
            for line in document.lines.all():
                movement, created = StockMovement.objects.get_or_create(
                    line=line,
                    direction=direction,
                    defaults={
                        "company_id": document.company_id,
                        "document": document,
                        "product_code": line.product_code,
                        "quantity": line.quantity,
                    },
                )
                if not created and movement.quantity != line.quantity:
                    movement.quantity = line.quantity
                    movement.save(update_fields=["quantity"])

        logger.info(
            "Stock %s applied for %s",
            direction,
            document.document_no,
            extra={
                "company_id": document.company_id,
                "document_id": document.id,
                "direction": direction,
            },
        )
