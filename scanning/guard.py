import logging

from catalog.service import InMemoryCatalog
from ledger.storage import InMemoryStorage
from .errors import UnknownProductError, InactiveProductError, DuplicateScanError
from .models import ClaimedProduct

log = logging.getLogger("rewards.guard")


class RedemptionGuard:
    """Lets each product token be claimed by exactly one scan, ever.

    The scan record insert is the arbiter: whoever inserts first owns the
    token, and a refused insert is reported as a duplicate together with the
    original scanner. There is no separate "has it been scanned?" read.
    """

    def __init__(self, storage: InMemoryStorage, catalog: InMemoryCatalog):
        self.storage = storage
        self.catalog = catalog

    def claim(self, token: str, user_id: int) -> ClaimedProduct:
        product = self.catalog.lookup_code(token)
        if product is None or not product.active:
            # a code credited before its product went away is still a duplicate
            self._reject_if_claimed(token, user_id)
        if product is None:
            log.info("Scan of unknown code %s by user %s", token, user_id)
            raise UnknownProductError("This code does not belong to a registered product.", details={"token": token})
        if not product.active:
            log.info("Scan of inactive product %s (%s) by user %s", product.id, token, user_id)
            raise InactiveProductError(
                f"{product.name} is no longer eligible for reward points.",
                details={"productId": product.id},
            )

        record, inserted = self.storage.insert_scan_record_if_absent(token, user_id)
        if not inserted:
            log.info("Duplicate scan of %s by user %s (first scanned by %s)", token, user_id, record["user_id"])
            raise DuplicateScanError(token, record["user_id"], record["scanned_at"])

        return ClaimedProduct(
            token=token,
            product_id=product.id,
            product_name=product.name,
            point_value=product.point_value,
            scanned_at=record["scanned_at"],
        )

    def _reject_if_claimed(self, token: str, user_id: int) -> None:
        record = self.storage.get_scan_record(token)
        if record is not None:
            log.info("Duplicate scan of %s by user %s (first scanned by %s)", token, user_id, record["user_id"])
            raise DuplicateScanError(token, record["user_id"], record["scanned_at"])
