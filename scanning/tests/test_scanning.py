"""
Unit Tests for the Scan Flow

Tests cover:
1. Successful scan crediting
2. Exactly-once claims (same and different user)
3. Unknown and inactive products
4. Input rejections without side effects
5. Atomic claim + earning under failure
6. Concurrent scans of one code
7. Newly earned badges
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from catalog.models import CreateProductRequest, CreateBadgeRequest, UpdateProductRequest
from catalog.service import InMemoryCatalog
from config.settings import Settings
from ledger.models import TransactionType, TransactionSource
from ledger.service import LedgerService, UnknownUserError
from ledger.storage import InMemoryStorage
from scanning.errors import DuplicateScanError, UnknownProductError, InactiveProductError
from scanning.guard import RedemptionGuard
from scanning.models import ScanRequest, ScanErrorCode, ScanState
from scanning.orchestrator import ScanService
from scanning.validator import CodeValidator


U1 = 2
U2 = 3
P1_TOKEN = "0b6e2f7a-1c3d-4e5f-9a8b-7c6d5e4f3a2b"
P2_TOKEN = "5d4c3b2a-1f0e-4d9c-8b7a-6f5e4d3c2b1a"


def url(token: str) -> str:
    return f"https://warranty.bareeq.lighting/p/{token}"


@pytest.fixture
def catalog():
    catalog = InMemoryCatalog(seed=False)
    p1 = catalog.create_product(CreateProductRequest(name="BQ520 BAREEQ 50W", point_value=100))
    p2 = catalog.create_product(CreateProductRequest(name="BQ360 BAREEQ 30W", point_value=15))
    catalog.register_codes(p1.id, [P1_TOKEN])
    catalog.register_codes(p2.id, [P2_TOKEN])
    return catalog


@pytest.fixture
def ledger():
    return LedgerService(InMemoryStorage())


@pytest.fixture
def service(ledger, catalog):
    return ScanService(ledger, catalog, validator=CodeValidator(Settings()))


class TestSuccessfulScan:
    """Tests for the happy path."""

    def test_first_scan_credits_points(self, service, ledger):
        """Test that product P1 (100 pts) credits U1."""
        response = service.scan(ScanRequest(token=url(P1_TOKEN), user_id=U1))

        assert response.success is True
        assert response.outcome == ScanState.COMPLETED
        assert response.product_name == "BQ520 BAREEQ 50W"
        assert response.points_awarded == 100
        assert response.new_balance == 100
        assert response.error_code is None

    def test_scan_writes_record_and_transaction(self, service, ledger):
        """Test that one scan record and one earning are stored."""
        service.scan(ScanRequest(token=url(P1_TOKEN.upper()), user_id=U1))

        record = ledger.storage.scan_records[P1_TOKEN]
        assert record["user_id"] == U1

        [tx] = ledger.list_by_user(U1)
        assert tx.type == TransactionType.EARNING
        assert tx.source == TransactionSource.SCAN
        assert tx.amount == 100
        assert tx.related_entity == P1_TOKEN
        assert tx.metadata["product_name"] == "BQ520 BAREEQ 50W"

    def test_response_uses_camel_case_keys(self, service):
        """Test the wire shape of a successful response."""
        response = service.scan(ScanRequest(token=url(P1_TOKEN), user_id=U1))
        body = response.model_dump(by_alias=True)

        assert body["productName"] == "BQ520 BAREEQ 50W"
        assert body["pointsAwarded"] == 100
        assert body["newBalance"] == 100


class TestDuplicateScan:
    """Tests for exactly-once redemption."""

    def test_second_scan_by_other_user(self, service, ledger):
        """Test that U2 scanning P1 after U1 gets DUPLICATE_SCAN."""
        service.scan(ScanRequest(token=url(P1_TOKEN), user_id=U1))

        response = service.scan(ScanRequest(token=url(P1_TOKEN), user_id=U2))

        assert response.success is False
        assert response.error_code == ScanErrorCode.DUPLICATE_SCAN
        assert response.outcome == ScanState.REJECTED_DUPLICATE
        assert response.details["scannedBy"] == U1
        assert response.details["alreadyCreditedToYou"] is False
        assert ledger.balance_of(U2) == 0
        assert ledger.balance_of(U1) == 100

    def test_retry_by_same_user_is_already_credited(self, service, ledger):
        """Test that a client retry is told the points are already theirs."""
        service.scan(ScanRequest(token=url(P1_TOKEN), user_id=U1))

        response = service.scan(ScanRequest(token=url(P1_TOKEN), user_id=U1))

        assert response.success is False
        assert response.error_code == ScanErrorCode.DUPLICATE_SCAN
        assert response.outcome == ScanState.ALREADY_CREDITED
        assert response.details["alreadyCreditedToYou"] is True
        assert ledger.balance_of(U1) == 100
        assert len(ledger.list_by_user(U1)) == 1

    def test_short_and_long_urls_share_the_claim(self, service):
        """Test that the same token via the short link is still a duplicate."""
        service.scan(ScanRequest(token=url(P1_TOKEN), user_id=U1))

        response = service.scan(ScanRequest(token=f"https://w.bareeq.lighting/p/{P1_TOKEN.upper()}", user_id=U2))

        assert response.error_code == ScanErrorCode.DUPLICATE_SCAN

    def test_every_later_scan_is_duplicate(self, service):
        """Test that only the first of many sequential scans succeeds."""
        results = [service.scan(ScanRequest(token=url(P2_TOKEN), user_id=u)) for u in (U1, U2, U1, U2)]

        assert [r.success for r in results] == [True, False, False, False]

    def test_concurrent_scans_of_same_code(self, ledger, catalog):
        """Test that racing scans of one code credit exactly one user."""
        for i in range(8):
            ledger.storage.add_user(name=f"Installer {i}", phone=f"+2010000000{i:02d}")
        user_ids = list(range(4, 12))
        service = ScanService(ledger, catalog, validator=CodeValidator(Settings()))
        barrier = threading.Barrier(len(user_ids))

        def scan(user_id):
            barrier.wait()
            return service.scan(ScanRequest(token=url(P1_TOKEN), user_id=user_id))

        with ThreadPoolExecutor(max_workers=len(user_ids)) as pool:
            results = list(pool.map(scan, user_ids))

        assert sum(r.success for r in results) == 1
        assert all(r.error_code == ScanErrorCode.DUPLICATE_SCAN for r in results if not r.success)
        assert sum(ledger.balance_of(u) for u in user_ids) == 100
        assert len(ledger.storage.transactions) == 1


class TestRejections:
    """Tests for input and catalog rejections."""

    def test_malformed_string_has_no_side_effects(self, service, ledger):
        """Test that "not-a-url" is INVALID_FORMAT and writes nothing."""
        response = service.scan(ScanRequest(token="not-a-url", user_id=U1))

        assert response.success is False
        assert response.error_code == ScanErrorCode.INVALID_FORMAT
        assert response.outcome == ScanState.REJECTED_MALFORMED
        assert ledger.storage.scan_records == {}
        assert ledger.storage.transactions == []

    def test_invalid_uuid(self, service, ledger):
        """Test that a bad token inside a good URL is INVALID_UUID."""
        response = service.scan(ScanRequest(token=url("1234"), user_id=U1))

        assert response.error_code == ScanErrorCode.INVALID_UUID
        assert ledger.storage.scan_records == {}

    def test_unknown_product(self, service, ledger):
        """Test that a valid but unissued token is UNKNOWN_PRODUCT."""
        response = service.scan(ScanRequest(token=url("9e8d7c6b-5a4f-4e3d-a2c1-b0a9f8e7d6c5"), user_id=U1))

        assert response.error_code == ScanErrorCode.UNKNOWN_PRODUCT
        assert response.outcome == ScanState.REJECTED_UNKNOWN
        assert ledger.storage.scan_records == {}

    def test_inactive_product(self, service, ledger, catalog):
        """Test that deactivating a product stops new claims only."""
        service.scan(ScanRequest(token=url(P2_TOKEN), user_id=U1))
        catalog.update_product(1, UpdateProductRequest(active=False))

        response = service.scan(ScanRequest(token=url(P1_TOKEN), user_id=U1))

        assert response.error_code == ScanErrorCode.INACTIVE_PRODUCT
        assert response.outcome == ScanState.REJECTED_INACTIVE
        assert P1_TOKEN not in ledger.storage.scan_records
        assert ledger.balance_of(U1) == 15

    def test_unknown_user_propagates(self, service, ledger):
        """Test that an unknown user is not a business rejection."""
        with pytest.raises(UnknownUserError):
            service.scan(ScanRequest(token=url(P1_TOKEN), user_id=999))

        assert ledger.storage.scan_records == {}


class TestDeactivatedProducts:
    """Tests for codes whose product left the catalog after crediting."""

    def test_deactivated_product_rescan_is_still_duplicate(self, service, ledger, catalog):
        """Test that a credited code stays a duplicate after its product is deactivated."""
        service.scan(ScanRequest(token=url(P1_TOKEN), user_id=U1))
        catalog.update_product(1, UpdateProductRequest(active=False))

        retry = service.scan(ScanRequest(token=url(P1_TOKEN), user_id=U1))
        other = service.scan(ScanRequest(token=url(P1_TOKEN), user_id=U2))

        assert retry.error_code == ScanErrorCode.DUPLICATE_SCAN
        assert retry.outcome == ScanState.ALREADY_CREDITED
        assert other.error_code == ScanErrorCode.DUPLICATE_SCAN
        assert other.outcome == ScanState.REJECTED_DUPLICATE
        assert other.details["scannedBy"] == U1
        assert ledger.balance_of(U1) == 100
        assert ledger.balance_of(U2) == 0

    def test_unissued_code_with_record_is_duplicate(self, ledger, catalog):
        """Test that a recorded code whose product mapping is gone is still a duplicate."""
        guard = RedemptionGuard(ledger.storage, catalog)
        guard.claim(P2_TOKEN, U1)
        del catalog.codes[P2_TOKEN]

        with pytest.raises(DuplicateScanError) as exc_info:
            guard.claim(P2_TOKEN, U2)

        assert exc_info.value.scanned_by == U1


class TestAtomicity:
    """Tests for the claim + earning unit."""

    def test_failed_append_releases_claim(self, service, ledger, monkeypatch):
        """Test that a storage failure while recording leaves the code unclaimed."""
        def broken_append(**kwargs):
            raise TimeoutError("storage timeout")

        monkeypatch.setattr(ledger, "append", broken_append)

        with pytest.raises(TimeoutError):
            service.scan(ScanRequest(token=url(P1_TOKEN), user_id=U1))

        assert ledger.storage.scan_records == {}
        assert ledger.storage.transactions == []

        monkeypatch.undo()
        response = service.scan(ScanRequest(token=url(P1_TOKEN), user_id=U1))
        assert response.success is True


class TestGuard:
    """Tests for the redemption guard on its own."""

    def test_duplicate_carries_original_scan(self, ledger, catalog):
        """Test that the duplicate error names the first scanner and time."""
        guard = RedemptionGuard(ledger.storage, catalog)
        first = guard.claim(P1_TOKEN, U1)

        with pytest.raises(DuplicateScanError) as exc_info:
            guard.claim(P1_TOKEN, U2)

        assert exc_info.value.scanned_by == U1
        assert exc_info.value.scanned_at == first.scanned_at

    def test_unknown_and_inactive(self, ledger, catalog):
        """Test catalog failures before any record is written."""
        guard = RedemptionGuard(ledger.storage, catalog)
        catalog.update_product(2, UpdateProductRequest(active=False))

        with pytest.raises(UnknownProductError):
            guard.claim("9e8d7c6b-5a4f-4e3d-a2c1-b0a9f8e7d6c5", U1)
        with pytest.raises(InactiveProductError):
            guard.claim(P2_TOKEN, U1)

        assert ledger.storage.scan_records == {}


class TestNewlyEarnedBadges:
    """Tests for the badge diff returned with a scan."""

    def test_scan_reports_badges_it_unlocked(self, ledger, catalog):
        """Test that only badges crossing their threshold on this scan are returned."""
        starter = catalog.create_badge(CreateBadgeRequest(name="Starter"))
        first_install = catalog.create_badge(CreateBadgeRequest(name="First Install", min_installations=1))
        centurion = catalog.create_badge(CreateBadgeRequest(name="Centurion", required_points=100))
        service = ScanService(ledger, catalog, validator=CodeValidator(Settings()))

        first = service.scan(ScanRequest(token=url(P2_TOKEN), user_id=U1))
        second = service.scan(ScanRequest(token=url(P1_TOKEN), user_id=U1))

        assert first.newly_earned_badges == [first_install.id]
        assert second.newly_earned_badges == [centurion.id]
        assert starter.id not in first.newly_earned_badges + second.newly_earned_badges


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
