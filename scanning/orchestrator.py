import logging
from typing import Optional

from achievements.badges import AchievementService
from catalog.service import InMemoryCatalog
from ledger.models import TransactionType, TransactionSource
from ledger.service import LedgerService, UnknownUserError
from .errors import ScanError, DuplicateScanError
from .guard import RedemptionGuard
from .models import ScanRequest, ScanResponse, ScanState
from .validator import CodeValidator

log = logging.getLogger("rewards.scan")


class ScanService:
    """Runs one scan through validate -> claim -> record -> complete.

    The claim and the earning transaction are written inside one storage
    unit, so a failure while recording leaves the code unclaimed. Rejections
    the installer can act on come back as ``success=False`` responses;
    anything else (unknown user, ledger corruption, storage failure)
    propagates.
    """

    def __init__(
        self,
        ledger: LedgerService,
        catalog: InMemoryCatalog,
        achievements: Optional[AchievementService] = None,
        validator: Optional[CodeValidator] = None,
    ):
        self.ledger = ledger
        self.catalog = catalog
        self.achievements = achievements or AchievementService(ledger, catalog)
        self.validator = validator or CodeValidator()
        self.guard = RedemptionGuard(ledger.storage, catalog)

    def scan(self, request: ScanRequest) -> ScanResponse:
        user_id = request.user_id
        state = ScanState.RECEIVED
        try:
            token = self.validator.validate(request.token)
            state = ScanState.VALIDATED

            with self.ledger.storage.atomic():
                self.ledger.get_user(user_id)
                badges_before = self.achievements.earned_badges(user_id)

                claimed = self.guard.claim(token, user_id)
                state = ScanState.CLAIMED

                self.ledger.append(
                    user_id=user_id,
                    type=TransactionType.EARNING,
                    amount=claimed.point_value,
                    description=f"Product installation: {claimed.product_name}",
                    related_entity=token,
                    source=TransactionSource.SCAN,
                    metadata={"product_id": claimed.product_id, "product_name": claimed.product_name},
                )
                state = ScanState.RECORDED

                new_balance = self.ledger.balance_of(user_id)
                newly_earned = self.achievements.earned_badges(user_id) - badges_before
        except DuplicateScanError as e:
            return self._duplicate_response(e, user_id)
        except ScanError as e:
            return ScanResponse(
                success=False,
                outcome=e.state,
                message=e.message,
                error_code=e.error_code,
                details=e.details,
            )
        except UnknownUserError:
            raise
        except Exception:
            log.exception("Scan by user %s failed in state %s", user_id, state.value)
            raise

        log.info(
            "User %s scanned %s: +%d points (%s), balance %d",
            user_id, token, claimed.point_value, claimed.product_name, new_balance,
        )
        return ScanResponse(
            success=True,
            outcome=ScanState.COMPLETED,
            message=f"{claimed.point_value} points added for {claimed.product_name}",
            product_name=claimed.product_name,
            points_awarded=claimed.point_value,
            new_balance=new_balance,
            newly_earned_badges=sorted(newly_earned),
        )

    def _duplicate_response(self, error: DuplicateScanError, user_id: int) -> ScanResponse:
        # a retry of a scan we already credited must not read as fraud
        if error.scanned_by == user_id:
            return ScanResponse(
                success=False,
                outcome=ScanState.ALREADY_CREDITED,
                message="This code was already credited to your account.",
                error_code=error.error_code,
                details={**error.details, "alreadyCreditedToYou": True},
            )
        return ScanResponse(
            success=False,
            outcome=error.state,
            message="This code has already been redeemed. Please scan a different product.",
            error_code=error.error_code,
            details={**error.details, "alreadyCreditedToYou": False},
        )
