import logging

from catalog.service import InMemoryCatalog
from ledger.models import Transaction, TransactionType, TransactionSource
from ledger.service import LedgerService
from .models import RedemptionErrorCode, RedeemRewardRequest, RedemptionResponse

log = logging.getLogger("rewards.redemption")


class RedemptionError(Exception):
    error_code: RedemptionErrorCode


class InsufficientBalanceError(RedemptionError):
    error_code = RedemptionErrorCode.INSUFFICIENT_BALANCE

    def __init__(self, balance: int, cost: int):
        super().__init__(f"Insufficient points: balance {balance}, reward costs {cost}")
        self.balance = balance
        self.cost = cost


class UnknownRewardError(RedemptionError):
    error_code = RedemptionErrorCode.UNKNOWN_REWARD


class RedemptionService:
    def __init__(self, ledger: LedgerService, catalog: InMemoryCatalog):
        self.ledger = ledger
        self.catalog = catalog

    def redeem(self, user_id: int, reward_id: int) -> tuple[Transaction, int]:
        """Spend ``reward.cost`` points, all or nothing.

        Returns the redemption transaction and the balance right after it.

        The balance read and the redemption append share one storage unit,
        so concurrent spends for the same user cannot both pass the check.
        """
        reward = self.catalog.get_reward(reward_id)
        if reward is None or not reward.active:
            raise UnknownRewardError(f"Reward {reward_id} not found")

        with self.ledger.storage.atomic():
            balance = self.ledger.balance_of(user_id)
            if balance < reward.cost:
                raise InsufficientBalanceError(balance, reward.cost)
            transaction = self.ledger.append(
                user_id=user_id,
                type=TransactionType.REDEMPTION,
                amount=reward.cost,
                description=f"Reward redemption: {reward.name}",
                related_entity=str(reward.id),
                source=TransactionSource.REWARD,
                metadata={"reward_id": reward.id, "reward_name": reward.name},
            )
            new_balance = self.ledger.balance_of(user_id)

        log.info("User %s redeemed reward %s for %d points", user_id, reward.id, reward.cost)
        return transaction, new_balance

    def handle(self, request: RedeemRewardRequest) -> RedemptionResponse:
        try:
            transaction, new_balance = self.redeem(request.user_id, request.reward_id)
        except RedemptionError as e:
            log.info("Redemption of reward %s by user %s rejected: %s", request.reward_id, request.user_id, e)
            return RedemptionResponse(success=False, message=str(e), error_code=e.error_code)

        return RedemptionResponse(
            success=True,
            message="Reward redeemed successfully",
            transaction=transaction,
            new_balance=new_balance,
        )
