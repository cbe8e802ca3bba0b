import threading
from typing import Optional
from uuid import UUID

from .models import (
    Product,
    Reward,
    Badge,
    RewardType,
    CreateProductRequest,
    UpdateProductRequest,
    CreateRewardRequest,
    CreateBadgeRequest,
    UpdateBadgeRequest,
)


class CatalogError(Exception):
    pass


class CatalogItemNotFoundError(CatalogError):
    pass


class CodeAlreadyRegisteredError(CatalogError):
    pass


class InMemoryCatalog:
    """Admin-managed products, issued scan codes, rewards and badges.

    Reads are served from plain dicts; writes take the catalog lock so ids
    stay unique when admins edit concurrently.
    """

    def __init__(self, seed: bool = True):
        self._lock = threading.Lock()
        self.products: dict[int, dict] = {}
        self.codes: dict[str, int] = {}
        self.rewards: dict[int, dict] = {}
        self.badges: dict[int, dict] = {}
        self._ids = {"product": 0, "reward": 0, "badge": 0}
        if seed:
            self._seed_data()

    def _seed_data(self):
        bq520 = self.create_product(CreateProductRequest(name="BQ520 BAREEQ 50W", point_value=20))
        bq360 = self.create_product(CreateProductRequest(name="BQ360 BAREEQ 30W", point_value=15))
        self.create_product(CreateProductRequest(name="BQ250 BAREEQ 25W", point_value=10))

        self.register_codes(bq520.id, ["3f2b8c1e-9d4a-4e6b-8a7c-1d2e3f4a5b6c"])
        self.register_codes(bq360.id, ["7a1c2d3e-4f5a-4b6c-9d8e-0f1a2b3c4d5e"])

        self.create_reward(CreateRewardRequest(
            name="Fuel Voucher", description="200 EGP fuel card",
            type=RewardType.VOUCHER, cost=500,
        ))
        self.create_reward(CreateRewardRequest(
            name="Toolkit", description="Professional installer toolkit",
            type=RewardType.PRODUCT, cost=1500,
        ))

        self.create_badge(CreateBadgeRequest(name="Beginner", icon="star", description="First login"))
        self.create_badge(CreateBadgeRequest(
            name="Gold Installer", icon="award", description="Five successful installations",
            min_installations=5,
        ))
        self.create_badge(CreateBadgeRequest(
            name="Certified Installer", icon="verified", description="Reached level 2",
            min_level=2,
        ))

    def _next_id(self, kind: str) -> int:
        self._ids[kind] += 1
        return self._ids[kind]

    # Products

    def create_product(self, request: CreateProductRequest) -> Product:
        with self._lock:
            product_id = self._next_id("product")
            data = {"id": product_id, **request.model_dump()}
            self.products[product_id] = data
        return Product(**data)

    def update_product(self, product_id: int, request: UpdateProductRequest) -> Product:
        with self._lock:
            data = self.products.get(product_id)
            if not data:
                raise CatalogItemNotFoundError(f"Product {product_id} not found")
            data.update(request.model_dump(exclude_none=True))
        return Product(**data)

    def get_product(self, product_id: int) -> Optional[Product]:
        data = self.products.get(product_id)
        return Product(**data) if data else None

    def list_products(self, active: Optional[bool] = None) -> list[Product]:
        products = [Product(**p) for p in self.products.values()]
        if active is not None:
            products = [p for p in products if p.active == active]
        return products

    def register_codes(self, product_id: int, tokens: list[str]) -> list[str]:
        """Attach issued scan tokens to a product. Returns canonical tokens."""
        canonical = []
        for token in tokens:
            try:
                parsed = UUID(token)
            except ValueError:
                raise CatalogError(f"Scan token {token!r} is not a UUID")
            if parsed.version != 4:
                raise CatalogError(f"Scan token {token!r} is not a version-4 UUID")
            canonical.append(str(parsed))

        with self._lock:
            if product_id not in self.products:
                raise CatalogItemNotFoundError(f"Product {product_id} not found")
            for token in canonical:
                owner = self.codes.get(token)
                if owner is not None and owner != product_id:
                    raise CodeAlreadyRegisteredError(f"Scan token {token} already issued for product {owner}")
            for token in canonical:
                self.codes[token] = product_id
        return canonical

    def lookup_code(self, token: str) -> Optional[Product]:
        product_id = self.codes.get(token)
        if product_id is None:
            return None
        return self.get_product(product_id)

    # Rewards

    def create_reward(self, request: CreateRewardRequest) -> Reward:
        with self._lock:
            reward_id = self._next_id("reward")
            data = {"id": reward_id, **request.model_dump()}
            self.rewards[reward_id] = data
        return Reward(**data)

    def get_reward(self, reward_id: int) -> Optional[Reward]:
        data = self.rewards.get(reward_id)
        return Reward(**data) if data else None

    def list_rewards(self, active: Optional[bool] = None) -> list[Reward]:
        rewards = [Reward(**r) for r in self.rewards.values()]
        if active is not None:
            rewards = [r for r in rewards if r.active == active]
        return rewards

    # Badges

    def create_badge(self, request: CreateBadgeRequest) -> Badge:
        with self._lock:
            badge_id = self._next_id("badge")
            data = {"id": badge_id, **request.model_dump()}
            self.badges[badge_id] = data
        return Badge(**data)

    def update_badge(self, badge_id: int, request: UpdateBadgeRequest) -> Badge:
        with self._lock:
            data = self.badges.get(badge_id)
            if not data:
                raise CatalogItemNotFoundError(f"Badge {badge_id} not found")
            data.update(request.model_dump(exclude_none=True))
        return Badge(**data)

    def list_badges(self, active: Optional[bool] = None) -> list[Badge]:
        badges = [Badge(**b) for b in self.badges.values()]
        if active is not None:
            badges = [b for b in badges if b.active == active]
        return badges
