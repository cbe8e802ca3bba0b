import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from mangum import Mangum

from achievements.badges import AchievementService
from achievements.levels import LevelTable
from achievements.models import AchievementSummary
from catalog.models import (
    Product, Reward, Badge,
    CreateProductRequest, UpdateProductRequest, RegisterCodesRequest,
    CreateRewardRequest, CreateBadgeRequest, UpdateBadgeRequest,
)
from catalog.service import InMemoryCatalog, CatalogError, CatalogItemNotFoundError
from config.log import configure_logging
from config.settings import Settings, get_settings
from insights.generator import InsightGenerator, InsightRequest, InsightResponse
from ledger.models import (
    Transaction, AllocatePointsRequest, LedgerHistoryResponse,
    InstallationStats, ProgramSummary,
)
from ledger.service import (
    LedgerService, UnknownUserError, InvalidAmountError, PermissionDeniedError,
)
from ledger.storage import InMemoryStorage
from redemption.models import RedeemRewardRequest, RedemptionResponse
from redemption.service import RedemptionService
from scanning.models import ScanRequest, ScanResponse
from scanning.orchestrator import ScanService
from scanning.validator import CodeValidator

log = logging.getLogger("rewards.api")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Installer Rewards API",
        description="Product scan authentication and points ledger for installer rewards",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    storage = InMemoryStorage(seed=settings.seed_data)
    catalog = InMemoryCatalog(seed=settings.seed_data)
    ledger_service = LedgerService(storage)
    achievement_service = AchievementService(ledger_service, catalog, LevelTable(settings.level_thresholds))
    scan_service = ScanService(ledger_service, catalog, achievement_service, CodeValidator(settings))
    redemption_service = RedemptionService(ledger_service, catalog)
    insight_generator = InsightGenerator(settings)

    app.state.storage = storage
    app.state.catalog = catalog
    app.state.ledger = ledger_service

    @app.get("/health", tags=["System"])
    def health_check():
        return {"status": "healthy", "service": "installer-rewards"}

    @app.post("/scan", response_model=ScanResponse, tags=["Scanning"])
    def scan_code(request: ScanRequest) -> ScanResponse:
        try:
            return scan_service.scan(request)
        except UnknownUserError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    @app.get("/users/{user_id}/transactions", response_model=LedgerHistoryResponse, tags=["Users"])
    def get_user_transactions(user_id: int, limit: int = 50, offset: int = 0) -> LedgerHistoryResponse:
        if limit <= 0 or offset < 0:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="limit must be positive and offset non-negative")
        try:
            return ledger_service.get_ledger_history(user_id, limit, offset)
        except UnknownUserError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    @app.get("/users/{user_id}/achievements", response_model=AchievementSummary, tags=["Users"])
    def get_user_achievements(user_id: int) -> AchievementSummary:
        try:
            return achievement_service.summary(user_id)
        except UnknownUserError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    @app.get("/users/{user_id}/stats", response_model=InstallationStats, tags=["Users"])
    def get_user_stats(user_id: int) -> InstallationStats:
        try:
            return ledger_service.installation_stats(user_id)
        except UnknownUserError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    @app.get("/rewards", response_model=list[Reward], tags=["Rewards"])
    def list_rewards(active: Optional[bool] = True, include_inactive: bool = False) -> list[Reward]:
        return catalog.list_rewards(active=None if include_inactive else active)

    @app.post("/rewards/redeem", response_model=RedemptionResponse, tags=["Rewards"])
    def redeem_reward(request: RedeemRewardRequest) -> RedemptionResponse:
        try:
            return redemption_service.handle(request)
        except UnknownUserError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    @app.post("/admin/points", response_model=Transaction, status_code=status.HTTP_201_CREATED, tags=["Admin"])
    def allocate_points(request: AllocatePointsRequest) -> Transaction:
        try:
            return ledger_service.allocate_points(request)
        except PermissionDeniedError as e:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
        except UnknownUserError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
        except InvalidAmountError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    @app.get("/admin/products", response_model=list[Product], tags=["Admin"])
    def list_products(active: Optional[bool] = None) -> list[Product]:
        return catalog.list_products(active=active)

    @app.post("/admin/products", response_model=Product, status_code=status.HTTP_201_CREATED, tags=["Admin"])
    def create_product(request: CreateProductRequest) -> Product:
        return catalog.create_product(request)

    @app.patch("/admin/products/{product_id}", response_model=Product, tags=["Admin"])
    def update_product(product_id: int, request: UpdateProductRequest) -> Product:
        try:
            return catalog.update_product(product_id, request)
        except CatalogItemNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    @app.post("/admin/products/{product_id}/codes", tags=["Admin"])
    def register_codes(product_id: int, request: RegisterCodesRequest):
        try:
            return {"product_id": product_id, "tokens": catalog.register_codes(product_id, request.tokens)}
        except CatalogItemNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
        except CatalogError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    @app.post("/admin/rewards", response_model=Reward, status_code=status.HTTP_201_CREATED, tags=["Admin"])
    def create_reward(request: CreateRewardRequest) -> Reward:
        return catalog.create_reward(request)

    @app.post("/admin/badges", response_model=Badge, status_code=status.HTTP_201_CREATED, tags=["Admin"])
    def create_badge(request: CreateBadgeRequest) -> Badge:
        return catalog.create_badge(request)

    @app.patch("/admin/badges/{badge_id}", response_model=Badge, tags=["Admin"])
    def update_badge(badge_id: int, request: UpdateBadgeRequest) -> Badge:
        try:
            return catalog.update_badge(badge_id, request)
        except CatalogItemNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    @app.get("/admin/summary", response_model=ProgramSummary, tags=["Admin"])
    def program_summary() -> ProgramSummary:
        return ledger_service.program_summary()

    @app.post("/admin/insights", response_model=InsightResponse, tags=["Admin"])
    def generate_insight(request: InsightRequest) -> InsightResponse:
        return insight_generator.generate(request)

    log.info("Installer rewards API ready (seed_data=%s)", settings.seed_data)
    return app


app = create_app()

handler = Mangum(app)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
