"""FastAPI application factory."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date
from uuid import UUID

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from calorie_tracker.api.models import (
    AddFoodRequest,
    DailyLedgerModel,
    FoodDatabaseRequest,
    FoodRecordModel,
    GoalsRequest,
    SearchResponse,
    WeeklySummaryModel,
)
from calorie_tracker.app_logging import configure_logging
from calorie_tracker.containers import AppContainer
from calorie_tracker.domain.errors import (
    AdapterError,
    ConflictError,
    NotFoundError,
    TrackerError,
    ValidationError,
)
from calorie_tracker.domain.ledger import FoodInput, parse_day_key
from calorie_tracker.domain.nutrition import MacroTotals
from calorie_tracker.services.ledger import local_today

_ERROR_STATUS: dict[type[TrackerError], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    AdapterError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if container.settings.seed_food_database:
            try:
                await asyncio.to_thread(container.food_database_service.seed)
            except Exception:
                logger.exception("Failed to seed food database")
        yield
        try:
            await app.state.container.close_resources()
        except Exception:
            logger.exception("Failed to close application resources")

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(TrackerError)
    async def tracker_error_handler(
        request: Request, exc: TrackerError
    ) -> JSONResponse:
        status_code = _status_for(exc)
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error("Request failed: path=%s error=%s", request.url.path, exc)
        return JSONResponse(status_code=status_code, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request", "detail": _jsonable_errors(exc)},
        )

    def resolve_day(raw: str | None) -> date:
        if raw:
            return parse_day_key(raw)
        return local_today(container.settings.timezone)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/api/daily-log")
    async def daily_log(
        request: Request, date: str | None = None
    ) -> DailyLedgerModel:
        """Return the day's ledger, creating it on first access."""
        state_container: AppContainer = request.app.state.container
        ledger = await state_container.ledger_service.get_or_create(resolve_day(date))
        return DailyLedgerModel.model_validate(ledger)

    @app.post("/api/add-food")
    async def add_food(
        body: AddFoodRequest, request: Request, date: str | None = None
    ) -> DailyLedgerModel:
        """Log a food entry for the day."""
        state_container: AppContainer = request.app.state.container
        ledger = await state_container.ledger_service.add_entry(
            resolve_day(date),
            FoodInput(
                name=body.name,
                calories=body.calories,
                protein=body.protein,
                carbs=body.carbs,
                fats=body.fats,
                amount=body.amount,
            ),
        )
        return DailyLedgerModel.model_validate(ledger)

    @app.delete("/api/remove-food/{entry_id}")
    async def remove_food(
        entry_id: str, request: Request, date: str | None = None
    ) -> DailyLedgerModel:
        """Remove a logged entry from the day."""
        state_container: AppContainer = request.app.state.container
        try:
            parsed_id = UUID(entry_id)
        except ValueError as exc:
            raise NotFoundError(f"Entry {entry_id} not found") from exc
        ledger = await state_container.ledger_service.remove_entry(
            resolve_day(date), parsed_id
        )
        return DailyLedgerModel.model_validate(ledger)

    @app.put("/api/daily-goals")
    async def set_goals(
        body: GoalsRequest, request: Request, date: str | None = None
    ) -> DailyLedgerModel:
        """Replace the day's goals."""
        state_container: AppContainer = request.app.state.container
        ledger = await state_container.ledger_service.set_goals(
            resolve_day(date),
            MacroTotals(
                calories=body.calories,
                protein=body.protein,
                carbs=body.carbs,
                fats=body.fats,
            ),
        )
        return DailyLedgerModel.model_validate(ledger)

    @app.post("/api/clear")
    async def clear_day(
        request: Request, date: str | None = None
    ) -> DailyLedgerModel:
        """Remove every entry from the day, keeping goals."""
        state_container: AppContainer = request.app.state.container
        ledger = await state_container.ledger_service.clear(resolve_day(date))
        return DailyLedgerModel.model_validate(ledger)

    @app.get("/api/search-food")
    async def search_food(request: Request, query: str = "") -> SearchResponse:
        """Search all food sources."""
        state_container: AppContainer = request.app.state.container
        result = await state_container.search_service.search(query)
        return SearchResponse.model_validate(result)

    @app.get("/api/food-details/{fdc_id}")
    async def food_details(fdc_id: int, request: Request) -> FoodRecordModel:
        """Look up one USDA food by id."""
        state_container: AppContainer = request.app.state.container
        record = await state_container.usda_source.get_food(fdc_id)
        return FoodRecordModel.model_validate(record)

    @app.post("/api/food-database", status_code=status.HTTP_201_CREATED)
    async def add_to_database(
        body: FoodDatabaseRequest, request: Request
    ) -> FoodRecordModel:
        """Add a curated food that later searches will return."""
        state_container: AppContainer = request.app.state.container
        record = state_container.food_database_service.add_food(body.model_dump())
        return FoodRecordModel.model_validate(record)

    @app.get("/api/weekly-summary")
    async def weekly_summary(
        request: Request, date: str | None = None
    ) -> WeeklySummaryModel:
        """Summarize the trailing seven days ending on the given day."""
        state_container: AppContainer = request.app.state.container
        summary = await state_container.rollup_service.get_week(resolve_day(date))
        return WeeklySummaryModel.model_validate(summary)

    return app


def _status_for(exc: TrackerError) -> int:
    for error_type, status_code in _ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _jsonable_errors(exc: RequestValidationError) -> list[dict[str, object]]:
    """Return pydantic validation errors without unserializable context."""
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
