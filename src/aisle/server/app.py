"""ASGI application for Aisle."""
# mypy: ignore-errors

from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Optional
from uuid import uuid4

from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel, ConfigDict, Field

from aisle import __version__, metrics
from aisle.config import get_settings
from aisle.db.stores import seed_default_stores
from aisle.grocery import ALL_STORES, KEEP
from aisle.logging_utils import configure_from_settings
from aisle.models.grocery import GroceryItem, Store
from aisle.server import deps

logger = logging.getLogger(__name__)

# Fields that are NOT NULL in storage; an explicit null in an update is ignored.
_NON_NULLABLE_UPDATE_FIELDS = ("name", "category", "is_organic")


def _json_safe(value: Any) -> Any:
    """Convert non-serializable values into JSON-safe representations."""

    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            return value.hex()
    if isinstance(value, (list, tuple)):
        return [_json_safe(entry) for entry in value]
    if isinstance(value, dict):
        return {key: _json_safe(sub_value) for key, sub_value in value.items()}
    return repr(value)


def _normalize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Ensure validation error payloads can be serialized to JSON."""

    return [{key: _json_safe(value) for key, value in error.items()} for error in errors]


def _ensure_store(fetcher: deps.StoreFetcher, store_id: Optional[int]) -> None:
    if store_id is not None and fetcher(store_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Store {store_id} not found",
        )


def create_app() -> FastAPI:
    """Create and configure a FastAPI application instance."""

    settings = get_settings()
    configure_from_settings(settings)

    application = FastAPI(title="Aisle Grocery List", version=__version__)

    if settings.seed_default_stores:

        @application.on_event("startup")
        async def seed_stores() -> None:
            seed_default_stores()

    logger.debug("Application created with log level %s", settings.log_level)

    if settings.log_requests:
        access_logger = logging.getLogger("aisle.access")

        @application.middleware("http")
        async def log_request_response(request: Request, call_next):
            """Log request/response details without leaking sensitive data."""

            request_id = request.headers.get("X-Request-ID") or uuid4().hex
            request.state.request_id = request_id
            start = perf_counter()
            path = request.url.path
            method = request.method
            try:
                response: Response = await call_next(request)
            except Exception:
                duration_ms = (perf_counter() - start) * 1000
                access_logger.exception(
                    "HTTP %s %s status=500 duration_ms=%.2f",
                    method,
                    path,
                    duration_ms,
                    extra={"request_id": request_id},
                )
                metrics.REQUEST_COUNT.labels(method=method, path=path, status="500").inc()
                metrics.REQUEST_LATENCY.labels(method=method, path=path).observe(
                    duration_ms / 1000.0
                )
                raise

            duration_ms = (perf_counter() - start) * 1000
            response.headers.setdefault("X-Request-ID", request_id)
            access_logger.info(
                "HTTP %s %s status=%s duration_ms=%.2f",
                method,
                path,
                response.status_code,
                duration_ms,
                extra={"request_id": request_id},
            )
            metrics.REQUEST_COUNT.labels(
                method=method,
                path=path,
                status=str(response.status_code),
            ).inc()
            metrics.REQUEST_LATENCY.labels(method=method, path=path).observe(duration_ms / 1000.0)
            return response

    @application.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        body_preview: str | None = None
        try:
            raw_body = await request.body()
            if raw_body:
                decoded = raw_body.decode("utf-8", errors="replace")
                if len(decoded) > 2048:
                    decoded = decoded[:2048] + "...(truncated)"
                body_preview = decoded
        except RuntimeError:  # pragma: no cover - stream already consumed
            body_preview = "<unable to read body>"

        log_kwargs: dict[str, Any] = {}
        request_id = getattr(request.state, "request_id", None)
        if request_id:
            log_kwargs["extra"] = {"request_id": request_id}

        logger.warning(
            "Validation error on %s %s: %s | body=%s",
            request.method,
            request.url.path,
            exc.errors(),
            body_preview,
            **log_kwargs,
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": _normalize_validation_errors(exc.errors())},
        )

    @application.get("/stores", response_model=list[Store], summary="List stores")
    def stores_list(
        provider: deps.StoreProvider = Depends(deps.get_store_provider),
    ) -> list[Store]:
        return provider()

    @application.post(
        "/stores",
        response_model=Store,
        status_code=status.HTTP_201_CREATED,
        summary="Create store",
    )
    def stores_create(
        payload: StoreCreateRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        creator: deps.StoreCreator = Depends(deps.get_store_creator),
    ) -> Store:
        return creator(payload.model_dump())

    @application.post("/stores/seed", summary="Seed default stores when none exist")
    def stores_seed(
        auth: None = Depends(deps.require_api_token),
        seeder: deps.StoreSeeder = Depends(deps.get_store_seeder),
    ) -> dict[str, Any]:
        return seeder()

    @application.post(
        "/stores/unassigned/rebalance",
        response_model=RebalanceResponse,
        summary="Renumber sort keys of unassigned items",
    )
    def stores_unassigned_rebalance(
        only_if_crowded: bool = Query(default=False),
        auth: None = Depends(deps.require_api_token),
        rebalancer: deps.PartitionRebalancer = Depends(deps.get_partition_rebalancer),
    ) -> RebalanceResponse:
        return RebalanceResponse(changed_count=rebalancer(None, only_if_crowded))

    @application.put("/stores/{store_id}", response_model=Store, summary="Update store")
    def stores_update(
        store_id: int,
        payload: StoreUpdateRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        updater: deps.StoreUpdater = Depends(deps.get_store_updater),
    ) -> Store:
        update_payload = payload.model_dump(exclude_unset=True)
        if not update_payload:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No fields provided for update",
            )
        try:
            return updater(store_id, update_payload)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    @application.delete(
        "/stores/{store_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        summary="Delete store and move its items to unassigned",
    )
    def stores_delete(
        store_id: int,
        auth: None = Depends(deps.require_api_token),
        deleter: deps.StoreDeleter = Depends(deps.get_store_deleter),
    ) -> None:
        try:
            deleter(store_id)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    @application.post(
        "/stores/{store_id}/rebalance",
        response_model=RebalanceResponse,
        summary="Renumber sort keys of a store's items",
    )
    def stores_rebalance(
        store_id: int,
        only_if_crowded: bool = Query(default=False),
        auth: None = Depends(deps.require_api_token),
        fetcher: deps.StoreFetcher = Depends(deps.get_store_fetcher),
        rebalancer: deps.PartitionRebalancer = Depends(deps.get_partition_rebalancer),
    ) -> RebalanceResponse:
        _ensure_store(fetcher, store_id)
        return RebalanceResponse(changed_count=rebalancer(store_id, only_if_crowded))

    @application.get(
        "/grocery-items",
        response_model=list[GroceryItem],
        summary="List grocery items in display order",
    )
    def grocery_items_list(
        store_id: Optional[int] = Query(default=None),
        unassigned: bool = Query(default=False),
        week_plan_id: Optional[str] = Query(default=None, min_length=1, max_length=64),
        provider: deps.GroceryListProvider = Depends(deps.get_grocery_list_provider),
        week_plan_provider: deps.WeekPlanItemsProvider = Depends(
            deps.get_week_plan_items_provider
        ),
    ) -> list[GroceryItem]:
        if week_plan_id is not None:
            return week_plan_provider(week_plan_id)
        if unassigned:
            return provider(None)
        if store_id is not None:
            return provider(store_id)
        return provider(ALL_STORES)

    @application.get(
        "/grocery-items/duplicate",
        response_model=DuplicateLookupResponse,
        summary="Find an unchecked item with the same name",
    )
    def grocery_items_duplicate(
        name: str = Query(min_length=1, max_length=255),
        finder: deps.DuplicateFinder = Depends(deps.get_duplicate_finder),
    ) -> DuplicateLookupResponse:
        item = finder(name)
        return DuplicateLookupResponse(exists=item is not None, item=item)

    @application.post(
        "/grocery-items/clear-checked",
        response_model=ClearCheckedResponse,
        summary="Delete every checked item",
    )
    def grocery_items_clear_checked(
        auth: None = Depends(deps.require_api_token),
        clearer: deps.CheckedItemsClearer = Depends(deps.get_checked_items_clearer),
    ) -> ClearCheckedResponse:
        return ClearCheckedResponse(deleted_count=clearer())

    @application.post(
        "/grocery-items/remove-by-name",
        response_model=RemoveByNameResponse,
        summary="Delete unchecked items matching a name",
    )
    def grocery_items_remove_by_name(
        payload: RemoveByNameRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        remover: deps.NameRemover = Depends(deps.get_name_remover),
    ) -> RemoveByNameResponse:
        return RemoveByNameResponse(removed_count=remover(payload.name))

    @application.post(
        "/grocery-items",
        response_model=GroceryItem,
        status_code=status.HTTP_201_CREATED,
        summary="Add grocery item",
    )
    def grocery_items_create(
        payload: GroceryItemCreateRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        fetcher: deps.StoreFetcher = Depends(deps.get_store_fetcher),
        creator: deps.GroceryItemCreator = Depends(deps.get_grocery_item_creator),
    ) -> GroceryItem:
        _ensure_store(fetcher, payload.store_id)
        return creator(payload.model_dump())

    @application.get(
        "/grocery-items/{item_id}",
        response_model=GroceryItem,
        summary="Get grocery item",
    )
    def grocery_items_get(
        item_id: int,
        fetcher: deps.GroceryItemFetcher = Depends(deps.get_grocery_item_fetcher),
    ) -> GroceryItem:
        item = fetcher(item_id)
        if item is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")
        return item

    @application.put(
        "/grocery-items/{item_id}",
        response_model=GroceryItem,
        summary="Update grocery item",
    )
    def grocery_items_update(
        item_id: int,
        payload: GroceryItemUpdateRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        store_fetcher: deps.StoreFetcher = Depends(deps.get_store_fetcher),
        updater: deps.GroceryItemUpdater = Depends(deps.get_grocery_item_updater),
    ) -> GroceryItem:
        update_payload = {
            key: value
            for key, value in payload.model_dump(exclude_unset=True).items()
            if value is not None or key not in _NON_NULLABLE_UPDATE_FIELDS
        }
        if not update_payload:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No fields provided for update",
            )
        _ensure_store(store_fetcher, update_payload.get("store_id"))
        try:
            return updater(item_id, update_payload)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    @application.post(
        "/grocery-items/{item_id}/toggle",
        response_model=GroceryItem,
        summary="Toggle checked state",
    )
    def grocery_items_toggle(
        item_id: int,
        auth: None = Depends(deps.require_api_token),
        toggler: deps.GroceryItemToggler = Depends(deps.get_grocery_item_toggler),
    ) -> GroceryItem:
        try:
            return toggler(item_id)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    @application.post(
        "/grocery-items/{item_id}/reorder",
        response_model=GroceryItem,
        summary="Move an item before another item or to the end of a store",
    )
    def grocery_items_reorder(
        item_id: int,
        payload: ReorderRequest | None = Body(default=None),
        auth: None = Depends(deps.require_api_token),
        store_fetcher: deps.StoreFetcher = Depends(deps.get_store_fetcher),
        reorderer: deps.GroceryItemReorderer = Depends(deps.get_grocery_item_reorderer),
    ) -> GroceryItem:
        payload = payload or ReorderRequest()
        # Omitted store_id keeps the current store; explicit null means unassigned.
        target = payload.store_id if "store_id" in payload.model_fields_set else KEEP
        if target is not KEEP:
            _ensure_store(store_fetcher, target)
        try:
            return reorderer(item_id, {"store_id": target, "before_id": payload.before_id})
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    @application.post(
        "/grocery-items/{item_id}/merge-quantity",
        response_model=GroceryItem,
        summary="Merge extra quantity into an existing item",
    )
    def grocery_items_merge_quantity(
        item_id: int,
        payload: MergeQuantityRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        merger: deps.QuantityMerger = Depends(deps.get_quantity_merger),
    ) -> GroceryItem:
        try:
            return merger(item_id, payload.quantity)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    @application.post(
        "/grocery-items/{item_id}/link-meals",
        response_model=GroceryItem,
        summary="Link planned meals to an item",
    )
    def grocery_items_link_meals(
        item_id: int,
        payload: LinkMealsRequest = Body(...),
        auth: None = Depends(deps.require_api_token),
        linker: deps.MealLinker = Depends(deps.get_meal_linker),
    ) -> GroceryItem:
        try:
            return linker(item_id, payload.meal_ids)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    @application.delete(
        "/grocery-items/{item_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        summary="Delete grocery item",
    )
    def grocery_items_delete(
        item_id: int,
        auth: None = Depends(deps.require_api_token),
        deleter: deps.GroceryItemDeleter = Depends(deps.get_grocery_item_deleter),
    ) -> None:
        try:
            deleter(item_id)
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    @application.get("/metrics", include_in_schema=False)
    def metrics_endpoint() -> Response:
        payload = generate_latest()
        return Response(content=payload, media_type=CONTENT_TYPE_LATEST)

    return application


class StoreCreateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    color: Optional[str] = Field(default=None, max_length=32)


class StoreUpdateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    color: Optional[str] = Field(default=None, max_length=32)


class GroceryItemCreateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    store_id: Optional[int] = Field(default=None, ge=1)
    before_id: Optional[int] = Field(default=None, ge=1)
    quantity: Optional[str] = Field(default=None, max_length=128)
    category: str = Field(default="Other", min_length=1, max_length=64)
    is_organic: bool = Field(default=False)
    linked_meal_ids: list[str] = Field(default_factory=list)
    week_plan_id: Optional[str] = Field(default=None, max_length=64)


class GroceryItemUpdateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    quantity: Optional[str] = Field(default=None, max_length=128)
    store_id: Optional[int] = Field(default=None, ge=1)
    category: Optional[str] = Field(default=None, min_length=1, max_length=64)
    is_organic: Optional[bool] = Field(default=None)


class ReorderRequest(BaseModel):
    store_id: Optional[int] = Field(default=None, ge=1)
    before_id: Optional[int] = Field(default=None, ge=1)


class MergeQuantityRequest(BaseModel):
    quantity: str = Field(max_length=128)


class LinkMealsRequest(BaseModel):
    meal_ids: list[str] = Field(min_length=1)


class RemoveByNameRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)


class DuplicateLookupResponse(BaseModel):
    exists: bool
    item: Optional[GroceryItem] = None


class ClearCheckedResponse(BaseModel):
    deleted_count: int


class RemoveByNameResponse(BaseModel):
    removed_count: int


class RebalanceResponse(BaseModel):
    changed_count: int


app = create_app()

__all__ = ["app", "create_app"]
