"""
FastAPI Application Entry Point

Thin request layer over the order engine. Routes translate HTTP into engine
calls; engine error kinds become status codes (NOT_FOUND → 404,
VALIDATION → 400, CONFLICT → 409).

Endpoints:
    - POST  /api/orders: Create order
    - GET   /api/orders: List orders
    - GET   /api/orders/{order_id}: Get order
    - PATCH /api/orders/{order_id}: Update order
    - POST  /api/orders/{order_id}/cancel: Cancel order
    - POST  /api/orders/{order_id}/payments: Add payment
    - GET   /api/businesses/{business_id}/orders/{order_number}: Get order by number
    - GET   /api/businesses/{business_id}/stats: Business stats
    - GET   /api/businesses/{business_id}/dashboard: Dashboard stats
    - GET   /health: System health check
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select

from orderflow.core.config import get_settings, setup_logging
from orderflow.core.errors import ErrorKind, OrderEngineError
from orderflow.database import build_engine, build_session_maker, init_db
from orderflow.models import OrderStatus, OrderType, PaymentStatus
from orderflow.schemas import (
    DashboardStats,
    ErrorResponse,
    HealthResponse,
    OrderCancel,
    OrderCreate,
    OrderFilter,
    OrderListResponse,
    OrderResponse,
    OrderStats,
    OrderUpdate,
    PaymentAddedResponse,
    PaymentCreate,
    PaymentResponse,
)
from orderflow.services import (
    OrderEngine,
    StatsAggregator,
    build_order_engine,
    build_stats_aggregator,
)

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.VALIDATION: 400,
    ErrorKind.CONFLICT: 409,
}


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    engine = build_engine(
        settings.database_url,
        echo=settings.database_echo,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    await init_db(engine)
    session_maker = build_session_maker(engine)

    app.state.db_engine = engine
    app.state.order_engine = build_order_engine(session_maker, settings)
    app.state.stats = build_stats_aggregator(session_maker, settings)
    logger.info("✅ Application ready!")

    yield  # Application runs

    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Order creation, fulfillment status, payments and reporting for restaurant businesses.",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_order_engine(request: Request) -> OrderEngine:
    return request.app.state.order_engine


def get_stats_aggregator(request: Request) -> StatsAggregator:
    return request.app.state.stats


def normalize_order_number(order_number: str) -> str:
    """Accept order numbers with or without the prefix ("0007" or "#0007")."""
    prefix = settings.order_number_prefix
    return order_number if order_number.startswith(prefix) else f"{prefix}{order_number}"


# =============================================================================
# HEALTH
# =============================================================================

@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(engine: OrderEngine = Depends(get_order_engine)) -> HealthResponse:
    """Verify the database is reachable."""
    db_status = "healthy"
    try:
        async with engine.session_maker() as session:
            await session.execute(select(1))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    return HealthResponse(
        status="operational" if db_status == "healthy" else "degraded",
        database=db_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# ORDER API ENDPOINTS
# =============================================================================

@app.post(
    "/api/orders",
    response_model=OrderResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    tags=["Orders"],
)
async def create_order(
    order_data: OrderCreate,
    engine: OrderEngine = Depends(get_order_engine),
) -> OrderResponse:
    """Create a new order priced from the business catalog."""
    logger.info(f"Creating order for business {order_data.business_id}")
    order = await engine.create(order_data)
    return OrderResponse.model_validate(order)


@app.get("/api/orders", response_model=OrderListResponse, tags=["Orders"])
async def list_orders(
    business_id: Optional[str] = Query(None),
    status: Optional[OrderStatus] = Query(None),
    type: Optional[OrderType] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None),
    table_id: Optional[str] = Query(None),
    customer_id: Optional[str] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    sort_by: str = Query("created_at", pattern="^(created_at|order_number|grand_total)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    engine: OrderEngine = Depends(get_order_engine),
) -> OrderListResponse:
    """Retrieve a filtered, paginated list of order summaries."""
    filters = OrderFilter(
        business_id=business_id,
        status=status,
        type=type,
        payment_status=payment_status,
        table_id=table_id,
        customer_id=customer_id,
        date_from=date_from,
        date_to=date_to,
        search=search,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return await engine.list_orders(filters)


@app.get(
    "/api/orders/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Orders"],
)
async def get_order(
    order_id: str,
    engine: OrderEngine = Depends(get_order_engine),
) -> OrderResponse:
    """Get a specific order by ID."""
    order = await engine.get_one(order_id)
    if not order:
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")
    return OrderResponse.model_validate(order)


@app.get(
    "/api/businesses/{business_id}/orders/{order_number}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Orders"],
)
async def get_order_by_number(
    business_id: str,
    order_number: str,
    engine: OrderEngine = Depends(get_order_engine),
) -> OrderResponse:
    """Get an order by its per-business number."""
    number = normalize_order_number(order_number)
    order = await engine.get_by_order_number(business_id, number)
    if not order:
        raise HTTPException(status_code=404, detail=f"Order {number} not found")
    return OrderResponse.model_validate(order)


@app.patch(
    "/api/orders/{order_id}",
    response_model=OrderResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    tags=["Orders"],
)
async def update_order(
    order_id: str,
    update: OrderUpdate,
    engine: OrderEngine = Depends(get_order_engine),
) -> OrderResponse:
    """Update status, customer details, notes, discount or tip."""
    order = await engine.update(order_id, update)
    return OrderResponse.model_validate(order)


@app.post(
    "/api/orders/{order_id}/cancel",
    response_model=OrderResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    tags=["Orders"],
)
async def cancel_order(
    order_id: str,
    body: Optional[OrderCancel] = None,
    engine: OrderEngine = Depends(get_order_engine),
) -> OrderResponse:
    """Cancel an order that is not completed or already cancelled."""
    order = await engine.cancel(order_id, body.reason if body else None)
    return OrderResponse.model_validate(order)


@app.post(
    "/api/orders/{order_id}/payments",
    response_model=PaymentAddedResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    tags=["Payments"],
)
async def add_payment(
    order_id: str,
    payment_data: PaymentCreate,
    engine: OrderEngine = Depends(get_order_engine),
) -> PaymentAddedResponse:
    """Record a payment against an order."""
    payment = await engine.add_payment(order_id, payment_data)
    order = payment.order
    return PaymentAddedResponse(
        payment=PaymentResponse.model_validate(payment),
        order_payment_status=order.payment_status,
        remaining_balance=engine.payments.remaining_balance(order),
    )


# =============================================================================
# STATS ENDPOINTS
# =============================================================================

@app.get("/api/businesses/{business_id}/stats", response_model=OrderStats, tags=["Stats"])
async def business_stats(
    business_id: str,
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    stats: StatsAggregator = Depends(get_stats_aggregator),
) -> OrderStats:
    """Order counts, revenue and best sellers for a business."""
    return await stats.business_stats(business_id, date_from, date_to)


@app.get("/api/businesses/{business_id}/dashboard", response_model=DashboardStats, tags=["Stats"])
async def dashboard(
    business_id: str,
    stats: StatsAggregator = Depends(get_stats_aggregator),
) -> DashboardStats:
    """Today / this week / this month stats with recent orders."""
    return await stats.dashboard_stats(business_id)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(OrderEngineError)
async def engine_error_handler(request: Request, exc: OrderEngineError) -> JSONResponse:
    """Map engine error kinds to HTTP status codes."""
    status_code = ERROR_STATUS[exc.kind]
    if exc.kind == ErrorKind.CONFLICT:
        logger.warning(f"{request.method} {request.url.path} conflict: {exc.to_dict()}")

    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=exc.kind.value,
            detail=exc.message,
            field=exc.field,
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug or settings.is_development else "An unexpected error occurred",
        },
    )
