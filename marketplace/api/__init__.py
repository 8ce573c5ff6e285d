# marketplace/api/__init__.py
from fastapi import FastAPI, Request

from marketplace.api.errors import register_error_handlers
from marketplace.api.routers import carts, health, orders, ratings
from marketplace.utils.logging import add_context, clear_context


async def log_context_middleware(request: Request, call_next):
    """Kazdy log w trakcie requestu dostaje metode, sciezke i user_id z query (jesli jest)."""
    clear_context()
    add_context(method=request.method, path=request.url.path)
    user_id = request.query_params.get("user_id")
    if user_id:
        add_context(user_id=user_id)
    try:
        return await call_next(request)
    finally:
        clear_context()


def create_app(lifespan=None) -> FastAPI:
    app = FastAPI(
        title="Farm Marketplace - orders & inventory",
        version="1.0.0",
        lifespan=lifespan,
    )
    register_error_handlers(app)
    app.middleware("http")(log_context_middleware)

    # Include routers
    app.include_router(health.router)
    app.include_router(carts.router)
    app.include_router(orders.router)
    app.include_router(orders.farmer_router)
    app.include_router(ratings.router)

    return app
