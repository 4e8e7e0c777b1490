from fastapi import FastAPI

from catalog_sync.entrypoints.http.exception_handlers import register_exception_handlers
from catalog_sync.entrypoints.http.routes.health import router as health_router
from catalog_sync.entrypoints.http.routes.views import router as views_router
from catalog_sync.infra.logging_config import configure_logging


def build_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="Catalog Sync API",
        description="""
        Canonical catalog URLs for storefront views.

        ## Features
        - Decode view URLs into canonical filter state
        - Apply filter patches, remove chips, clear filters
        - Locked filters per view (clearance, brand and category routes)

        ## Error Handling
        All errors return structured JSON responses with error codes.
        """,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(views_router, prefix="/v1")

    return app


app = build_app()
