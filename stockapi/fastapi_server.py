"""
FastAPI server for the Stock API.

Provides REST endpoints to create, read, update and delete stocks.
"""

import json
from contextlib import asynccontextmanager
from typing import Any, List

from fastapi import FastAPI, HTTPException, Depends, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import get_settings
from .db_client import StockDB, StorageError
from .models import HealthCheck, Stock, StockIn, StockResponse
from .utils import affected_message, setup_logging


class PrettyJSONResponse(JSONResponse):
    """JSON response indented with tabs and terminated by a newline."""

    def render(self, content: Any) -> bytes:
        return (json.dumps(content, ensure_ascii=False, allow_nan=False, indent="\t") + "\n").encode("utf-8")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings)

    app.state.db = StockDB(settings=settings)
    logger.info("Stock API started")
    try:
        yield
    finally:
        app.state.db.dispose()
        logger.info("Stock API stopped")


# FastAPI app instance
app = FastAPI(
    title="Stock API",
    description="REST API for managing stocks",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    default_response_class=PrettyJSONResponse,
    lifespan=lifespan
)

# CORS middleware answers cross-origin preflight requests. Origins are read
# once at import; changing CORS_ORIGINS needs a restart.
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Dependency to get database client
def get_db(request: Request) -> StockDB:
    """Dependency to provide the process-wide database client."""
    return request.app.state.db


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Map unparseable path ids and request bodies to 400."""
    errors = exc.errors()
    path_errors = [e for e in errors if tuple(e.get("loc", ()))[:1] == ("path",)]

    if path_errors:
        detail = f"Unable to convert the string id to integer type: {path_errors[0].get('input')}"
    else:
        detail = "Unable to decode the request body"

    # Rejected input (e.g. NaN) is not echoed back; it may not be valid JSON
    summary = [{"loc": e.get("loc"), "msg": e.get("msg"), "type": e.get("type")} for e in errors]

    logger.warning(f"{request.method} {request.url.path}: {detail}")
    return PrettyJSONResponse(
        status_code=400,
        content={"detail": detail, "errors": jsonable_encoder(summary)}
    )


@app.exception_handler(StorageError)
async def storage_exception_handler(request: Request, exc: StorageError):
    """Map storage failures to 503 (unreachable) or 500 (statement failed)."""
    status_code = 503 if exc.unavailable else 500
    logger.error(f"{request.method} {request.url.path} failed with {status_code}: {exc}")
    return PrettyJSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return PrettyJSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None)
    )


@app.get("/", tags=["Root"])
def root():
    """Root endpoint with API information."""
    return {
        "message": "Stock API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


@app.get("/health", response_model=HealthCheck, tags=["Health"])
def health_check(db: StockDB = Depends(get_db)):
    """Database and API health check."""
    return db.health_check()


@app.get("/api/stock/{stock_id}", response_model=Stock, tags=["Stocks"])
def get_stock_by_id(stock_id: int, db: StockDB = Depends(get_db)):
    """Get a single stock by id."""
    stock = db.get_stock(stock_id)
    if stock is None:
        raise HTTPException(status_code=404, detail=f"Stock {stock_id} not found")

    return stock


@app.get("/api/stock", response_model=List[Stock], tags=["Stocks"])
def get_all_stocks(db: StockDB = Depends(get_db)):
    """Get every stock (unordered)."""
    return db.all_stocks()


@app.post("/api/createstock", response_model=StockResponse, tags=["Stocks"])
def create_stock(stock: StockIn, db: StockDB = Depends(get_db)):
    """Create a stock. The id is assigned by the database."""
    stock_id = db.insert_stock(stock)
    return StockResponse(id=stock_id, message="stock created successfully")


@app.put("/api/stock/{stock_id}", response_model=StockResponse, tags=["Stocks"])
def update_stock(stock_id: int, stock: StockIn, db: StockDB = Depends(get_db)):
    """Replace name, price and company of a stock."""
    rows_affected = db.update_stock(stock_id, stock)
    return StockResponse(id=stock_id, message=affected_message("updated", rows_affected))


@app.delete("/api/delete/{stock_id}", response_model=StockResponse, tags=["Stocks"])
def delete_stock(stock_id: int, db: StockDB = Depends(get_db)):
    """Delete a stock."""
    rows_affected = db.delete_stock(stock_id)
    return StockResponse(id=stock_id, message=affected_message("deleted", rows_affected))


# Every route path also accepts OPTIONS
ROUTE_METHODS = {
    "/api/stock/{stock_id}": ["GET", "PUT"],
    "/api/stock": ["GET"],
    "/api/createstock": ["POST"],
    "/api/delete/{stock_id}": ["DELETE"],
}


def _options_handler(methods: List[str]):
    allow = ", ".join(methods + ["OPTIONS"])

    def options() -> Response:
        return Response(status_code=200, headers={"Allow": allow})

    return options


for _path, _methods in ROUTE_METHODS.items():
    app.add_api_route(
        _path,
        _options_handler(_methods),
        methods=["OPTIONS"],
        include_in_schema=False
    )


# Development server runner
if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "stockapi.fastapi_server:app",
        host=settings.api_host,
        port=settings.api_port,
        workers=settings.api_workers,
        reload=True
    )
