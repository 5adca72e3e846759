from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from pymongo.database import Database
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from config import Settings, settings as default_settings, setup_logging
from database import connect, get_db, serialize_document
from errors import AppError, NotFoundError, error_response, register_error_handlers
from schemas import ProductCreate, ProductUpdate
from store import ProductStore

# ---------- Helpers ----------

def get_store(db: Database = Depends(get_db)) -> ProductStore:
    return ProductStore(db)

def envelope(data: Any, message: str, count: int, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "success",
            "message": message,
            "count": count,
            "data": jsonable_encoder(serialize_document(data)),
        },
    )

# ---------- Products ----------

router = APIRouter(prefix="/api/v1/products", tags=["products"])

@router.post("")
def create_product(body: ProductCreate, store: ProductStore = Depends(get_store)):
    product = store.create(body)
    return envelope(product, "Product was successfully created", 1, status.HTTP_201_CREATED)

@router.get("")
def list_products(store: ProductStore = Depends(get_store)):
    products = store.find_all()
    return envelope(products, "Products successfully retrieved", len(products))

@router.get("/{product_id}")
def get_product(product_id: str, store: ProductStore = Depends(get_store)):
    product = store.find_one(product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return envelope(product, "Product successfully retrieved", 1)

@router.patch("/{product_id}")
def update_product(product_id: str, body: ProductUpdate, store: ProductStore = Depends(get_store)):
    product = store.find_one_and_update(product_id, body)
    if product is None:
        raise NotFoundError("Product not found")
    return envelope(product, "Product was successfully updated", 1)

@router.delete("/{product_id}/variety/{variety_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_variety(product_id: str, variety_id: str, store: ProductStore = Depends(get_store)):
    removed = store.delete_variety(product_id, variety_id)
    if removed is None:
        raise NotFoundError("Product not found")
    if not removed:
        raise NotFoundError("Product variety was not found in the product specified")
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(product_id: str, store: ProductStore = Depends(get_store)):
    if store.find_one_and_delete(product_id) is None:
        raise NotFoundError("Product not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)

# ---------- App ----------

class BodySizeLimitMiddleware:
    """Reject request bodies larger than `settings.max_body_bytes` with 413.

    A declared Content-Length is checked up front. Bodies sent without one
    (chunked) are buffered and counted as they arrive, then replayed to the app.
    """

    def __init__(self, app: ASGIApp, settings: Settings):
        self.app = app
        self.settings = settings

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        limit = self.settings.max_body_bytes
        length = Headers(scope=scope).get("content-length")
        if length is not None:
            if length.isdigit() and int(length) > limit:
                await self._reject(scope, receive, send)
                return
            await self.app(scope, receive, send)
            return

        chunks = []
        size = 0
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                return
            chunk = message.get("body", b"")
            size += len(chunk)
            if size > limit:
                await self._reject(scope, receive, send)
                return
            chunks.append(chunk)
            if not message.get("more_body", False):
                break

        body = b"".join(chunks)
        replayed = False

        async def replay() -> Message:
            nonlocal replayed
            if replayed:
                return await receive()
            replayed = True
            return {"type": "http.request", "body": body, "more_body": False}

        await self.app(scope, replay, send)

    async def _reject(self, scope: Scope, receive: Receive, send: Send) -> None:
        error = AppError(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, "Request body is too large")
        await error_response(error, self.settings)(scope, receive, send)

def create_app(settings: Settings = default_settings) -> FastAPI:
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = connect(settings)
        app.state.db = client[settings.database_name]
        yield
        client.close()
        logger.info("Database connection closed")

    app = FastAPI(title="Avios Product API", lifespan=lifespan)

    app.add_middleware(GZipMiddleware, minimum_size=settings.gzip_minimum_size)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(BodySizeLimitMiddleware, settings=settings)

    register_error_handlers(app, settings)

    @app.get("/")
    def root():
        return "Welcome to Avios"

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=default_settings.port)
