# storefront/main.py
import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

load_dotenv()

from storefront.config import settings
from storefront.database import init_db
from storefront.errors import AppError
from storefront.schemas.common import ErrorBody, ErrorResponse

# Router imports
from storefront.routes.auth import router as auth_router
from storefront.routes.users import router as users_router
from storefront.routes.products import router as products_router
from storefront.routes.cart import router as cart_router
from storefront.routes.payment import router as payment_router
from storefront.routes.orders import router as orders_router
from storefront.routes.admin import router as admin_router
from storefront.routes.logs import router as logs_router

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


def _error(status_code: int, message: str, details=None) -> JSONResponse:
    body = ErrorResponse(error=ErrorBody(message=message, status=status_code, details=details))
    # "details" is only present when there is something to report
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return _error(exc.status_code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = [
            {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
            for e in exc.errors()
        ]
        return _error(400, "Validation failed", details)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(500, "Internal server error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    init_db()
    yield


def create_app() -> FastAPI:
    app = FastAPI(title="Storefront API", version="1.0.0", lifespan=lifespan)

    # CORS Configuration
    origins = ["http://localhost:5173", "http://127.0.0.1:5173"]
    if settings.FRONTEND_URL and settings.FRONTEND_URL not in origins:
        origins.append(settings.FRONTEND_URL)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Router registration
    for router in (auth_router, users_router, products_router, cart_router,
                   payment_router, orders_router, admin_router, logs_router):
        app.include_router(router, prefix=API_PREFIX)

    @app.get("/")
    def read_root():
        return {"success": True, "data": {"message": "Storefront API is running"}}

    return app


app = create_app()

