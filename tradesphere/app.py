# tradesphere/app.py
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from .config import Config
from .database import create_database
from .errors import TradeSphereError
from .handlers import order_router, vendor_router
from .handlers.base_handler import failure
from .services.fulfillment_service import FulfillmentService
from .services.order_service import OrderService
from .services.payment_service import PaymentService
from .services.vendor_service import VendorService
from .utils.messages import Messages

logger = logging.getLogger(__name__)


def create_app(db=None, gateway=None, secret_key=None, transitions=None,
               restock_on_cancel=None) -> FastAPI:
    """Build the API with its services wired to one store"""
    db = db or create_database(Config.DATABASE_URL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await db.connect()
        try:
            yield
        finally:
            await db.close()

    app = FastAPI(title="TradeSphere Orders API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=Config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.db = db
    app.state.secret_key = secret_key or Config.SECRET_KEY
    app.state.order_service = OrderService(db)
    app.state.payment_service = PaymentService(db, gateway)
    app.state.fulfillment_service = FulfillmentService(
        db, transitions=transitions, restock_on_cancel=restock_on_cancel
    )
    app.state.vendor_service = VendorService(db)

    app.include_router(order_router, prefix="/api")
    app.include_router(vendor_router, prefix="/api")
    setup_error_handlers(app)

    @app.get("/api/health")
    async def health_check():
        return {"success": True, "message": "TradeSphere order service running"}

    return app


def setup_error_handlers(app: FastAPI):
    """Translate every failure into the {success: false, message} envelope"""

    @app.exception_handler(TradeSphereError)
    async def tradesphere_error_handler(request: Request, exc: TradeSphereError):
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
        return failure(exc.message, exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            location = ".".join(str(part) for part in errors[0].get("loc", ()))
            detail = f"{location}: {errors[0].get('msg')}"
        else:
            detail = "malformed request"
        return failure(Messages.invalid_request(detail), 400)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return failure(str(exc.detail), exc.status_code)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}",
                     exc_info=True)
        return failure(Messages.SERVER_ERROR, 500)
