# cart_core/main.py
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from cart_core.api.routers import carts, checkout, payments, health
from cart_core.data.database import init_db
from cart_core.domain.errors import CartCoreError, PersistenceError
from cart_core.services.catalog_client import CatalogClient
from cart_core.services.payment_gateway import PaymentGateway, StripeGateway
from cart_core.services.pricing_service import CatalogReader
from cart_core.utils.settings import STRIPE_SECRET_KEY
from cart_core.utils.logging import get_logger

logger = get_logger(__name__)


def _error(status_code: int, kind: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"kind": kind, "message": message})


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(CartCoreError)
    async def cart_core_error(request: Request, exc: CartCoreError):
        return _error(exc.status_code, exc.kind, exc.message)

    @app.exception_handler(PermissionError)
    async def forbidden(request: Request, exc: PermissionError):
        return _error(403, "Forbidden", str(exc))

    @app.exception_handler(ValueError)
    async def invalid_request(request: Request, exc: ValueError):
        return _error(400, "InvalidRequest", str(exc))

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError):
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        return _error(400, "InvalidRequest", problems or "Invalid request")

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        kind = "NotFound" if exc.status_code == 404 else "HTTPError"
        return _error(exc.status_code, kind, str(exc.detail))

    @app.exception_handler(SQLAlchemyError)
    async def store_failure(request: Request, exc: SQLAlchemyError):
        logger.error(f"Unhandled store error on {request.url.path}: {exc}")
        err = PersistenceError("Store unavailable, try again")
        return _error(err.status_code, err.kind, err.message)


def create_app(
    catalog: CatalogReader | None = None,
    payment_gateway: PaymentGateway | None = None,
) -> FastAPI:
    """
    Builds the app and owns its provider clients; tests pass fakes in.
    """
    logger.info("Initializing database")
    init_db()

    app = FastAPI(
        title="Cart Service",
        version="1.0.0",
    )

    app.state.catalog = catalog or CatalogClient()
    app.state.payment_gateway = payment_gateway or StripeGateway(api_key=STRIPE_SECRET_KEY)

    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(carts.router)
    app.include_router(checkout.router)
    app.include_router(payments.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
