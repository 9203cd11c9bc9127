"""
Money Race - gas-sponsorship backend
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import ai, auth, player, room, sponsored, usdc
from config import get_settings
from services.container import AppContainer
from services.errors import LedgerError, MoneyRaceError, RateLimitedError

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(container: Optional[AppContainer] = None) -> FastAPI:
    """
    Build the application.

    When a container is given (tests) it is used as-is and left open;
    otherwise the production container is created at startup and closed
    at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = container is None
        app.state.container = container or await AppContainer.create(get_settings())
        logger.info(f"Sponsor address: {app.state.container.sponsor.address}")
        try:
            yield
        finally:
            if owned:
                await app.state.container.close()

    app = FastAPI(
        title="Money Race",
        description="Gas-sponsored savings rooms on Sui",
        version="1.0.0",
        lifespan=lifespan,
    )
    if container is not None:
        app.state.container = container

    settings = container.settings if container else get_settings()
    origins = ["*"] if settings.is_development else [settings.frontend_url]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(MoneyRaceError)
    async def money_race_error_handler(request: Request, exc: MoneyRaceError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        headers = None
        if isinstance(exc, RateLimitedError):
            headers = {"Retry-After": str(exc.retry_after_seconds)}
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(part) for part in first.get("loc", ())[1:])
        message = first.get("msg", "Invalid request")
        return JSONResponse(
            status_code=400,
            content={"detail": f"{field}: {message}" if field else message},
        )

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    for module in (room, player, sponsored, usdc, auth, ai):
        app.include_router(module.router)

    @app.get("/health")
    async def health(request: Request):
        current = request.app.state.container.settings
        return {"status": "ok", "network": current.network, "packageId": current.package_id}

    @app.get("/contract-status")
    async def contract_status(request: Request):
        """RPC reachability and package visibility"""
        current: AppContainer = request.app.state.container
        rpc_connected = True
        contract_connected = True

        try:
            await current.sui_client.get_chain_identifier()
        except LedgerError as e:
            logger.warning(f"RPC not reachable: {e.message}")
            rpc_connected = False

        if rpc_connected:
            try:
                await current.sui_client.get_object(current.settings.package_id, show_content=False)
            except MoneyRaceError as e:
                logger.warning(f"Package {current.settings.package_id} not visible: {e.message}")
                contract_connected = False
        else:
            contract_connected = False

        return {
            "status": "connected" if rpc_connected and contract_connected else "error",
            "rpc": {
                "connected": rpc_connected,
                "url": current.settings.sui_rpc_url,
                "network": current.settings.network,
            },
            "contract": {
                "connected": contract_connected,
                "packageId": current.settings.package_id,
                "adminCapId": current.settings.admin_cap_id,
            },
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=get_settings().port, reload=get_settings().is_development)
