"""
Retail Ledger API Application Factory

Thin REST presentation layer over BankingService.
"""

from typing import Optional
from fastapi import FastAPI
import uvicorn

from .. import __version__
from ..banking import BankingService
from ..config import get_config
from ..logging_config import setup_logging
from .dependencies import get_banking_service, register_exception_handlers
from .users import router as users_router
from .accounts import router as accounts_router
from .transactions import router as transactions_router, transfers_router


def create_app(service: Optional[BankingService] = None) -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="Retail Ledger API",
        description="Accounts, transfers and an append-only transaction journal",
        version=__version__,
    )
    app.state.banking_service = service or BankingService()

    app.include_router(users_router, prefix="/users", tags=["Users"])
    app.include_router(accounts_router, prefix="/accounts", tags=["Accounts"])
    app.include_router(transfers_router, prefix="/transfers", tags=["Transfers"])
    app.include_router(transactions_router, prefix="/transactions", tags=["Transactions"])
    register_exception_handlers(app)

    @app.get("/health")
    def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "retail_ledger_api",
            "version": __version__
        }

    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Run the API with uvicorn using configured defaults"""
    config = get_config()
    setup_logging(config.log_level, config.log_format)
    uvicorn.run(
        create_app(),
        host=host or config.api_host,
        port=port or config.api_port,
        log_level=config.log_level.lower(),
    )


__all__ = ["create_app", "run_server", "get_banking_service"]
