"""
Bank Ledger API Application Factory
"""

from typing import Optional
from fastapi import FastAPI
import uvicorn

from .. import __version__
from ..config import get_config
from ..logging_config import setup_logging
from .dependencies import LedgerSystem, get_ledger_system
from .accounts import router as accounts_router
from .transactions import router as transactions_router


def create_app(system: Optional[LedgerSystem] = None) -> FastAPI:
    """
    Create and configure the FastAPI application

    Args:
        system: Ledger to serve; defaults to the process-wide one built from config
    """
    app = FastAPI(
        title="Bank Ledger API",
        description="Accounts and deposit, withdraw and transfer transactions",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    if system is not None:
        app.dependency_overrides[get_ledger_system] = lambda: system

    app.include_router(accounts_router, prefix="/accounts", tags=["Accounts"])
    app.include_router(transactions_router, prefix="/transactions", tags=["Transactions"])

    # Health check endpoint
    @app.get("/health")
    def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "bank_ledger_api",
            "version": __version__
        }

    return app


app = create_app()


def run_server(host: Optional[str] = None, port: Optional[int] = None, debug: Optional[bool] = None):
    """Run the FastAPI server with settings from LedgerConfig"""
    config = get_config()
    setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)
    uvicorn.run(
        "bank_ledger.api:app",
        host=host or config.api_host,
        port=port or config.api_port,
        reload=config.api_reload if debug is None else debug,
        log_level=config.log_level.lower()
    )
