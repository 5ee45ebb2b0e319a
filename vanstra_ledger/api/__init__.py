"""
Ledger API Application Factory
"""

from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from .session import router as session_router
from .profile import router as profile_router
from .accounts import router as accounts_router
from .transactions import router as transactions_router
from .payees import router as payees_router
from .support import router as support_router
from .admin import router as admin_router
from .. import __version__
from ..config import get_config
from ..logging_config import setup_logging
from ..store import LedgerStore, create_store


def create_app(store: Optional[LedgerStore] = None) -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="Vanstra Ledger API",
        description="Demo banking state store: balances, transfers, deposits, bills and tickets",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.store = store or create_store()

    # Front-end pages are served from another origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(session_router, prefix="/session", tags=["Session"])
    app.include_router(profile_router, prefix="/profile", tags=["Profile"])
    app.include_router(accounts_router, prefix="/accounts", tags=["Accounts"])
    app.include_router(transactions_router, tags=["Transactions"])
    app.include_router(payees_router, tags=["Payees"])
    app.include_router(support_router, prefix="/tickets", tags=["Support"])
    app.include_router(admin_router, prefix="/admin", tags=["Admin"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "vanstra_ledger_api",
            "version": __version__
        }

    @app.get("/")
    async def get_api_info():
        """Get API information"""
        return {
            "name": "Vanstra Ledger API",
            "version": __version__,
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "session": "/session",
                "profile": "/profile",
                "accounts": "/accounts",
                "transactions": "/transactions",
                "transfers": "/transfers",
                "deposits": "/deposits",
                "bills": "/bills",
                "billers": "/billers",
                "recipients": "/recipients",
                "tickets": "/tickets",
                "admin": "/admin",
            }
        }

    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None, debug: bool = False):
    """Run the FastAPI server with settings from the environment"""
    config = get_config()
    setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)
    uvicorn.run(
        "vanstra_ledger.api:create_app",
        factory=True,
        host=host or config.api_host,
        port=port or config.api_port,
        reload=debug,
        log_level=config.log_level.lower()
    )
