from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from posdesk.clients.email_gateway import EmailGatewayClient
from posdesk.config import get_settings
from posdesk.services.store import get_document_store
from posdesk.services.subscriptions import SubscriptionManager

# Import routers directly from submodules
from posdesk.health import router as health_router
from posdesk.store_view import router as store_view_router
from posdesk.tools.documents import router as documents_router
from posdesk.tools.email import router as email_router
from posdesk.tools.payments import router as payments_router
from posdesk.tools.pos import router as pos_router
from posdesk.tools.realtime import router as realtime_router
from posdesk.tools.settings import router as settings_router
from posdesk.tools.tables import router as tables_router
from posdesk.tools.templates import router as templates_router


def configure_logging() -> None:
    """Ensure application logs use the INFO level by default."""
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
    else:
        root_logger.setLevel(logging.INFO)

# Configure logging as soon as the module is loaded
configure_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manages application startup and shutdown events.
    """
    # --- Startup Logic ---
    settings = get_settings()

    # Log application settings on startup
    settings_snapshot = settings.model_dump(exclude={"smtp_password"})
    logger.info("Application settings on startup: %s", settings_snapshot)

    # Initialize shared resources
    subscriptions = SubscriptionManager(get_document_store())
    app.state.subscriptions = subscriptions
    app.state.pos_storage = {}
    gateway = None
    if settings.email_gateway_base_url:
        gateway = EmailGatewayClient(
            str(settings.email_gateway_base_url),
            timeout=settings.email_gateway_timeout,
        )
        logger.info("Relaying invoice email through %s", settings.email_gateway_base_url)
    app.state.email_gateway = gateway
    logger.info("Application startup complete.")

    try:
        yield  # The application is now running
    finally:
        # --- Shutdown Logic ---
        logger.info("Closing realtime subscriptions.")
        subscriptions.close_all()
        if gateway is not None:
            logger.info("Closing email gateway client.")
            await gateway.close()
        app.state.subscriptions = None
        app.state.pos_storage = None
        app.state.email_gateway = None
        logger.info("Application shutdown complete.")


# --- Application Setup ---

settings = get_settings()
app = FastAPI(
    title=settings.app_name,
    lifespan=lifespan,
    redirect_slashes=False
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Include Routers ---

app.include_router(tables_router)
app.include_router(payments_router)
app.include_router(pos_router)
app.include_router(templates_router)
app.include_router(settings_router)
app.include_router(documents_router)
app.include_router(email_router)
app.include_router(realtime_router)
app.include_router(health_router)
app.include_router(store_view_router)
