"""HoardSpace - FastAPI application."""
# Load .env before any app code that might read config
from dotenv import load_dotenv
from pathlib import Path
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import Settings, get_settings
from app.database import Database, utcnow
from app.exceptions import register_exception_handlers
from app.routers import auth, bookings, geocode, hoardings, uploads
from app.services.geocoding import GoogleGeocoder
from app.services.google_oauth import GoogleOAuthClient
from app.services.notifications import build_notifier
from app.services.otp import run_otp_cleanup_job
from app.services.payments import RazorpayClient
from app.services.storage import CloudinaryStorage

logger = logging.getLogger(__name__)


def _log_mailgun_setup(settings: Settings) -> None:
    if not (settings.mailgun_api_key and settings.mailgun_domain):
        return
    from_addr = settings.mailgun_from_email or ""
    from_domain = from_addr.split("@")[-1].lower() if "@" in from_addr else ""
    send_domain = settings.mailgun_domain.strip().lower()
    if from_domain and from_domain != send_domain:
        logger.warning("[Mailgun] from=%s does not match domain=%s. Set MAILGUN_FROM_EMAIL=noreply@%s",
                       from_addr, settings.mailgun_domain, settings.mailgun_domain)


def _start_scheduler(app: FastAPI, settings: Settings) -> BackgroundScheduler | None:
    if not settings.otp_cleanup_enabled:
        return None
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        run_otp_cleanup_job,
        "interval",
        minutes=settings.otp_cleanup_interval_minutes,
        args=[app.state.db],
        id="otp_cleanup",
    )
    scheduler.start()
    logger.info("OTP cleanup scheduled every %d minute(s)", settings.otp_cleanup_interval_minutes)
    return scheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    _log_mailgun_setup(settings)
    try:
        app.state.db.create_all()
    except Exception as e:
        logging.getLogger("uvicorn.error").warning(
            "Database startup failed (tables skipped). Check DATABASE_URL. Error: %s", e
        )
    scheduler = _start_scheduler(app, settings)
    yield
    if scheduler is not None:
        scheduler.shutdown(wait=False)
    app.state.db.dispose()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)

    app.state.settings = settings
    app.state.db = Database(settings.database_url)
    app.state.clock = utcnow
    app.state.notifier = build_notifier(settings)
    app.state.payments = RazorpayClient(settings.razorpay_key_id, settings.razorpay_key_secret, settings.razorpay_base_url)
    app.state.geocoder = GoogleGeocoder(settings.google_maps_server_api_key)
    app.state.storage = CloudinaryStorage(
        settings.cloudinary_cloud_name,
        settings.cloudinary_api_key,
        settings.cloudinary_api_secret,
        folder=settings.cloudinary_folder,
    )
    app.state.oauth = GoogleOAuthClient(
        settings.google_client_id, settings.google_client_secret, settings.google_redirect_uri
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(hoardings.router)
    app.include_router(bookings.router)
    app.include_router(uploads.router)
    app.include_router(geocode.router)

    @app.get("/")
    def root():
        return {"app": settings.app_name, "status": "ok"}

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    return app


app = create_app()
