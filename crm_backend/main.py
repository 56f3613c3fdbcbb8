import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException

# Load env from crm_backend/.env
backend_dir = os.path.dirname(os.path.abspath(__file__))
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv(dotenv_path=os.path.join(backend_dir, ".env"))

from crm_backend.core.config import settings, validate_config
from crm_backend.core.logging import configure_logging
from crm_backend.core.middleware.request_id import RequestIdMiddleware
from crm_backend.core.errors import (
    AppError,
    app_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from crm_backend.api import admin_subscriptions, health

configure_logging(settings.ENV)
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("crm")
    logger.info("Starting CRM subscriptions backend...")
    try:
        yield
    finally:
        logging.getLogger("crm").info("Stopping CRM subscriptions backend...")


app = FastAPI(title="CRM Subscriptions", lifespan=lifespan)

app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(HTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.include_router(health.router)
app.include_router(admin_subscriptions.router)
