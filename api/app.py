"""Application assembly: services, middleware, routes."""

import logging

from fastapi import FastAPI

from api.errors import register_error_handlers
from api.leads import create_leads_router
from api.middleware import RequestIDMiddleware
from auth.security_middleware import AuthMiddleware
from clients.identity_client import IdentityServiceClient
from clients.postgres_client import PostgresClient
from clients.vault_client import get_database_url, get_identity_config
from core.authorization import OwnershipGate, admin_bypass
from core.config import LeadsConfig
from core.database import LeadDatabase
from core.normalizer import EnumNormalizer
from core.services.csv_export import LeadExporter
from core.services.csv_import import LeadImporter
from core.services.lead_service import LeadService
from core.validation import LeadValidator

logger = logging.getLogger(__name__)


def create_services(db: LeadDatabase, config: LeadsConfig | None = None) -> dict:
    """Wire the lead services around a lead database."""
    config = config or LeadsConfig()
    normalizer = EnumNormalizer()
    gate = OwnershipGate(bypass=admin_bypass if config.admin_bypass_enabled else None)
    lead_service = LeadService(db, LeadValidator(normalizer), gate, config)

    return {
        "lead": lead_service,
        "importer": LeadImporter(lead_service, normalizer, config),
        "exporter": LeadExporter(lead_service, normalizer, config),
    }


def create_app(services: dict, session_validator) -> FastAPI:
    """
    Build the FastAPI app.

    Args:
        services: Output of create_services()
        session_validator: Object with validate_session(token) -> Session
    """
    app = FastAPI(title="Buyer Leads")
    # Last added runs first: request IDs exist before authentication.
    app.add_middleware(AuthMiddleware, session_validator=session_validator)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    app.include_router(create_leads_router(services), prefix="/api")
    return app


def create_production_app(config: LeadsConfig | None = None) -> FastAPI:
    """App wired to PostgreSQL and the identity service, secrets from Vault."""
    identity = get_identity_config()
    postgres = PostgresClient(get_database_url())
    services = create_services(LeadDatabase(postgres), config)
    validator = IdentityServiceClient(identity["base_url"], identity["api_key"])

    logger.info("Buyer leads application configured")
    return create_app(services, validator)
