from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from salesdesk.config import settings
from salesdesk.middleware.exceptions import register_exception_handlers
from salesdesk.routers import admins, client_portal, documents, health, items, payments, reconciliation
from salesdesk.services.scheduler import lifespan

app = FastAPI(
    title="SalesDesk",
    description="Sales Document & Payment Reconciliation Engine",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware ───────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
# Public
app.include_router(health.router)
app.include_router(admins.router, prefix="/api/admins", tags=["admins"])

# Owner-scoped (require owner_id in JWT)
app.include_router(items.router, prefix="/api/items", tags=["items"])
app.include_router(documents.proposals, prefix="/api/proposals", tags=["proposals"])
app.include_router(documents.estimates, prefix="/api/estimates", tags=["estimates"])
app.include_router(documents.credit_notes, prefix="/api/credit-notes", tags=["credit notes"])
app.include_router(documents.invoices, prefix="/api/invoices", tags=["invoices"])
app.include_router(payments.router, prefix="/api/payments", tags=["payments"])
app.include_router(reconciliation.router, prefix="/api/reconciliation", tags=["reconciliation"])
app.include_router(client_portal.router, prefix="/api/client", tags=["client portal"])
