"""Aggregate model imports for Alembic auto-detection."""

# Tenants
from salesdesk.models.admin_account import AdminAccount  # noqa: F401

# Catalog & documents
from salesdesk.models.catalog_item import CatalogItem  # noqa: F401
from salesdesk.models.sales_document import SalesDocument  # noqa: F401

# Ledger
from salesdesk.models.payment import Payment  # noqa: F401

# Reconciliation
from salesdesk.models.reconciliation_alert import ReconciliationAlert  # noqa: F401
