"""Tenant resolution.

A business is selected by the first label of ``<slug>.<base-domain>``.
Hosts outside the base domain (localhost, preview deployments) may pick a
tenant with ``?tenant=<slug>``; otherwise the configured default applies.
"""

import logging
from typing import Annotated, Mapping, Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from tabpos.core.config import Settings, settings
from tabpos.core.exceptions import NotFound
from tabpos.db.session import get_db
from tabpos.models.tenant import Tenant

logger = logging.getLogger(__name__)


def resolve_tenant_slug(
    host: Optional[str],
    query_params: Mapping[str, str],
    config: Settings = settings,
) -> str:
    """Derive the tenant slug for a request."""
    hostname = (host or "").split(":", 1)[0].strip().lower()
    base = config.tenant_base_domain.lower()
    parts = hostname.split(".") if hostname else []

    if hostname == base or hostname.endswith("." + base):
        if len(parts) >= 3:
            return parts[0]
        return config.default_tenant_slug

    override = query_params.get(config.tenant_query_param)
    if override:
        return override.strip().lower()
    return config.default_tenant_slug


def get_current_tenant(request: Request, db: Session = Depends(get_db)):
    """Dependency returning the active tenant for this request."""
    slug = resolve_tenant_slug(request.headers.get("host"), request.query_params)
    tenant = (
        db.query(Tenant)
        .filter(Tenant.slug == slug, Tenant.is_active.is_(True))
        .first()
    )
    if tenant is None:
        logger.info(f"Unknown or inactive tenant requested: {slug}")
        raise NotFound("Business", slug)
    return tenant


CurrentTenant = Annotated[Tenant, Depends(get_current_tenant)]
