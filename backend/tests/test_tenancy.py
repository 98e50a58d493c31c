"""Tests for tenant resolution."""

import pytest

from tabpos.core.config import Settings
from tabpos.core.tenancy import resolve_tenant_slug

CONFIG = Settings(tenant_base_domain="siparis.co", default_tenant_slug="juburger")


@pytest.mark.parametrize("host,query,expected", [
    ("kebapci.siparis.co", {}, "kebapci"),
    ("Kebapci.Siparis.co:443", {}, "kebapci"),
    ("siparis.co", {}, "juburger"),
    ("www.siparis.co", {}, "www"),
    # the query override only applies outside the base domain
    ("kebapci.siparis.co", {"tenant": "other"}, "kebapci"),
    ("localhost:8000", {"tenant": " Kebapci "}, "kebapci"),
    ("preview-123.vercel.app", {"tenant": "kebapci"}, "kebapci"),
    ("localhost", {}, "juburger"),
    (None, {}, "juburger"),
    ("evilsiparis.co", {}, "juburger"),
])
def test_resolve_tenant_slug(host, query, expected):
    assert resolve_tenant_slug(host, query, CONFIG) == expected


def test_unknown_tenant_is_404(client, tenant):
    resp = client.get("/api/v1/tenant", params={"tenant": "nope"})
    assert resp.status_code == 404


def test_inactive_tenant_is_404(client, db_session, tenant):
    tenant.is_active = False
    db_session.commit()
    assert client.get("/api/v1/tenant").status_code == 404


def test_query_selects_tenant(client, tenant, other_tenant):
    assert client.get("/api/v1/tenant").json()["slug"] == "juburger"
    assert client.get("/api/v1/tenant", params={"tenant": "kebapci"}).json()["slug"] == "kebapci"
