"""Security tests: validators, auth enforcement, security headers."""

import pytest
from decimal import Decimal

from tabpos.models.validators import non_negative, paper_size, positive, validate_list


# ============== Validator Tests ==============

class TestNonNegative:
    def test_zero_allowed(self):
        assert non_negative("total", Decimal("0")) == Decimal("0")

    def test_negative_rejected(self):
        with pytest.raises(ValueError, match="cannot be negative"):
            non_negative("total", Decimal("-1"))

    def test_none_allowed(self):
        assert non_negative("total", None) is None


class TestPositive:
    def test_positive_allowed(self):
        assert positive("point_value", Decimal("0.10")) == Decimal("0.10")

    def test_zero_rejected(self):
        with pytest.raises(ValueError, match="must be positive"):
            positive("point_value", Decimal("0"))


class TestPaperSize:
    @pytest.mark.parametrize("value", ["58", "80", 58])
    def test_known_widths(self, value):
        assert paper_size("paper_size", value) == str(value)

    def test_other_width_rejected(self):
        with pytest.raises(ValueError):
            paper_size("paper_size", "110")


class TestValidateList:
    def test_list_allowed(self):
        assert validate_list("items", []) == []

    def test_dict_rejected(self):
        with pytest.raises(ValueError, match="must be a list"):
            validate_list("items", {"a": 1})


# ============== Auth Enforcement Tests ==============

class TestAuthEnforcement:
    def test_public_paths_accessible(self, client, tenant):
        for path in ["/health", "/health/ready", "/api/v1/tenant", "/api/v1/menu/"]:
            res = client.get(path)
            assert res.status_code == 200, f"{path} returned {res.status_code}"

    def test_menu_write_requires_auth(self, client, tenant):
        res = client.post("/api/v1/menu/categories", json={"name": "Drinks"})
        assert res.status_code == 401

    def test_delete_requires_auth(self, client, tenant):
        assert client.delete("/api/v1/menu/products/1").status_code == 401

    def test_garbage_token_rejected(self, client, tenant):
        res = client.get("/api/v1/tables/open", headers={"Authorization": "Bearer nope"})
        assert res.status_code == 401

    def test_guest_cannot_reach_staff_views(self, client, guest_headers):
        assert client.get("/api/v1/tables/open", headers=guest_headers).status_code == 403


# ============== Security Header Tests ==============

class TestSecurityHeaders:
    def test_csp_header_present(self, client):
        res = client.get("/health")
        assert "content-security-policy" in res.headers

    def test_x_frame_options(self, client):
        res = client.get("/health")
        assert res.headers.get("x-frame-options") == "DENY"

    def test_x_content_type_options(self, client):
        res = client.get("/health")
        assert res.headers.get("x-content-type-options") == "nosniff"

    def test_referrer_policy(self, client):
        res = client.get("/health")
        assert "strict-origin" in res.headers.get("referrer-policy", "")
