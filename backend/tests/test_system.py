# Overview: Pytest coverage for the health endpoint and app-level error handlers.

import io


class TestHealth:
    def test_healthy_with_roles(self, client, setup_roles):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"
        assert set(resp.json["checks"]) == {"database", "auth"}

    def test_degraded_without_roles(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "degraded"
        assert "OWNER" in resp.json["checks"]["auth"]["warning"]


class TestUploadLimit:
    def test_oversized_upload_is_413(self, app, client, owner_headers):
        too_big = b"menu_code,quantity\n" + b"x" * app.config["MAX_CONTENT_LENGTH"]
        resp = client.post(
            "/api/sales/upload",
            data={"file": (io.BytesIO(too_big), "sales.csv", "text/csv")},
            headers=owner_headers,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 413
        assert "error" in resp.json
