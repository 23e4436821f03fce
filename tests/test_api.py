"""
SiteLog Backend: API Endpoint Tests
======================================

What:  End-to-end tests through the FastAPI app (routing, Token Guard,
       body parsing, error rendering, static uploads).
How:   HTTPX AsyncClient over ASGITransport; SQLite database per test.
"""

import logging

import pytest
from httpx import ASGITransport, AsyncClient

from sitelog.config import Settings
from sitelog.services.file_service import file_service


NORTH_YARD = {
    "siteName": "North Yard",
    "reportDate": "2024-03-01",
    "weather": "Overcast",
    "tonnage": "12.5",
    "coverMaterial": "Soil",
    "status": "Open",
    "notes": "Cell 4 active",
    "extras": '{"cells": [4], "inspector": "J. Doe"}',
}


class TestHealth:

    @pytest.mark.asyncio
    async def test_health_ok(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["database"] == "connected"
        assert "X-Request-ID" in response.headers


class TestAuthEndpoints:

    @pytest.mark.asyncio
    async def test_register_then_login(self, test_client):
        register = await test_client.post(
            "/api/auth/register",
            json={"email": "new@example.com", "password": "password123", "displayName": "New"},
        )
        assert register.status_code == 201
        body = register.json()
        assert body["token"]
        assert body["user"]["email"] == "new@example.com"
        assert body["user"]["role"] == "user"
        assert body["user"]["displayName"] == "New"
        assert "password_hash" not in body["user"]

        login = await test_client.post(
            "/api/auth/login",
            json={"email": "new@example.com", "password": "password123"},
        )
        assert login.status_code == 200
        assert login.json()["user"]["id"] == body["user"]["id"]

    @pytest.mark.asyncio
    async def test_register_duplicate_is_400(self, test_client, auth_headers):
        response = await test_client.post(
            "/api/auth/register",
            json={"email": "inspector@example.com", "password": "another-pass"},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "User already exists"

    @pytest.mark.asyncio
    async def test_register_invalid_input_lists_errors(self, test_client):
        response = await test_client.post(
            "/api/auth/register",
            json={"email": "not-an-email", "password": "short"},
        )
        assert response.status_code == 400
        fields = {error["field"] for error in response.json()["errors"]}
        assert {"email", "password"} <= fields

    @pytest.mark.asyncio
    async def test_login_failures_are_indistinguishable(self, test_client, auth_headers):
        wrong_password = await test_client.post(
            "/api/auth/login",
            json={"email": "inspector@example.com", "password": "wrong-password"},
        )
        unknown_email = await test_client.post(
            "/api/auth/login",
            json={"email": "ghost@example.com", "password": "wrong-password"},
        )
        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json()["message"] == unknown_email.json()["message"]
        assert wrong_password.json()["error"] == unknown_email.json()["error"]


class TestTokenGuard:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method, path", [
        ("GET", "/api/reports"),
        ("GET", "/api/reports/1"),
        ("POST", "/api/reports"),
    ])
    async def test_missing_token_is_401(self, test_client, method, path):
        response = await test_client.request(method, path)
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_invalid_token_is_401(self, test_client):
        response = await test_client.get(
            "/api/reports", headers={"Authorization": "Bearer not.a.token"}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_rejected_post_writes_nothing(self, test_client, sample_image_bytes):
        before = set(file_service.storage_root.iterdir())

        response = await test_client.post(
            "/api/reports",
            data=NORTH_YARD,
            files=[("photos", ("a.jpg", sample_image_bytes, "image/jpeg"))],
        )
        assert response.status_code == 401
        assert set(file_service.storage_root.iterdir()) == before


class TestCreateReport:

    @pytest.mark.asyncio
    async def test_create_json_without_photos(self, test_client, auth_headers):
        response = await test_client.post(
            "/api/reports",
            headers=auth_headers,
            json={"siteName": "North Yard", "reportDate": "2024-03-01", "tonnage": "12.5"},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["attachments"] == []
        assert body["report"]["tonnage"] == 12.5
        assert body["report"]["site_name"] == "North Yard"
        assert body["report"]["report_date"] == "2024-03-01"
        assert body["report"]["extras"] == {}
        assert body["report"]["created_by_email"] == "inspector@example.com"

    @pytest.mark.asyncio
    async def test_create_multipart_with_photos(self, test_client, auth_headers, sample_image_bytes):
        response = await test_client.post(
            "/api/reports",
            headers=auth_headers,
            data=NORTH_YARD,
            files=[
                ("photos", ("cell 4.jpg", sample_image_bytes, "image/jpeg")),
                ("photos", ("cover.png", b"png-bytes", "image/png")),
            ],
        )
        assert response.status_code == 201
        body = response.json()
        assert body["report"]["extras"] == {"cells": [4], "inspector": "J. Doe"}
        assert body["report"]["cover_material"] == "Soil"

        attachments = body["attachments"]
        assert [a["filename"].split("-", 1)[1] for a in attachments] == ["cell_4.jpg", "cover.png"]
        assert [a["mime_type"] for a in attachments] == ["image/jpeg", "image/png"]

        served = await test_client.get(attachments[0]["url"])
        assert served.status_code == 200
        assert served.content == sample_image_bytes

        detail = await test_client.get(f"/api/reports/{body['report']['id']}", headers=auth_headers)
        assert detail.status_code == 200
        assert [a["id"] for a in detail.json()["attachments"]] == [a["id"] for a in attachments]

    @pytest.mark.asyncio
    async def test_invalid_extras_is_400(self, test_client, auth_headers):
        response = await test_client.post(
            "/api/reports",
            headers=auth_headers,
            data={**NORTH_YARD, "extras": "{not json"},
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "extras"

    @pytest.mark.asyncio
    async def test_missing_required_fields_is_400(self, test_client, auth_headers):
        response = await test_client.post(
            "/api/reports",
            headers=auth_headers,
            data={"weather": "Sunny"},
        )
        assert response.status_code == 400
        fields = {error["field"] for error in response.json()["errors"]}
        assert {"siteName", "reportDate"} <= fields

    @pytest.mark.asyncio
    async def test_negative_tonnage_is_400(self, test_client, auth_headers):
        response = await test_client.post(
            "/api/reports",
            headers=auth_headers,
            data={**NORTH_YARD, "tonnage": "-1"},
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_too_many_photos_is_400(self, test_client, auth_headers, sample_image_bytes):
        files = [("photos", (f"p{i}.jpg", sample_image_bytes, "image/jpeg")) for i in range(6)]
        response = await test_client.post(
            "/api/reports", headers=auth_headers, data=NORTH_YARD, files=files
        )
        assert response.status_code == 400

        listing = await test_client.get("/api/reports", headers=auth_headers)
        assert listing.json()["items"] == []

    @pytest.mark.asyncio
    async def test_unexpected_file_field_is_400(self, test_client, auth_headers, sample_image_bytes):
        response = await test_client.post(
            "/api/reports",
            headers=auth_headers,
            data=NORTH_YARD,
            files=[("document", ("a.jpg", sample_image_bytes, "image/jpeg"))],
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    @pytest.mark.parametrize("tonnage, expected", [("12.345", 12.345), ("1e11", 1e11)])
    async def test_tonnage_stored_as_submitted(self, test_client, auth_headers, tonnage, expected):
        created = await test_client.post(
            "/api/reports",
            headers=auth_headers,
            json={"siteName": "North Yard", "reportDate": "2024-03-01", "tonnage": tonnage},
        )
        assert created.status_code == 201
        assert created.json()["report"]["tonnage"] == expected

        fetched = await test_client.get(
            f"/api/reports/{created.json()['report']['id']}", headers=auth_headers
        )
        assert fetched.json()["report"]["tonnage"] == expected

    @pytest.mark.asyncio
    async def test_long_site_name_accepted(self, test_client, auth_headers):
        site_name = "Cell " * 100
        response = await test_client.post(
            "/api/reports",
            headers=auth_headers,
            json={"siteName": site_name, "reportDate": "2024-03-01"},
        )
        assert response.status_code == 201
        assert response.json()["report"]["site_name"] == site_name.strip()


class TestCustomUploadSettings:

    @pytest.mark.asyncio
    async def test_attachment_urls_follow_configured_prefix(self, database, tmp_path, sample_image_bytes):
        from sitelog.main import create_app

        config = Settings(upload_dir=str(tmp_path / "media"), upload_url_prefix="/media")
        app = create_app(config=config, database=database)
        transport = ASGITransport(app=app)

        async with AsyncClient(transport=transport, base_url="http://test") as client:
            token = (await client.post(
                "/api/auth/register",
                json={"email": "media@example.com", "password": "password123"},
            )).json()["token"]

            response = await client.post(
                "/api/reports",
                headers={"Authorization": f"Bearer {token}"},
                data=NORTH_YARD,
                files=[("photos", ("cell.jpg", sample_image_bytes, "image/jpeg"))],
            )
            assert response.status_code == 201
            attachment = response.json()["attachments"][0]

            assert attachment["url"].startswith("/media/")
            assert (tmp_path / "media" / attachment["filename"]).exists()

            served = await client.get(attachment["url"])
            assert served.status_code == 200
            assert served.content == sample_image_bytes


class TestAccessLog:

    @pytest.mark.asyncio
    async def test_authenticated_request_logs_caller_id(self, test_client, caplog):
        register = await test_client.post(
            "/api/auth/register",
            json={"email": "logged@example.com", "password": "password123"},
        )
        user_id = register.json()["user"]["id"]
        headers = {"Authorization": f"Bearer {register.json()['token']}"}

        with caplog.at_level(logging.INFO, logger="sitelog.access"):
            await test_client.get("/api/reports", headers=headers)

        records = [r for r in caplog.records if r.name == "sitelog.access"]
        assert records
        assert records[-1].user_id == user_id
        assert f"user={user_id}" in records[-1].getMessage()

    @pytest.mark.asyncio
    async def test_anonymous_request_logs_no_caller(self, test_client, caplog):
        with caplog.at_level(logging.INFO, logger="sitelog.access"):
            await test_client.get("/api/reports")

        records = [r for r in caplog.records if r.name == "sitelog.access"]
        assert records[-1].user_id is None
        assert "user=-" in records[-1].getMessage()


class TestListAndGetReports:

    @pytest.mark.asyncio
    async def test_list_filters_and_clamps(self, test_client, auth_headers):
        for site, day in [("North Yard", "2024-03-01"), ("South Cell", "2024-03-02")]:
            await test_client.post(
                "/api/reports",
                headers=auth_headers,
                json={"siteName": site, "reportDate": day},
            )

        response = await test_client.get(
            "/api/reports",
            headers=auth_headers,
            params={"siteName": "north", "limit": "1000"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["limit"] == 100
        assert [item["site_name"] for item in body["items"]] == ["North Yard"]
        assert "notes" not in body["items"][0]

        ordered = await test_client.get("/api/reports", headers=auth_headers)
        assert [item["site_name"] for item in ordered.json()["items"]] == ["South Cell", "North Yard"]

    @pytest.mark.asyncio
    async def test_list_malformed_date_is_400(self, test_client, auth_headers):
        response = await test_client.get(
            "/api/reports", headers=auth_headers, params={"dateTo": "03/01/2024"}
        )
        assert response.status_code == 400
        assert response.json()["message"] == "dateTo must be ISO8601 date"

    @pytest.mark.asyncio
    async def test_get_missing_report_is_404(self, test_client, auth_headers):
        response = await test_client.get("/api/reports/424242", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["message"] == "Report not found"
