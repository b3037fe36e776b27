from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from recipe_inbox.app.config import Settings
from recipe_inbox.app.infra.db.sql_repo import SqlSubmissionRepository
from recipe_inbox.app.main import create_app

FAMILY_PASSWORD = "family-secret"
ADMIN_TOKEN = "admin-secret"
ALLOWED_ORIGIN = "https://family.example"

FAMILY_HEADERS = {"X-Recipe-Password": FAMILY_PASSWORD}
ADMIN_HEADERS = {"X-Admin-Token": ADMIN_TOKEN}


def _settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "FAMILY_PASSWORD": FAMILY_PASSWORD,
        "ADMIN_TOKEN": ADMIN_TOKEN,
        "ALLOWED_ORIGINS": [ALLOWED_ORIGIN],
        "DATABASE_URL": "sqlite://",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def repository() -> SqlSubmissionRepository:
    return SqlSubmissionRepository.from_url("sqlite://")


@pytest.fixture
def client(repository: SqlSubmissionRepository) -> TestClient:
    return TestClient(create_app(settings=_settings(), repository=repository))


def _submit(client: TestClient, recipe: dict[str, Any]) -> Any:
    return client.post("/api/add", json={"title": recipe.get("title"), "payload": recipe}, headers=FAMILY_HEADERS)


class TestHealth:
    def test_get_root(self, client: TestClient) -> None:
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["ok"] is True

    def test_health_reports_row_count(self, client: TestClient) -> None:
        _submit(client, {"title": "Soup"})

        response = client.get("/health")

        assert response.json() == {"ok": True, "db": {"ok": True, "count": 1}}

    def test_health_reports_store_error(self) -> None:
        client = TestClient(create_app(settings=_settings(DATABASE_URL="")))

        body = client.get("/health").json()

        assert body["ok"] is True
        assert body["db"]["ok"] is False
        assert "DATABASE_URL" in body["db"]["error"]


class TestRouting:
    def test_options_is_empty_204(self, client: TestClient) -> None:
        response = client.options("/api/add")

        assert response.status_code == 204
        assert response.content == b""

    @pytest.mark.parametrize("method", ["GET", "POST"])
    def test_unknown_route_is_plain_404(self, client: TestClient, method: str) -> None:
        response = client.request(method, "/nope")

        assert response.status_code == 404
        assert response.text == "Not Found"
        assert response.headers["content-type"].startswith("text/plain")

    def test_wrong_method_on_known_path_is_404(self, client: TestClient) -> None:
        response = client.get("/api/add")

        assert response.status_code == 404


class TestCors:
    def test_allowed_origin_is_echoed(self, client: TestClient) -> None:
        response = client.options("/api/add", headers={"Origin": ALLOWED_ORIGIN})

        assert response.headers["access-control-allow-origin"] == ALLOWED_ORIGIN
        assert "X-Recipe-Password" in response.headers["access-control-allow-headers"]
        assert response.headers["vary"] == "Origin"

    def test_other_origin_gets_no_allow_header(self, client: TestClient) -> None:
        response = client.get("/", headers={"Origin": "https://evil.example"})

        assert "access-control-allow-origin" not in response.headers
        assert response.headers["vary"] == "Origin"

    def test_error_responses_carry_vary(self, client: TestClient) -> None:
        response = client.post("/api/add", json={"title": "Soup"})

        assert response.status_code == 401
        assert response.headers["vary"] == "Origin"


class TestAdd:
    def test_creates_submission(self, client: TestClient) -> None:
        response = _submit(client, {"title": "Tomato Soup"})

        body = response.json()
        assert response.status_code == 200
        assert body["ok"] is True
        assert body["id"] == "tomato-soup"
        assert body["status"] == "pending"
        assert len(body["content_hash"]) == 64

    def test_identical_resubmission_is_duplicate(self, client: TestClient, repository: SqlSubmissionRepository) -> None:
        recipe = {"title": "Soup", "ingredients": ["water", "salt"]}

        first = _submit(client, recipe).json()
        second = _submit(client, recipe).json()

        assert second["status"] == "duplicate"
        assert second["id"] == first["id"]
        assert second["content_hash"] == first["content_hash"]
        assert repository.count() == 1

    def test_same_title_gets_numbered_slugs(self, client: TestClient) -> None:
        first = _submit(client, {"title": "Soup", "notes": "thin"}).json()
        second = _submit(client, {"title": "Soup", "notes": "thick"}).json()

        assert (first["id"], second["id"]) == ("soup", "soup-2")

    def test_symbol_only_title_falls_back(self, client: TestClient) -> None:
        first = _submit(client, {"title": "???"}).json()
        second = _submit(client, {"title": "???", "notes": "again"}).json()

        assert (first["id"], second["id"]) == ("recipe", "recipe-2")

    def test_bare_recipe_body_is_accepted(self, client: TestClient) -> None:
        response = client.post("/api/add", json={"title": "Stew"}, headers=FAMILY_HEADERS)

        assert response.json()["id"] == "stew"

    @pytest.mark.parametrize("headers", [{}, {"X-Recipe-Password": "wrong"}, ADMIN_HEADERS])
    def test_bad_credentials_are_401_without_writes(
        self, client: TestClient, repository: SqlSubmissionRepository, headers: dict[str, str]
    ) -> None:
        response = client.post("/api/add", json={"title": "Soup", "payload": {"title": "Soup"}}, headers=headers)

        assert response.status_code == 401
        assert response.json() == {"ok": False, "error": "Invalid family password"}
        repository.ensure_schema()
        assert repository.count() == 0

    def test_unconfigured_password_is_401(self, repository: SqlSubmissionRepository) -> None:
        client = TestClient(create_app(settings=_settings(FAMILY_PASSWORD=""), repository=repository))

        response = client.post("/api/add", json={"title": "Soup"}, headers={"X-Recipe-Password": ""})

        assert response.status_code == 401
        assert response.json()["error"] == "Family password not configured"

    def test_recipe_password_fallback(self, repository: SqlSubmissionRepository) -> None:
        settings = _settings(FAMILY_PASSWORD="", RECIPE_PASSWORD="legacy")
        client = TestClient(create_app(settings=settings, repository=repository))

        response = client.post("/api/add", json={"title": "Soup"}, headers={"X-Recipe-Password": "legacy"})

        assert response.status_code == 200

    def test_missing_title_is_400(self, client: TestClient) -> None:
        response = client.post("/api/add", json={"payload": {"steps": []}}, headers=FAMILY_HEADERS)

        assert response.status_code == 400
        assert response.json() == {"ok": False, "error": "Missing recipe payload"}

    @pytest.mark.parametrize(
        "content",
        [b"{not json", b"[1, 2]", b'{"title": NaN}', b'{"title": "Big", "n": 1e400}'],
    )
    def test_malformed_body_is_400(self, client: TestClient, content: bytes) -> None:
        response = client.post(
            "/api/add",
            content=content,
            headers={**FAMILY_HEADERS, "Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["ok"] is False

    def test_deeply_nested_recipe_is_accepted(self, client: TestClient) -> None:
        depth = 600
        content = b'{"title": "Deep", "steps": ' + b"[" * depth + b"]" * depth + b"}"
        headers = {**FAMILY_HEADERS, "Content-Type": "application/json"}

        first = client.post("/api/add", content=content, headers=headers)
        second = client.post("/api/add", content=content, headers=headers)

        assert first.status_code == 200
        assert first.json()["id"] == "deep"
        assert second.json()["status"] == "duplicate"

    def test_nesting_beyond_the_parser_limit_is_400(self, client: TestClient) -> None:
        depth = 500_000
        content = b'{"title": "Deeper", "steps": ' + b"[" * depth + b"]" * depth + b"}"

        response = client.post(
            "/api/add",
            content=content,
            headers={**FAMILY_HEADERS, "Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["ok"] is False

    def test_store_unavailable_is_500(self) -> None:
        client = TestClient(create_app(settings=_settings(DATABASE_URL="")))

        response = client.post("/api/add", json={"title": "Soup"}, headers=FAMILY_HEADERS)

        assert response.status_code == 500
        assert response.json()["ok"] is False


class TestList:
    def test_lists_pending_without_payload(self, client: TestClient) -> None:
        _submit(client, {"title": "Soup"})
        _submit(client, {"title": "Stew"})

        body = client.post("/api/list", json={}, headers=FAMILY_HEADERS).json()

        assert body["ok"] is True
        assert body["status"] == "pending"
        assert [item["slug"] for item in body["pending"]] == ["stew", "soup"]
        assert "payload" not in body["pending"][0]

    def test_include_payload(self, client: TestClient) -> None:
        _submit(client, {"title": "Soup", "serves": 2})

        body = client.post("/api/list", json={"includePayload": True}, headers=FAMILY_HEADERS).json()

        payload = body["pending"][0]["payload"]
        assert payload["serves"] == 2
        assert payload["id"] == "soup"
        assert payload["recipe_id"] == "soup"

    def test_requires_family_password(self, client: TestClient) -> None:
        response = client.post("/api/list", json={}, headers=ADMIN_HEADERS)

        assert response.status_code == 401


class TestAdmin:
    def test_review_lifecycle(self, client: TestClient) -> None:
        slug = _submit(client, {"title": "Soup"}).json()["id"]

        marked = client.post("/admin/mark-imported", json={"ids": [slug]}, headers=ADMIN_HEADERS)
        assert marked.json() == {"ok": True, "updated": 1}

        pending = client.post("/api/list", json={"status": "pending"}, headers=FAMILY_HEADERS).json()
        assert pending["pending"] == []

        exported = client.post("/admin/export", json={"status": "imported"}, headers=ADMIN_HEADERS).json()
        assert [item["slug"] for item in exported["pending"]] == [slug]
        assert exported["pending"][0]["status"] == "imported"

        purged = client.post("/admin/purge-imported", json={"ids": [slug]}, headers=ADMIN_HEADERS)
        assert purged.json() == {"ok": True, "removed": 1}

        repeat = client.post("/admin/purge-imported", json={"ids": [slug]}, headers=ADMIN_HEADERS)
        assert repeat.json() == {"ok": True, "removed": 0}

    def test_delete_pending(self, client: TestClient) -> None:
        soup = _submit(client, {"title": "Soup"}).json()["id"]
        stew = _submit(client, {"title": "Stew"}).json()["id"]
        client.post("/admin/mark-imported", json={"ids": [soup]}, headers=ADMIN_HEADERS)

        response = client.post("/admin/delete-pending", json={"ids": [soup, stew]}, headers=ADMIN_HEADERS)

        assert response.json() == {"ok": True, "deleted": 1}

    def test_wipe(self, client: TestClient, repository: SqlSubmissionRepository) -> None:
        _submit(client, {"title": "Soup"})
        _submit(client, {"title": "Stew"})

        response = client.post("/admin/wipe", headers=ADMIN_HEADERS)

        assert response.json() == {"ok": True, "removed": 2}
        assert repository.count() == 0

    def test_empty_ids_is_400(self, client: TestClient) -> None:
        response = client.post("/admin/mark-imported", json={"ids": []}, headers=ADMIN_HEADERS)

        assert response.status_code == 400
        assert response.json() == {"ok": False, "error": "No ids provided"}

    @pytest.mark.parametrize(
        "path",
        ["/admin/export", "/admin/mark-imported", "/admin/purge-imported", "/admin/delete-pending", "/admin/wipe"],
    )
    def test_admin_routes_require_token(self, client: TestClient, path: str) -> None:
        response = client.post(path, json={"ids": ["soup"]}, headers=FAMILY_HEADERS)

        assert response.status_code == 401
        assert response.json() == {"ok": False, "error": "Invalid admin token"}

    def test_unconfigured_admin_token_is_401(self, repository: SqlSubmissionRepository) -> None:
        client = TestClient(create_app(settings=_settings(ADMIN_TOKEN=""), repository=repository))

        response = client.post("/admin/wipe", headers={"X-Admin-Token": "anything"})

        assert response.status_code == 401
        assert response.json()["error"] == "Admin token not configured"
