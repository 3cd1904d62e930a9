"""End-to-end tests through the FastAPI app with an in-memory database."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from archivist.application.api.rest.app import create_app
from archivist.application.api.v1.routes.attachments import upload_attachment
from archivist.config import (
    AttachmentConfig,
    AuthConfig,
    Config,
    DatabaseConfig,
    JwtConfig,
    LifecycleConfig,
)
from archivist.domain.auth.model.value import UserId
from archivist.domain.auth.service.token import TokenService
from archivist.domain.shared.error import ConfigurationError

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


@pytest.fixture
def config(tmp_path) -> Config:
    return Config(
        data_dir=tmp_path,
        database=DatabaseConfig(url="sqlite+aiosqlite://"),
        lifecycle=LifecycleConfig(enabled=False),
    )


@pytest.fixture
def client(config: Config):
    with TestClient(create_app(config)) as client:
        yield client


@pytest.fixture
def tokens(config: Config) -> TokenService:
    return TokenService(config=config.auth.jwt)


def _auth(tokens: TokenService, user_id: UserId) -> dict[str, str]:
    return {"Authorization": f"Bearer {tokens.create_access_token(user_id)}"}


class TestRecordsApi:
    def test_health(self, client: TestClient) -> None:
        assert client.get("/api/v1/health").json() == {"status": "ok"}

    def test_create_and_read(self, client: TestClient, tokens: TokenService) -> None:
        alice = _auth(tokens, UserId.generate())

        created = client.post("/api/v1/records", json={"title": "Hello, World!"}, headers=alice)
        assert created.status_code == 201
        body = created.json()
        assert body["slug"] == "hello-world"

        assert "id" not in body

        fetched = client.get(f"/api/v1/records/{body['external_ref']}", headers=alice)
        assert fetched.status_code == 200
        assert fetched.json() == body

    def test_anonymous_create_is_401(self, client: TestClient) -> None:
        response = client.post("/api/v1/records", json={"title": "Nope"})

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["code"] == "missing_token"

    def test_private_record_hidden_from_others(
        self, client: TestClient, tokens: TokenService
    ) -> None:
        alice = _auth(tokens, UserId.generate())
        bob = _auth(tokens, UserId.generate())
        record_id = client.post("/api/v1/records", json={"title": "Secret"}, headers=alice).json()[
            "external_ref"
        ]

        assert client.get(f"/api/v1/records/{record_id}", headers=bob).status_code == 404
        assert client.get(f"/api/v1/records/{record_id}").status_code == 404

    def test_published_record_public_but_not_writable(
        self, client: TestClient, tokens: TokenService
    ) -> None:
        alice = _auth(tokens, UserId.generate())
        bob = _auth(tokens, UserId.generate())
        record_id = client.post(
            "/api/v1/records",
            json={"title": "Notice", "status": "active", "is_published": True},
            headers=alice,
        ).json()["external_ref"]

        assert client.get(f"/api/v1/records/{record_id}").status_code == 200
        assert client.get("/api/v1/records").json()[0]["external_ref"] == record_id
        assert "id" not in client.get("/api/v1/records").json()[0]
        patched = client.patch(f"/api/v1/records/{record_id}", json={"title": "X"}, headers=bob)
        assert patched.status_code == 403
        assert client.delete(f"/api/v1/records/{record_id}", headers=bob).status_code == 403

    def test_update_and_delete(self, client: TestClient, tokens: TokenService) -> None:
        alice = _auth(tokens, UserId.generate())
        record_id = client.post("/api/v1/records", json={"title": "Draft"}, headers=alice).json()[
            "external_ref"
        ]

        patched = client.patch(
            f"/api/v1/records/{record_id}", json={"title": "Final Cut"}, headers=alice
        )
        assert patched.json()["slug"] == "final-cut"

        assert client.delete(f"/api/v1/records/{record_id}", headers=alice).status_code == 204
        assert client.get(f"/api/v1/records/{record_id}", headers=alice).status_code == 404

    def test_constraint_violation_is_422(self, client: TestClient, tokens: TokenService) -> None:
        alice = _auth(tokens, UserId.generate())
        client.post("/api/v1/records", json={"title": "Twin"}, headers=alice)

        response = client.post("/api/v1/records", json={"title": "twin"}, headers=alice)

        assert response.status_code == 422
        assert response.json()["field"] == "slug"

    def test_malformed_id_is_404(self, client: TestClient) -> None:
        assert client.get("/api/v1/records/not-a-uuid").status_code == 404


class TestAttachmentsApi:
    def test_owner_round_trip(self, client: TestClient, tokens: TokenService) -> None:
        user_id = UserId.generate()
        headers = _auth(tokens, user_id)
        path = f"/api/v1/attachments/{user_id}/rec1/scan.png"

        uploaded = client.put(
            path, files={"file": ("scan.png", PNG, "image/png")}, headers=headers
        )
        assert uploaded.status_code == 201

        downloaded = client.get(path, headers=headers)
        assert downloaded.status_code == 200
        assert downloaded.content == PNG
        assert downloaded.headers["content-type"] == "image/png"

        assert client.delete(path, headers=headers).status_code == 204
        assert client.get(path, headers=headers).status_code == 404

    def test_foreign_prefix_is_403(self, client: TestClient, tokens: TokenService) -> None:
        headers = _auth(tokens, UserId.generate())

        response = client.put(
            "/api/v1/attachments/xyz/rec1/file.png",
            files={"file": ("file.png", PNG, "image/png")},
            headers=headers,
        )

        assert response.status_code == 403

    def test_unsupported_type_is_415(self, client: TestClient, tokens: TokenService) -> None:
        user_id = UserId.generate()

        response = client.put(
            f"/api/v1/attachments/{user_id}/rec1/notes.txt",
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=_auth(tokens, user_id),
        )

        assert response.status_code == 415
        assert response.json()["reason"] == "unsupported_type"

    def test_oversized_upload_is_413(self, tmp_path, tokens: TokenService) -> None:
        config = Config(
            data_dir=tmp_path,
            database=DatabaseConfig(url="sqlite+aiosqlite://"),
            lifecycle=LifecycleConfig(enabled=False),
            attachments=AttachmentConfig(max_size=8),
        )
        user_id = UserId.generate()

        with TestClient(create_app(config)) as client:
            response = client.put(
                f"/api/v1/attachments/{user_id}/rec1/scan.png",
                files={"file": ("scan.png", PNG, "image/png")},
                headers=_auth(tokens, user_id),
            )

        assert response.status_code == 413
        assert response.json()["reason"] == "too_large"

    @pytest.mark.asyncio
    async def test_upload_reads_at_most_one_byte_past_the_limit(self) -> None:
        file = MagicMock(content_type="image/png")
        file.read = AsyncMock(return_value=PNG)
        service = MagicMock(max_size=8)
        service.upload = AsyncMock()

        await upload_attachment("owner/rec1/scan.png", file, service)

        file.read.assert_awaited_once_with(9)
        service.upload.assert_awaited_once_with("owner/rec1/scan.png", PNG, "image/png")


class TestStartup:
    def test_missing_jwt_secret_fails_fast(self, tmp_path) -> None:
        config = Config(
            data_dir=tmp_path,
            database=DatabaseConfig(url="sqlite+aiosqlite://"),
            lifecycle=LifecycleConfig(enabled=False),
            auth=AuthConfig(jwt=JwtConfig(secret="")),
        )

        with pytest.raises(ConfigurationError):
            create_app(config)
