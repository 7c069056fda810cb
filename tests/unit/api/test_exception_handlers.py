"""Tests for the domain exception → HTTP status mapping."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel
from sqlalchemy.exc import OperationalError
from starlette.requests import Request

from simlr.api.exception_handlers import (
    _format_validation_errors,
    domain_exception_handler,
    register_exception_handlers,
)
from simlr.domain.exceptions import (
    AlbumIdentifierNotRecognized,
    AuthenticationError,
    AuthorizationError,
    BusinessRuleViolation,
    ConfigurationError,
    DomainException,
    DuplicateEntityException,
    EntityNotFoundException,
    ExternalServiceError,
    ValidationException,
)

RAISERS = {
    "validation": lambda: ValidationException("Score must be between 1 and 10"),
    "rule": lambda: BusinessRuleViolation("Source and target must be different albums"),
    "authn": lambda: AuthenticationError("Unauthorized"),
    "authz": lambda: AuthorizationError("You must rate the source album before adding Simlrs."),
    "missing": lambda: EntityNotFoundException("Post", "p1"),
    "unrecognized": lambda: AlbumIdentifierNotRecognized("nope"),
    "duplicate": lambda: DuplicateEntityException("User", "ana", message="Username already taken"),
    "upstream": lambda: ExternalServiceError("MusicBrainz", "503 Service Unavailable"),
    "config": lambda: ConfigurationError("secret missing"),
    "database": lambda: OperationalError("SELECT 1", {}, Exception("disk I/O error")),
    "bug": lambda: RuntimeError("boom"),
}


class Payload(BaseModel):
    score: int


@pytest.fixture
def client() -> TestClient:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/raise/{kind}")
    async def raise_kind(kind: str) -> None:
        raise RAISERS[kind]()

    @app.post("/payload")
    async def payload(body: Payload) -> dict[str, int]:
        return {"score": body.score}

    return TestClient(app, raise_server_exceptions=False)


class TestStatusMapping:
    """Every error answers {"detail": str} with the mapped status."""

    @pytest.mark.parametrize(
        ("kind", "status_code", "detail"),
        [
            ("validation", 400, "Score must be between 1 and 10"),
            ("rule", 400, "Source and target must be different albums"),
            ("authn", 401, "Unauthorized"),
            ("authz", 403, "You must rate the source album before adding Simlrs."),
            ("missing", 404, "Post with id p1 not found"),
            ("unrecognized", 404, "Album identifier 'nope' is not a MusicBrainz or Spotify ID"),
            ("duplicate", 409, "Username already taken"),
            ("upstream", 500, "MusicBrainz error: 503 Service Unavailable"),
        ],
    )
    def test_domain_errors(self, client: TestClient, kind: str, status_code: int, detail: str) -> None:
        response = client.get(f"/raise/{kind}")
        assert response.status_code == status_code
        assert response.json() == {"detail": detail}

    @pytest.mark.parametrize("kind", ["config", "database", "bug"])
    def test_internal_errors_hide_details(self, client: TestClient, kind: str) -> None:
        """Test that 5xx bodies never leak the underlying message."""
        response = client.get(f"/raise/{kind}")
        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}

    def test_unknown_route(self, client: TestClient) -> None:
        response = client.get("/nowhere")
        assert response.status_code == 404
        assert response.json() == {"detail": "Not Found"}

    def test_request_validation_is_400(self, client: TestClient) -> None:
        response = client.post("/payload", json={"score": "ten"})
        assert response.status_code == 400
        assert response.json()["detail"].startswith("score: ")

    def test_malformed_json_is_400(self, client: TestClient) -> None:
        response = client.post(
            "/payload", content=b"{not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert isinstance(response.json()["detail"], str)


class TestDomainExceptionHandler:
    """Direct calls, outside Starlette's handler lookup."""

    @pytest.fixture
    def request_(self) -> Request:
        return Request(
            {"type": "http", "method": "POST", "path": "/api/simlrs", "headers": [], "query_string": b""}
        )

    async def test_subclass_uses_parent_mapping(self, request_: Request) -> None:
        response = await domain_exception_handler(request_, AlbumIdentifierNotRecognized("nope"))
        assert response.status_code == 404

    async def test_unmapped_domain_error_is_hidden_500(self, request_: Request) -> None:
        class QuotaExceeded(DomainException):
            pass

        response = await domain_exception_handler(request_, QuotaExceeded("internal quota detail"))

        assert response.status_code == 500
        assert response.body == b'{"detail":"Internal server error"}'


class TestFormatValidationErrors:
    def test_joins_locations(self) -> None:
        errors = [
            {"loc": ("body", "albumId"), "msg": "Field required"},
            {"loc": ("query", "min"), "msg": "Input should be a valid integer"},
        ]
        assert _format_validation_errors(errors) == (
            "albumId: Field required; min: Input should be a valid integer"
        )

    def test_without_location(self) -> None:
        assert _format_validation_errors([{"loc": ("body",), "msg": "JSON decode error"}]) == "JSON decode error"

    def test_empty(self) -> None:
        assert _format_validation_errors([]) == "Invalid request"
