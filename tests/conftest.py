"""Pytest configuration and shared fixtures."""

import os
from collections.abc import AsyncGenerator, Callable

import httpx
import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient

# Set testing mode BEFORE importing the app to use NullPool
os.environ["TESTING"] = "true"

from src.config import settings

settings.testing = True

from src.main import app


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: list[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(record)


@pytest.fixture
def recording_transport() -> Callable[..., RecordingTransport]:
    """Factory for a transport answering with ``handler``."""
    return RecordingTransport


@pytest.fixture(scope="session")
def rsa_key_pair() -> tuple[str, str]:
    """(private PEM, public PEM) for signing service-account assertions."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_pem = (
        key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode()
    )
    return private_pem, public_pem


@pytest.fixture
def service_account(rsa_key_pair) -> dict[str, str]:
    """A service-account key in the shape Google issues."""
    private_pem, _ = rsa_key_pair
    return {
        "type": "service_account",
        "project_id": "site-builder",
        "private_key_id": "key-123",
        "private_key": private_pem,
        "client_email": "teardown@site-builder.iam.gserviceaccount.com",
    }


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client for testing the API."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
