import pytest
from httpx import ASGITransport, AsyncClient

from app.dal import InMemoryBindingDAL
from app.main import app
from app.services import Authorizer, CodeRegistry


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def registry():
    return CodeRegistry(["ABC123", "ZETA-42"])


@pytest.fixture
def binding_dal():
    return InMemoryBindingDAL()


@pytest.fixture
def authorizer(registry, binding_dal):
    return Authorizer(registry=registry, binding_dal=binding_dal)


@pytest.fixture
async def client(anyio_backend, registry, authorizer):
    app.state.registry = registry
    app.state.authorizer = authorizer
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
