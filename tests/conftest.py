import json, pathlib
import pytest, pytest_asyncio, httpx
from ninsaude_adapter.api import app
from ninsaude_adapter.config import AdapterConfig, get_config

FIX = pathlib.Path(__file__).parent / "fixtures"
BASE = "https://api.ninsaude.com"
SECRET = "s3cret"


def load_fixture(name: str):
    return json.loads((FIX / name).read_text())


@pytest.fixture
def config():
    return AdapterConfig(
        _env_file=None,
        base_url=f"{BASE}/v1",
        refresh_token="refresh-abc",
        webhook_secret=SECRET,
    )


@pytest_asyncio.fixture
async def api_client(config):
    """ASGI client with the app wired to the test configuration."""
    app.dependency_overrides[get_config] = lambda: config
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
