from httpx import AsyncClient, ASGITransport

from news_api.exceptions import ConflictError
from news_api.main import create_app


async def test_unexpected_error_uses_internal_error_envelope():
    test_app = create_app()

    @test_app.get("/boom")
    async def boom():
        raise RuntimeError("database exploded")

    transport = ASGITransport(app=test_app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        res = await ac.get("/boom")

    assert res.status_code == 500
    body = res.json()
    assert body["status"] == "error"
    assert body["message"] == "Internal server error"
    # outside development the traceback stays on the server
    assert "details" not in body


def test_conflict_error_carries_field():
    error = ConflictError("User with this email already exists", field="email")
    assert error.details == {"field": "email"}
    assert ConflictError().details is None
