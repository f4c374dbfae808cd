"""RequestLogMiddleware on a bare FastAPI app."""

import logging

import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from httpx import ASGITransport, AsyncClient

from src.pm_gateway.middleware.request_log import RequestLogMiddleware


def _app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestLogMiddleware)

    @app.get("/ping")
    async def ping(request: Request) -> dict[str, str]:
        return {"request_id": request.state.request_id}

    @app.get("/down")
    async def down() -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": "storage"})

    return app


async def _client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=_app()), base_url="http://test")


class TestRequestLog:
    @pytest.mark.asyncio
    async def test_access_line_names_the_caller(self, caplog) -> None:
        caplog.set_level(logging.INFO, logger="pm.request")
        async with await _client() as client:
            resp = await client.get("/ping", headers={"X-User-Id": "alice"})

        [record] = [r for r in caplog.records if r.name == "pm.request"]
        assert record.levelno == logging.INFO
        assert "[GET] /ping 200" in record.getMessage()
        assert "user:alice" in record.getMessage()
        assert resp.json()["request_id"] in record.getMessage()

    @pytest.mark.asyncio
    async def test_request_id_echoed_in_header(self) -> None:
        async with await _client() as client:
            resp = await client.get("/ping")
        assert resp.headers["X-Request-Id"] == resp.json()["request_id"]
        assert resp.headers["X-Request-Id"].startswith("req_")

    @pytest.mark.asyncio
    async def test_anonymous_caller_logged_by_ip(self, caplog) -> None:
        caplog.set_level(logging.INFO, logger="pm.request")
        async with await _client() as client:
            await client.get("/ping", headers={"X-Forwarded-For": "10.0.0.7, 10.0.0.1"})
        assert "ip:10.0.0.7" in caplog.text

    @pytest.mark.asyncio
    async def test_server_errors_logged_as_warning(self, caplog) -> None:
        caplog.set_level(logging.INFO, logger="pm.request")
        async with await _client() as client:
            await client.get("/down", headers={"X-User-Id": "bob"})
        [record] = [r for r in caplog.records if r.name == "pm.request"]
        assert record.levelno == logging.WARNING
        assert "503" in record.getMessage()
