"""Tests for request id and request logging middleware."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
import pytest

from staff_service.app.middleware import (
    REQUEST_ID_HEADER,
    RequestIDMiddleware,
    RequestLoggingMiddleware,
)
from staff_service.infra.logging import get_log_context


def _build_app(*, slow_threshold: float = 1.0, log_all: bool = True) -> FastAPI:
    app = FastAPI()

    @app.get("/context")
    async def context() -> dict[str, object]:
        return get_log_context()

    app.add_middleware(RequestLoggingMiddleware, slow_threshold=slow_threshold, log_all=log_all)
    app.add_middleware(RequestIDMiddleware)
    return app


async def _get(app: FastAPI, path: str, **kwargs):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        return await ac.get(path, **kwargs)


def _middleware_records(caplog) -> list[logging.LogRecord]:
    return [r for r in caplog.records if r.name == "staff_service.app.middleware"]


@pytest.mark.unit
class TestRequestIDMiddleware:
    @pytest.mark.asyncio
    async def test_generates_request_id(self):
        response = await _get(_build_app(), "/context")

        request_id = response.headers[REQUEST_ID_HEADER]
        assert len(request_id) == 36
        assert response.json()["request_id"] == request_id

    @pytest.mark.asyncio
    async def test_propagates_incoming_request_id(self):
        response = await _get(_build_app(), "/context", headers={REQUEST_ID_HEADER: "req-42"})

        assert response.headers[REQUEST_ID_HEADER] == "req-42"
        assert response.json()["request_id"] == "req-42"


@pytest.mark.unit
class TestRequestLoggingMiddleware:
    @pytest.mark.asyncio
    async def test_sets_process_time_header(self):
        response = await _get(_build_app(), "/context")

        assert float(response.headers["X-Process-Time"]) >= 0

    @pytest.mark.asyncio
    async def test_logs_requests(self, caplog):
        caplog.set_level(logging.INFO, logger="staff_service.app.middleware")

        await _get(_build_app(), "/context")

        assert any(r.getMessage() == "GET /context 200" for r in caplog.records)

    @pytest.mark.asyncio
    async def test_quiet_unless_slow(self, caplog):
        caplog.set_level(logging.INFO, logger="staff_service.app.middleware")

        await _get(_build_app(log_all=False), "/context")

        assert _middleware_records(caplog) == []

    @pytest.mark.asyncio
    async def test_slow_requests_are_warnings(self, caplog):
        caplog.set_level(logging.INFO, logger="staff_service.app.middleware")

        await _get(_build_app(slow_threshold=0.0, log_all=False), "/context")

        [record] = _middleware_records(caplog)
        assert record.levelno == logging.WARNING
        assert record.getMessage() == "Slow request: GET /context"
        assert record.status_code == 200
