import asyncio
import json

import httpx
import pytest

from replayer.config import ReplayConfig
from replayer.errors import ServiceUnavailableError
from replayer.services import HttpFileContentService, HttpStatementRunner


def _transport(handler):
    seen = []

    def wrapped(request):
        seen.append(request)
        return handler(request)

    return httpx.MockTransport(wrapped), seen


def test_statement_runner_posts_query_and_parses_rows():
    transport, seen = _transport(
        lambda request: httpx.Response(
            200,
            json={"success": True, "data": {"status": "Success", "data": [{"id": 1}], "affected_rows": 1}},
        )
    )
    runner = HttpStatementRunner("http://storage.local/api/", token="secret", transport=transport)

    result = asyncio.run(runner.run("db-1", "select 1"))

    assert result.ok
    assert result.rows == [{"id": 1}]
    assert result.affected_rows == 1
    request = seen[0]
    assert str(request.url) == "http://storage.local/api/statements/run_without_create"
    assert request.headers["Authorization"] == "Bearer secret"
    assert json.loads(request.content) == {"connection_id": "db-1", "query": "select 1"}


def test_statement_runner_reports_envelope_failure():
    transport, _ = _transport(lambda request: httpx.Response(200, json={"success": False, "error": "bad query"}))
    runner = HttpStatementRunner("http://storage.local", transport=transport)

    result = asyncio.run(runner.run("db-1", "selec"))

    assert not result.ok
    assert result.error == "bad query"


def test_http_errors_become_service_unavailable():
    transport, _ = _transport(lambda request: httpx.Response(502, text="bad gateway"))
    runner = HttpStatementRunner("http://storage.local", transport=transport)

    with pytest.raises(ServiceUnavailableError):
        asyncio.run(runner.run("db-1", "select 1"))


def test_file_content_service_returns_base64_text():
    transport, seen = _transport(lambda request: httpx.Response(200, json={"data": {"content": "aGVsbG8="}}))
    service = HttpFileContentService("http://storage.local", transport=transport)

    assert asyncio.run(service.get_content("uploads/a.txt")) == "aGVsbG8="
    assert json.loads(seen[0].content) == {"file_path": "uploads/a.txt"}


def test_file_content_service_rejects_empty_content():
    transport, _ = _transport(lambda request: httpx.Response(200, json={"data": {}}))
    service = HttpFileContentService("http://storage.local", transport=transport)

    with pytest.raises(ServiceUnavailableError):
        asyncio.run(service.get_content("uploads/missing.txt"))


def test_clients_disabled_without_base_url():
    assert HttpStatementRunner.from_config(ReplayConfig()) is None
    runner = HttpStatementRunner.from_config(ReplayConfig(api_base_url="http://storage.local", api_token="t"))
    assert runner.base_url == "http://storage.local"
    assert runner.token == "t"
