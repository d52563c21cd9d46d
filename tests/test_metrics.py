from fastapi import FastAPI
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from askgate.observability import metrics

from .utils import login


def _failures(leg: str) -> float:
    return REGISTRY.get_sample_value("askgate_upstream_failures_total", {"leg": leg}) or 0.0


def test_sanitize_path_cases():
    assert metrics.sanitize_path("") == "/"
    assert metrics.sanitize_path("/messages/abc123") == "/messages"
    assert metrics.sanitize_path("/login/callback?code=x") == "/login"


def test_metrics_endpoint_exposes_histogram(client):
    assert client.get("/health").status_code == 200

    body = client.get("/metrics").text
    assert "# TYPE askgate_request_latency_seconds histogram" in body
    assert "askgate_request_latency_seconds_count" in body


def test_upstream_failures_are_counted_per_leg(client, completion, store):
    login(client, "code-alice")
    completion.error = RuntimeError("boom")
    before_completion = _failures("completion")
    before_storage = _failures("storage")

    client.post("/messages", content="q", headers={"content-type": "text/plain"})
    store.fail = True
    client.get("/messages")

    assert _failures("completion") == before_completion + 1
    assert _failures("storage") == before_storage + 1


def test_middleware_does_not_break_on_metrics_exception(monkeypatch):
    app = FastAPI()
    app.middleware("http")(metrics.metrics_middleware_factory())

    @app.get("/ok")
    def ok():
        return {"ok": True}

    class Boom:
        def labels(self, *args, **kwargs):
            raise RuntimeError("boom")

    monkeypatch.setattr(metrics, "REQUEST_LATENCY", Boom())

    r = TestClient(app).get("/ok")
    assert r.status_code == 200


def _latency_count(method: str, path: str, status: str) -> float:
    labels = {"method": method, "path": path, "status": status}
    return REGISTRY.get_sample_value("askgate_request_latency_seconds_count", labels) or 0.0


def test_latency_recorded_when_handler_raises(client):
    # Anonymous POST raises AuthMissing through the middleware.
    before = _latency_count("POST", "/messages", "500")

    res = client.post("/messages", content="q", headers={"content-type": "text/plain"})

    assert res.status_code == 500
    assert _latency_count("POST", "/messages", "500") == before + 1


def test_latency_recorded_for_unexpected_error():
    app = FastAPI()
    app.middleware("http")(metrics.metrics_middleware_factory())

    @app.get("/explode")
    def explode():
        raise RuntimeError("kaboom")

    before = _latency_count("GET", "/explode", "500")
    r = TestClient(app, raise_server_exceptions=False).get("/explode")

    assert r.status_code == 500
    assert _latency_count("GET", "/explode", "500") == before + 1
