from concurrent.futures import ThreadPoolExecutor

import pytest
from httpx import ASGITransport, AsyncClient

from app.errors import InternalError
from app.main import create_app
from app.observability.metrics import MetricsRegistry


def _sample(metrics: MetricsRegistry, name: str, **labels: str) -> float:
    value = metrics.registry.get_sample_value(name, labels)
    return value or 0.0


async def test_metrics_endpoint_exposes_prometheus_text(api_client) -> None:
    await api_client.get("/healthz")

    resp = await api_client.get("/metrics")
    assert resp.status_code == 200
    assert "text/plain" in resp.headers["content-type"]
    assert "http_requests_total" in resp.text
    assert "http_request_duration_seconds" in resp.text
    assert "python_info" in resp.text


async def test_requests_are_counted_per_route_pattern(api_client, metrics) -> None:
    created = await api_client.post("/api/todos", json={"text": "count me"})
    todo_id = created.json()["id"]
    await api_client.get(f"/api/todos/{todo_id}")
    await api_client.get(f"/api/todos/{todo_id}")
    await api_client.get("/api/todos/9999")

    assert _sample(metrics, "http_requests_total", method="POST", route="/api/todos", status="201") == 1
    assert _sample(metrics, "http_requests_total", method="GET", route="/api/todos/{todo_id}", status="200") == 2
    assert _sample(metrics, "http_requests_total", method="GET", route="/api/todos/{todo_id}", status="404") == 1
    assert (
        _sample(
            metrics,
            "http_request_duration_seconds_count",
            method="GET",
            route="/api/todos/{todo_id}",
            status="200",
        )
        == 2
    )


async def test_unmatched_routes_are_labelled_by_raw_path(api_client, metrics) -> None:
    resp = await api_client.get("/nope")
    assert resp.status_code == 404
    assert _sample(metrics, "http_requests_total", method="GET", route="/nope", status="404") == 1


async def test_metrics_scrapes_are_instrumented_too(api_client, metrics) -> None:
    await api_client.get("/metrics")
    await api_client.get("/metrics")
    assert _sample(metrics, "http_requests_total", method="GET", route="/metrics", status="200") == 2


async def test_sample_counts_cover_completed_requests(api_client, metrics) -> None:
    for _ in range(3):
        await api_client.get("/healthz")
    await api_client.post("/api/todos", json={})

    total = sum(
        sample.value
        for family in metrics.registry.collect()
        if family.name == "http_requests"
        for sample in family.samples
        if sample.name == "http_requests_total"
    )
    assert total >= 4


async def test_metrics_render_failure_returns_500(monkeypatch) -> None:
    registry = MetricsRegistry()

    def _broken_render() -> bytes:
        raise InternalError("Failed to render metrics")

    monkeypatch.setattr(registry, "render", _broken_render)
    app = create_app(metrics=registry)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/metrics")

    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}
    assert _sample(registry, "http_requests_total", method="GET", route="/metrics", status="500") == 1


def test_render_wraps_serialization_errors(monkeypatch) -> None:
    registry = MetricsRegistry()

    def _explode(_registry):
        raise RuntimeError("broken collector")

    monkeypatch.setattr("app.observability.metrics.generate_latest", _explode)
    with pytest.raises(InternalError, match="Failed to render metrics"):
        registry.render()


def test_duration_histogram_uses_fixed_buckets(metrics) -> None:
    metrics.observe_http_request("GET", "/healthz", 200, 0.25)

    labels = {"method": "GET", "route": "/healthz", "status": "200"}
    assert _sample(metrics, "http_request_duration_seconds_bucket", le="0.1", **labels) == 0
    assert _sample(metrics, "http_request_duration_seconds_bucket", le="0.3", **labels) == 1
    assert _sample(metrics, "http_request_duration_seconds_bucket", le="10.0", **labels) == 1
    assert _sample(metrics, "http_request_duration_seconds_sum", **labels) == pytest.approx(0.25)


def test_concurrent_observations_are_not_lost(metrics) -> None:
    def _observe(_: int) -> None:
        metrics.observe_http_request("GET", "/api/todos", 200, 0.01)

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(_observe, range(500)))

    assert _sample(metrics, "http_requests_total", method="GET", route="/api/todos", status="200") == 500


def test_registries_are_isolated() -> None:
    first = MetricsRegistry()
    second = MetricsRegistry()
    first.observe_http_request("GET", "/healthz", 200, 0.01)
    assert _sample(second, "http_requests_total", method="GET", route="/healthz", status="200") == 0


class _Teapot(Exception):
    status_code = 418


async def test_unhandled_error_status_matches_recorded_label() -> None:
    registry = MetricsRegistry()
    app = create_app(metrics=registry)

    @app.get("/teapot")
    async def teapot() -> None:
        raise _Teapot("short and stout")

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/teapot")

    assert resp.status_code == 418
    assert resp.json() == {"error": "short and stout"}
    assert _sample(registry, "http_requests_total", method="GET", route="/teapot", status="418") == 1
    assert _sample(registry, "http_requests_total", method="GET", route="/teapot", status="500") == 0
