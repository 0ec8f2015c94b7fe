"""Unit tests for the MetricsServer handler."""

import pytest

from ledgerline.adapters.metrics import FakeMetricsRenderer


class TestMetricsServer:
    """Tests for the MetricsServer handler."""

    @pytest.mark.asyncio
    async def test_handle_metrics_returns_renderer_body(self):
        from aiohttp.test_utils import make_mocked_request

        from ledgerline.api.metrics import MetricsServer

        fake = FakeMetricsRenderer()
        server = MetricsServer(fake, port=0)

        response = await server._handle_metrics(make_mocked_request("GET", "/metrics"))

        assert response.body == b"# fake metrics\n"
        assert response.content_type == "text/plain"
        assert fake.generate_calls == 1

    @pytest.mark.asyncio
    async def test_prometheus_renderer_over_http(self):
        """A started server answers scrapes with the shared registry's counters."""
        import aiohttp
        from prometheus_client import CollectorRegistry

        from ledgerline.adapters.metrics import PrometheusBillingMetrics, PrometheusMetricsRenderer
        from ledgerline.api.metrics import MetricsServer

        registry = CollectorRegistry()
        PrometheusBillingMetrics(registry=registry).inc_topup()
        server = MetricsServer(PrometheusMetricsRenderer(registry=registry), port=0)
        await server.start()

        try:
            site = list(server._runner.sites)[0]
            port = site._server.sockets[0].getsockname()[1]

            async with aiohttp.ClientSession() as session:
                async with session.get(f"http://127.0.0.1:{port}/metrics") as resp:
                    assert resp.status == 200
                    assert resp.headers["Content-Type"].count("charset") == 1
                    body = (await resp.read()).decode("utf-8")
                    assert "ledgerline_billing_topups_total 1.0" in body
        finally:
            await server.stop()

    @pytest.mark.asyncio
    async def test_stop_without_start_is_noop(self):
        from ledgerline.api.metrics import MetricsServer

        await MetricsServer(FakeMetricsRenderer(), port=0).stop()
