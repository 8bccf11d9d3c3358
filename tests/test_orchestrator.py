"""
Tests for PipelineOrchestrator

End-to-end runs against an in-memory site: discovery, crawling, extraction,
location detection, normalization and artifact output.
"""

import logging

import pytest

from restaurant_kb.core.base import ConfigurationError
from restaurant_kb.core.orchestrator import PipelineOrchestrator
from restaurant_kb.storage.artifact_store import ArtifactStore
from restaurant_kb.utils.component_factory import create_pipeline


SITEMAP = """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url><loc>https://torstens.se/</loc></url>
  <url><loc>https://torstens.se/meny</loc></url>
  <url><loc>https://torstens.se/kontakt</loc></url>
</urlset>"""

HOME = """
<html><head><title>Torstens | Ängelholm</title></head>
<body>
  <h1>Välkommen till Torstens</h1>
  <p>Restaurang i Ängelholm med husmanskost och à la carte.</p>
</body></html>
"""

MENU = """
<html><head><title>Meny - Torstens</title></head>
<body><main>
  <h1>Meny</h1>
  <div class="menu-item"><h4>Toast Skagen</h4><p>Handskalade räkor</p><span>165 kr</span></div>
  <div class="menu-item"><h4>Wallenbergare</h4><p>Med potatispuré och lingon</p><span>195 kr</span></div>
</main></body></html>
"""

CONTACT = """
<html><head><title>Kontakt - Torstens</title></head>
<body>
  <h1>Kontakta oss</h1>
  <p>Storgatan 12, 262 32 Ängelholm</p>
  <p>Tel: 0431-123 45</p>
  <p>E-post: {email}</p>
  <h2>Öppettider</h2>
  <p>Måndag–Fredag 11:30-22:00</p>
  <p>Lördag 12-23</p>
  <p>Söndag stängt</p>
</body></html>
"""

CHAIN_HOME = """
<html><head><title>Torstens | Restauranger</title></head>
<body>
  <h1>Våra restauranger</h1>
  <h2>TORSTENS ÄNGELHOLM</h2>
  <p>Storgatan 12, 262 32 Ängelholm</p>
  <p>Tel: 0431-123 45</p>
  <h2>TORSTENS VIKEN</h2>
  <p>Hamnplan 3, 263 61 Viken</p>
  <p>Tel: 042-236 00 00</p>
</body></html>
"""


def site_routes(**overrides):
    routes = {
        'https://torstens.se/sitemap.xml': (200, SITEMAP),
        'https://torstens.se/': (200, HOME),
        'https://torstens.se/meny': (200, MENU),
        'https://torstens.se/kontakt': (200, CONTACT.format(email="bord@torstens.se")),
    }
    routes.update(overrides)
    return routes


@pytest.fixture
def pipeline_config(tmp_path):
    return {
        'crawl': {'max_concurrent_requests': 2, 'crawl_delay': 0},
        'retry': {'max_retries': 0},
        'output': {'base_path': str(tmp_path / "restaurants")},
    }


class TestPipelineOrchestrator:
    """Test suite for PipelineOrchestrator"""

    def test_unknown_component_type(self, pipeline_config):
        orchestrator = PipelineOrchestrator(pipeline_config)
        with pytest.raises(ValueError):
            orchestrator.register_component("uploader", object())

    @pytest.mark.asyncio
    async def test_initialize_requires_all_components(self, pipeline_config, make_transport):
        orchestrator = PipelineOrchestrator(pipeline_config)
        orchestrator.register_component("transport", make_transport())

        with pytest.raises(ValueError):
            await orchestrator.initialize()

    @pytest.mark.asyncio
    async def test_context_manager_lifecycle(self, pipeline_config, make_transport):
        transport = make_transport()
        orchestrator = create_pipeline(pipeline_config, transport)

        async with orchestrator:
            assert orchestrator.is_initialized()
            assert transport.is_initialized()

        assert not orchestrator.is_initialized()
        assert not transport.is_initialized()

    @pytest.mark.asyncio
    async def test_single_restaurant_run(self, pipeline_config, make_transport):
        orchestrator = create_pipeline(pipeline_config, make_transport(site_routes()))

        async with orchestrator:
            run = await orchestrator.run('https://torstens.se')

        assert run.urls == ['https://torstens.se/', 'https://torstens.se/meny', 'https://torstens.se/kontakt']
        assert all(page.success for page in run.pages)
        assert run.failures == []
        assert len(run.locations) == 1
        assert len(run.emitted) == 1

        result = run.results[0]
        info = result.info
        assert info.slug == 'torstens-angelholm'
        assert info.name == 'Torstens'
        assert info.city == 'Ängelholm'
        assert info.phone == '+4643112345'
        assert info.email == 'bord@torstens.se'
        assert info.website == 'https://torstens.se'
        assert info.hours['monday'] == '11:30–22:00'
        assert info.hours['saturday'] == '12:00–23:00'
        assert info.hours['sunday'] == 'closed'
        assert [item.title for item in info.menu] == ['Toast Skagen', 'Wallenbergare']
        assert info.menu[1].price.amount == 195
        assert not info.is_chain
        assert set(info.source_urls) == set(run.urls)
        assert {item.location for item in result.knowledge} == {'torstens-angelholm'}

    @pytest.mark.asyncio
    async def test_run_logs_summary(self, pipeline_config, make_transport, caplog):
        orchestrator = create_pipeline(pipeline_config, make_transport(site_routes()))

        with caplog.at_level(logging.INFO, logger='restaurant_kb'):
            async with orchestrator:
                await orchestrator.run('https://torstens.se')

        assert "PIPELINE RUN SUMMARY" in caplog.text
        assert "Records Emitted: 1" in caplog.text
        assert "Location torstens-angelholm emitted (" in caplog.text

    @pytest.mark.asyncio
    async def test_run_writes_artifacts(self, pipeline_config, make_transport):
        orchestrator = create_pipeline(pipeline_config, make_transport(site_routes()))
        store = ArtifactStore(pipeline_config)
        await store.initialize()

        async with orchestrator:
            run = await orchestrator.run('https://torstens.se')
        index = await store.save_results(run.results)

        assert index['total_count'] == 1
        location_dir = store.base_path / 'torstens-angelholm'
        assert sorted(p.name for p in location_dir.iterdir()) == [
            'info.json', 'knowledge.jsonl', 'report.txt', 'voice-ai.txt',
        ]

    @pytest.mark.asyncio
    async def test_failed_pages_do_not_stop_the_run(self, pipeline_config, make_transport):
        sitemap = SITEMAP.replace(
            "</urlset>", "  <url><loc>https://torstens.se/saknas</loc></url>\n</urlset>"
        )
        transport = make_transport(site_routes(**{'https://torstens.se/sitemap.xml': (200, sitemap)}))
        orchestrator = create_pipeline(pipeline_config, transport)

        async with orchestrator:
            run = await orchestrator.run('https://torstens.se')

        assert [page.success for page in run.pages] == [True, True, True, False]
        assert run.failures == [{'url': 'https://torstens.se/saknas', 'error': run.pages[3].error}]
        assert len(run.emitted) == 1

    @pytest.mark.asyncio
    async def test_operator_overrides_win(self, pipeline_config, make_transport):
        orchestrator = create_pipeline(pipeline_config, make_transport(site_routes()))

        async with orchestrator:
            run = await orchestrator.run('https://torstens.se', overrides={'phone': '0431-999 99'})

        assert run.results[0].info.phone == '+4643199999'

    @pytest.mark.asyncio
    async def test_chain_site(self, pipeline_config, make_transport):
        routes = site_routes(**{
            'https://torstens.se/': (200, CHAIN_HOME),
            'https://torstens.se/kontakt': (200, CONTACT.format(email="info@torstens.se")),
        })
        orchestrator = create_pipeline(pipeline_config, make_transport(routes))

        async with orchestrator:
            run = await orchestrator.run('https://torstens.se')

        assert [loc.city for loc in run.locations] == ['Ängelholm', 'Viken']
        assert [result.slug for result in run.results] == ['torstens-angelholm', 'torstens-viken']

        angelholm, viken = (result.info for result in run.results)
        assert angelholm.phone == '+4643112345'
        assert viken.phone == '+46422360000'
        assert viken.address == 'Hamnplan 3, 263 61 Viken'
        assert viken.email == 'info@torstens.se'
        assert viken.brand == 'Torstens'
        assert viken.is_chain
        assert viken.data_quality == 'estimated'
        assert {item.location for item in run.results[1].knowledge} == {'viken'}

    @pytest.mark.asyncio
    async def test_unreachable_site_uses_fallback_urls(self, pipeline_config, make_transport):
        transport = make_transport()
        orchestrator = create_pipeline(pipeline_config, transport)

        async with orchestrator:
            run = await orchestrator.run('https://torstens.se')

        assert len(run.urls) == 5
        assert len(run.failures) == 5
        assert run.locations == []
        assert run.results == []

    @pytest.mark.asyncio
    async def test_cancelled_run(self, pipeline_config, make_transport):
        transport = make_transport(site_routes())
        orchestrator = create_pipeline(pipeline_config, transport)

        async with orchestrator:
            orchestrator.cancel()
            run = await orchestrator.run('https://torstens.se')

        assert all('sitemap' in url for url in transport.requests)
        assert run.results == []
        assert len(run.failures) == 3

    @pytest.mark.asyncio
    async def test_invalid_base_url(self, pipeline_config, make_transport):
        orchestrator = create_pipeline(pipeline_config, make_transport())

        async with orchestrator:
            with pytest.raises(ConfigurationError):
                await orchestrator.run('not a url')
