import asyncio
from decimal import Decimal

import httpx

from configs import Settings
from price_hunter.services.price_search.context import AggregatorContext, SearchEventSink
from price_hunter.services.price_search.models import Offer, PriceSearchError, SessionState
from price_hunter.services.price_search.providers.base import BasePriceProvider
from price_hunter.services.price_search.service import (
    PriceSearchService,
    create_price_search_service,
)


class ScriptedProvider(BasePriceProvider):
    """Provider replaying canned offers, optionally waiting on a gate."""

    def __init__(self, site_name, offers_by_query, gates=None, error=None):
        super().__init__(client=None)
        self.site_name = site_name
        self.offers_by_query = offers_by_query
        self.gates = gates or {}
        self.error = error

    async def _stream_impl(self, query):
        gate = self.gates.get(query)
        if gate is not None:
            await gate.wait()
        if self.error is not None:
            raise self.error
        for offer in self.offers_by_query.get(query, []):
            yield offer

    def normalize(self, record):
        return None


class SupersededSink(SearchEventSink):
    def __init__(self):
        self.superseded = []
        self.completed = []

    def on_search_superseded(self, session_id):
        self.superseded.append(session_id)

    def on_search_completed(self, session_id, total_groups, total_offers):
        self.completed.append((session_id, total_groups, total_offers))


def make_offer(store, title, price=None, link=None):
    return Offer(
        store=store,
        offer_id=link or f"{store}:{title}",
        title=title,
        price=Decimal(str(price)) if price is not None else None,
        link=link,
    )


def test_failing_store_contributes_nothing():
    amazon = ScriptedProvider("Amazon.ae", {}, error=PriceSearchError("Amazon.ae", "network down"))
    noon = ScriptedProvider(
        "Noon",
        {
            "kindle": [
                make_offer("Noon", "Kindle Paperwhite 16GB", "549", link="https://noon.test/k1"),
                make_offer("Noon", "Kindle Paperwhite Signature", "699", link="https://noon.test/k2"),
            ]
        },
    )
    service = PriceSearchService([amazon, noon])

    outcome = asyncio.run(service.search("kindle"))

    assert outcome.session.state is SessionState.COMPLETED
    assert outcome.total_offers == 2
    assert {offer.store for offer in outcome.offers} == {"Noon"}
    assert outcome.message is None


def test_unexpected_provider_errors_are_isolated():
    broken = ScriptedProvider("Broken", {}, error=KeyError("price"))
    noon = ScriptedProvider("Noon", {"tv": [make_offer("Noon", "LG OLED TV 55", "3999")]})
    service = PriceSearchService([broken, noon])

    outcome = asyncio.run(service.search("tv"))

    assert outcome.total_offers == 1


def test_zero_offers_reports_no_priced_products():
    service = PriceSearchService([ScriptedProvider("Noon", {})])

    outcome = asyncio.run(service.search("nothing"))

    assert outcome.groups == []
    assert outcome.message == "No priced products found."
    assert "No priced products found." in service.render_summary("nothing", outcome)


def test_newer_search_discards_late_offers_from_older_one():
    async def scenario():
        tv_gate = asyncio.Event()
        provider = ScriptedProvider(
            "Noon",
            {
                "tv": [make_offer("Noon", "Samsung Crystal UHD TV", "1299", link="https://noon.test/tv")],
                "laptop": [make_offer("Noon", "Lenovo IdeaPad Slim 3", "1899", link="https://noon.test/lp")],
            },
            gates={"tv": tv_gate},
        )
        sink = SupersededSink()
        service = PriceSearchService([provider], AggregatorContext(events=sink))

        tv_search = asyncio.create_task(service.search("tv"))
        await asyncio.sleep(0)
        laptop = await service.search("laptop")
        tv_gate.set()
        tv = await tv_search
        return service, sink, tv, laptop

    service, sink, tv, laptop = asyncio.run(scenario())

    assert tv.session.state is SessionState.SUPERSEDED
    assert tv.groups == [] and tv.offers == []
    assert laptop.session.state is SessionState.COMPLETED
    assert [offer.link for offer in laptop.offers] == ["https://noon.test/lp"]
    assert [offer.link for offer in service.context.results.offers] == ["https://noon.test/lp"]
    assert sink.superseded == [1]
    assert sink.completed == [(2, 1, 1)]


def test_render_summary_marks_best_offers():
    providers = [
        ScriptedProvider("Amazon.ae", {"iphone": [make_offer("Amazon.ae", "iPhone 15", "3199")]}),
        ScriptedProvider(
            "SharafDG",
            {"iphone": [make_offer("SharafDG", "Apple iPhone 15 128GB", "3099", link="https://sharafdg.test/p/1")]},
        ),
    ]
    service = PriceSearchService(providers)
    outcome = asyncio.run(service.search("iphone"))

    summary = service.render_summary("iphone", outcome)

    assert "Apple iPhone 15 128GB (best: 3,099.00 AED)" in summary
    assert "- SharafDG: 3,099.00 AED [BEST PRICE] - https://sharafdg.test/p/1" in summary
    assert "- Amazon.ae: 3,199.00 AED" in summary


def _worker_settings(**overrides):
    values = {
        "AMAZON_WORKER_URL": "https://amazon.worker.test",
        "NOON_WORKER_URL": "https://noon.worker.test",
        "SHARAF_WORKER_URL": "https://sharaf.worker.test",
        "MAX_RETRIES": 1,
        "RETRY_BASE_DELAY_SECONDS": 0,
    }
    values.update(overrides)
    return Settings(**values)


def test_two_phase_store_wins_best_price_across_stores():
    sharaf_link = "https://uae.sharafdg.com/product/apple-iphone-15-128gb/"

    def handler(request):
        host = request.url.host
        if host == "amazon.worker.test":
            return httpx.Response(200, json={"results": [{"title": "iPhone 15", "price": "3,199"}]})
        if host == "noon.worker.test":
            return httpx.Response(200, json={"query": "iphone 15", "count": 0, "results": []})
        if request.url.path == "/search":
            return httpx.Response(200, json={"results": [{"store": "SharafDG", "link": sharaf_link}]})
        assert request.url.params["url"] == sharaf_link
        return httpx.Response(200, json={"title": "Apple iPhone 15 128GB", "price": 3099})

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            service = create_price_search_service(client, config=_worker_settings())
            return await service.search("iphone 15")

    outcome = asyncio.run(scenario())

    assert len(outcome.groups) == 1
    group = outcome.groups[0]
    assert group.best_price == Decimal("3099")
    assert group.best_offer_ids == [sharaf_link]
    assert {offer.store for offer in group.offers} == {"Amazon.ae", "SharafDG"}


def test_unreachable_store_is_skipped():
    def handler(request):
        host = request.url.host
        if host == "amazon.worker.test":
            raise httpx.ConnectError("connection refused", request=request)
        if host == "noon.worker.test":
            return httpx.Response(
                200,
                json={
                    "results": [
                        {"title": "Sony WH-1000XM5 Headphones", "price": 1199, "url": "/uae-en/p/xm5"},
                        {"title": "Sony WH-1000XM5 Wireless Headphones Black", "price": 1149, "url": "/uae-en/p/xm5b"},
                    ]
                },
            )
        return httpx.Response(200, json={"results": []})

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            service = create_price_search_service(client, config=_worker_settings())
            return await service.search("sony xm5")

    outcome = asyncio.run(scenario())

    assert outcome.session.state is SessionState.COMPLETED
    assert outcome.total_offers == 2
    assert {offer.store for offer in outcome.offers} == {"Noon"}
    assert len(outcome.groups) == 1
    assert outcome.groups[0].best_price == Decimal("1149")


def test_amazon_listings_sharing_an_asin_are_one_product():
    def handler(request):
        if request.url.host == "amazon.worker.test":
            return httpx.Response(
                200,
                json={
                    "results": [
                        {"asin": "B0X", "title": "Echo Dot 5th Gen", "price": 399, "link": "https://www.amazon.ae/dp/B0X"},
                        {"asin": "B0X", "title": "Amazon smart speaker, Charcoal", "price": 549, "link": "https://www.amazon.ae/sspa/click?B0X"},
                    ]
                },
            )
        return httpx.Response(200, json={"results": []})

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            service = create_price_search_service(client, config=_worker_settings())
            outcome = await service.search("echo dot")
            return service, outcome

    service, outcome = asyncio.run(scenario())

    assert len(outcome.groups) == 1
    group = outcome.groups[0]
    assert group.group_id == "asin:B0X"
    assert [(offer.price, group.is_best(offer)) for offer in group.offers] == [
        (Decimal("399"), True),
        (Decimal("549"), False),
    ]
    summary = service.render_summary("echo dot", outcome)
    assert summary.count("[BEST PRICE]") == 1
