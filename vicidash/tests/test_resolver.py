"""Tests for campaign name resolution."""

from __future__ import annotations

import asyncio
import json

import pytest

from vicidash.sync.name_cache import CampaignNameCache
from vicidash.sync.resolver import (
    CampaignNameResolver,
    campaign_rows_to_names,
    load_campaign_map,
)
from vicidash.vicidial.errors import RemoteError

from .conftest import FakeVici


class TestResolveOne:
    @pytest.mark.asyncio
    async def test_second_lookup_hits_cache(self, name_cache):
        fake = FakeVici({"campaigns_list": "campaign_id|campaign_name\nc1|Sales\n"})
        async with fake.client() as vici:
            resolver = CampaignNameResolver(vici, name_cache)
            first = await resolver.resolve_one("c1")
            second = await resolver.resolve_one("c1")

        assert first == second == {"id": "c1", "name": "Sales"}
        assert len(fake.calls_for("campaigns_list")) == 1
        assert fake.calls[0]["campaign_id"] == "c1"
        assert fake.calls[0]["stage"] == "pipe"

    @pytest.mark.asyncio
    async def test_name_candidates_and_positional_fallback(self, name_cache):
        fake = FakeVici({
            "campaigns_list": lambda p: {
                "c1": "Outbound|Outbound Process\nc1|Renewals\n",
                "c2": "code|label\nc2|Retention\n",
            }[p["campaign_id"]],
        })
        async with fake.client() as vici:
            resolver = CampaignNameResolver(vici, name_cache)
            assert (await resolver.resolve_one("c1"))["name"] == "Renewals"
            assert (await resolver.resolve_one("c2"))["name"] == "Retention"

    @pytest.mark.asyncio
    async def test_failure_falls_back_to_id_and_is_cached(self, name_cache):
        fake = FakeVici({"campaigns_list": "ERROR: campaigns_list NO CAMPAIGNS FOUND"})
        async with fake.client() as vici:
            resolver = CampaignNameResolver(vici, name_cache)
            assert await resolver.resolve_one("GONE") == {"id": "GONE", "name": "GONE"}
            assert await resolver.resolve_one("GONE") == {"id": "GONE", "name": "GONE"}

        assert name_cache.get("GONE") == "GONE"
        assert len(fake.calls) == 1

    @pytest.mark.asyncio
    async def test_empty_body_falls_back_to_id(self, name_cache):
        fake = FakeVici({"campaigns_list": ""})
        async with fake.client() as vici:
            resolver = CampaignNameResolver(vici, name_cache)
            assert (await resolver.resolve_one("c9"))["name"] == "c9"


class SlowClient:
    """Counts concurrent `call`s."""

    def __init__(self):
        self.in_flight = 0
        self.max_in_flight = 0
        self.calls = 0

    async def call(self, function, params=None):
        self.calls += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0.01)
        self.in_flight -= 1
        cid = params["campaign_id"]
        return f"campaign_id|campaign_name\n{cid}|Name {cid}\n"


class TestResolveBatch:
    @pytest.mark.asyncio
    async def test_window_bounds_concurrency(self):
        client = SlowClient()
        resolver = CampaignNameResolver(client, CampaignNameCache(), concurrency=3)
        ids = [f"c{i}" for i in range(8)]

        result = await resolver.resolve_batch(ids)

        assert result == [{"id": cid, "name": f"Name {cid}"} for cid in ids]
        assert client.max_in_flight == 3
        assert client.calls == 8

    @pytest.mark.asyncio
    async def test_only_missing_unique_ids_are_fetched(self):
        client = SlowClient()
        cache = CampaignNameCache()
        cache.set("c1", "Cached")
        resolver = CampaignNameResolver(client, cache)

        result = await resolver.resolve_batch(["c1", "c2", "c2", ""], concurrency=2)

        assert result == [
            {"id": "c1", "name": "Cached"},
            {"id": "c2", "name": "Name c2"},
            {"id": "c2", "name": "Name c2"},
        ]
        assert client.calls == 1


class TestSeeding:
    @pytest.mark.asyncio
    async def test_seed_from_remote_keeps_cached_names(self, name_cache):
        name_cache.set("c1", "Local Sales")
        fake = FakeVici({
            "campaigns_list": "campaign_id|campaign_name|active\nc1|Sales|Y\nc2|Support|N\n",
        })
        async with fake.client() as vici:
            resolver = CampaignNameResolver(vici, name_cache)
            assert await resolver.seed_from_remote() == 1

        assert name_cache.as_dict() == {"c1": "Local Sales", "c2": "Support"}

    @pytest.mark.asyncio
    async def test_seed_from_remote_propagates_errors(self, name_cache):
        fake = FakeVici({"campaigns_list": "ERROR: no access"})
        async with fake.client() as vici:
            resolver = CampaignNameResolver(vici, name_cache)
            with pytest.raises(RemoteError):
                await resolver.seed_from_remote()

    def test_campaign_rows_to_names(self):
        rows = [
            {"campaign_id": "c1", "campaign_name": "Sales"},
            {"Outbound": "c2", "Outbound Process": "Renewals"},
            {"campaign_id": "c3", "campaign_name": ""},
        ]
        assert campaign_rows_to_names(rows) == {"c1": "Sales", "c2": "Renewals"}


class TestLoadCampaignMap:
    def test_first_existing_file_wins(self, tmp_path):
        first = tmp_path / "a.json"
        second = tmp_path / "b.json"
        second.write_text(json.dumps({"c1": "From B"}))
        first.write_text(json.dumps([
            {"campaign_id": "c1", "campaign_name": "Sales"},
            {"Outbound": "c2", "Outbound Process": "Renewals"},
            {"Campaign": "c3", "Campaign Name": "Support"},
            {"campaign_id": "c4"},
        ]))

        mapping, path = load_campaign_map([tmp_path / "missing.json", first, second])

        assert path == first
        assert mapping == {"c1": "Sales", "c2": "Renewals", "c3": "Support"}

    def test_unreadable_file_is_skipped(self, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("{oops")
        good = tmp_path / "good.json"
        good.write_text(json.dumps({"c1": "Sales"}))

        assert load_campaign_map([bad, good]) == ({"c1": "Sales"}, good)

    def test_nothing_found(self, tmp_path):
        assert load_campaign_map([tmp_path / "nope.json"]) == ({}, None)
