"""Tests for agent -> campaign reconciliation."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from vicidash.sync.reconciler import AgentCampaignReconciler, split_campaign_line
from vicidash.sync.snapshots import CONSOLIDATED_FILE, LAST_AGENT_FILE
from vicidash.vicidial.errors import RemoteError

from .conftest import FakeVici

ROSTER = (
    "user|full_name|user_group|calls\n"
    "agt1|Alice Smith|SALES|10\n"
    "agt2|Bob Jones|SUPPORT|4\n"
    "agt3|Cara Diaz|SALES|7\n"
)

CAMPAIGNS = "campaign_id|campaign_name|active\nc1|Sales|Y\nc2|Support|Y\nc3|Renewals|N\n"

AGENT_CAMPAIGNS = {
    "agt1": "user|campaigns|ingroups\nagt1|c1-c2|IG1\n",
    "agt2": "ERROR: agent_campaigns USER DOES NOT EXIST",
    "agt3": "user|campaigns|ingroups\nagt3|c3-c3- c1|\n",
}


def agent_campaigns_reply(params):
    return AGENT_CAMPAIGNS.get(params["agent_user"], "")


def build(vici, name_cache, store, **kwargs) -> AgentCampaignReconciler:
    from vicidash.sync.resolver import CampaignNameResolver

    kwargs.setdefault("pace_delay_seconds", 0)
    return AgentCampaignReconciler(vici, CampaignNameResolver(vici, name_cache), store, **kwargs)


class TestSplitCampaignLine:
    def test_pipe_format_with_ingroups(self):
        assert split_campaign_line("user|campaigns|ingroups\nagt1|c1-c2|IG1-IG2\n") == (
            ["c1", "c2"],
            ["IG1", "IG2"],
        )

    def test_dedupes_and_strips(self):
        assert split_campaign_line("agt1|c1 - c2-c1-|") == (["c1", "c2"], [])

    def test_plain_line_is_hyphen_delimited(self):
        assert split_campaign_line("c1-c2") == (["c1", "c2"], [])
        assert split_campaign_line("campaigns\nc1-c2 -c3\n") == (["c1", "c2", "c3"], [])

    def test_commas_are_stripped_not_split(self):
        assert split_campaign_line("campaigns\nc1,c2\n") == (["c1c2"], [])
        assert split_campaign_line("c1,-c2,") == (["c1", "c2"], [])

    def test_single_code(self):
        assert split_campaign_line("SALES") == (["SALES"], [])

    def test_empty(self):
        assert split_campaign_line("") == ([], [])
        assert split_campaign_line("header|only\nagt1||\n") == ([], [])


class TestReconcileAll:
    @pytest.mark.asyncio
    async def test_full_pass_writes_snapshots(self, name_cache, store, data_dir):
        fake = FakeVici({
            "agent_stats_export": ROSTER,
            "campaigns_list": CAMPAIGNS,
            "agent_campaigns": agent_campaigns_reply,
        })
        async with fake.client() as vici:
            result = await build(vici, name_cache, store).reconcile_all()

        assert result.total_agents == 3
        assert result.agents_processed == 3
        assert result.failed == 0
        assert result.total_campaigns == 4

        agt1 = result.results["agt1"]
        assert agt1.agent_name == "Alice Smith"
        assert agt1.user_group == "SALES"
        assert [c.model_dump() for c in agt1.campaigns] == [
            {"id": "c1", "name": "Sales"},
            {"id": "c2", "name": "Support"},
        ]
        # an ERROR body is a zero-campaign agent, not a failure
        assert result.results["agt2"].count_campaigns == 0
        assert result.results["agt2"].error is None
        assert [c.id for c in result.results["agt3"].campaigns] == ["c3", "c1"]

        consolidated = json.loads((data_dir / CONSOLIDATED_FILE).read_text())
        assert set(consolidated) == {"agt1", "agt2", "agt3"}
        assert consolidated["agt1"]["count_campaigns"] == 2
        assert "error" not in consolidated["agt1"]
        per_agent = json.loads((data_dir / "agent_campaigns_agt3.json").read_text())
        assert per_agent["campaigns"][0] == {"id": "c3", "name": "Renewals"}

    @pytest.mark.asyncio
    async def test_roster_and_per_agent_query_shape(self, name_cache, store):
        fake = FakeVici({
            "agent_stats_export": ROSTER,
            "campaigns_list": CAMPAIGNS,
            "agent_campaigns": agent_campaigns_reply,
        })
        async with fake.client() as vici:
            await build(vici, name_cache, store).reconcile_all("2024-01-01 00:00", "2024-03-31 23:59")

        roster_call = fake.calls_for("agent_stats_export")[0]
        assert roster_call["DB"] == "0"
        assert roster_call["time_format"] == "HF"
        assert roster_call["datetime_start"] == "2024-01-01+00:00:00"
        assert roster_call["datetime_end"] == "2024-03-31+23:59:00"

        per_agent = fake.calls_for("agent_campaigns")
        assert [c["agent_user"] for c in per_agent] == ["agt1", "agt2", "agt3"]
        assert all(c["ignore_agentdirect"] == "N" for c in per_agent)
        # names come from the single bulk call, never per agent
        assert len(fake.calls_for("campaigns_list")) == 1
        assert "campaign_id" not in fake.calls_for("campaigns_list")[0]

    @pytest.mark.asyncio
    async def test_local_map_skips_bulk_call(self, tmp_path, name_cache, store):
        local_map = tmp_path / "campaigns.json"
        local_map.write_text(json.dumps([{"campaign_id": "c1", "campaign_name": "Local Sales"}]))
        fake = FakeVici({
            "agent_stats_export": ROSTER,
            "campaigns_list": CAMPAIGNS,
            "agent_campaigns": agent_campaigns_reply,
        })
        async with fake.client() as vici:
            reconciler = build(vici, name_cache, store, campaign_map_paths=[local_map])
            result = await reconciler.reconcile_all()

        assert fake.calls_for("campaigns_list") == []
        names = {c.id: c.name for c in result.results["agt1"].campaigns}
        # unknown codes fall back to the id
        assert names == {"c1": "Local Sales", "c2": "c2"}

    @pytest.mark.asyncio
    async def test_agent_failure_is_isolated(self, name_cache, store, data_dir):
        def flaky(params):
            if params["agent_user"] == "agt2":
                raise RuntimeError("socket closed")
            return agent_campaigns_reply(params)

        fake = FakeVici({
            "agent_stats_export": ROSTER,
            "campaigns_list": CAMPAIGNS,
            "agent_campaigns": flaky,
        })
        async with fake.client() as vici:
            result = await build(vici, name_cache, store).reconcile_all()

        assert result.agents_processed == 2
        assert result.failed == 1
        assert result.results["agt2"].campaigns == []
        assert "socket closed" in result.results["agt2"].error
        assert result.results["agt1"].count_campaigns == 2
        assert result.results["agt3"].count_campaigns == 2
        assert (data_dir / "agent_campaigns_agt1.json").exists()
        assert (data_dir / "agent_campaigns_agt3.json").exists()
        consolidated = json.loads((data_dir / CONSOLIDATED_FILE).read_text())
        assert consolidated["agt2"]["error"]

    @pytest.mark.asyncio
    async def test_roster_failure_aborts(self, name_cache, store):
        fake = FakeVici({"agent_stats_export": "ERROR: agent_stats_export NO RECORDS FOUND"})
        async with fake.client() as vici:
            with pytest.raises(RemoteError):
                await build(vici, name_cache, store).reconcile_all()
        assert fake.calls_for("agent_campaigns") == []

    @pytest.mark.asyncio
    async def test_duplicate_and_blank_roster_entries(self, name_cache, store):
        roster = "user|full_name\nagt1|Alice\n|Nobody\nagt1|Alice Again\n"
        fake = FakeVici({
            "agent_stats_export": roster,
            "campaigns_list": CAMPAIGNS,
            "agent_campaigns": agent_campaigns_reply,
        })
        async with fake.client() as vici:
            result = await build(vici, name_cache, store).reconcile_all()

        assert list(result.results) == ["agt1"]
        assert result.results["agt1"].agent_name == "Alice"
        assert len(fake.calls_for("agent_campaigns")) == 1

    @pytest.mark.asyncio
    async def test_pauses_every_n_agents(self, name_cache, store, monkeypatch):
        sleep = AsyncMock()
        monkeypatch.setattr(asyncio, "sleep", sleep)
        roster = "user\n" + "".join(f"agt{i}\n" for i in range(5))
        fake = FakeVici({
            "agent_stats_export": roster,
            "campaigns_list": CAMPAIGNS,
            "agent_campaigns": "",
        })
        async with fake.client() as vici:
            reconciler = build(vici, name_cache, store, pace_every=2, pace_delay_seconds=0.1)
            await reconciler.reconcile_all()

        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.1)


class TestReconcileAgent:
    @pytest.mark.asyncio
    async def test_live_single_agent(self, name_cache, store, data_dir):
        fake = FakeVici({
            "agent_campaigns": "user|campaigns|ingroups\nagt1|c1-c2|IG1-IG2\n",
            "campaigns_list": CAMPAIGNS,
            "agent_info": "user|full_name|user_level\nagt1|Alice Smith|1\n",
        })
        async with fake.client() as vici:
            data = await build(vici, name_cache, store).reconcile_agent("agt1")

        assert data["agent_name"] == "Alice Smith"
        assert data["campaigns"] == [{"id": "c1", "name": "Sales"}, {"id": "c2", "name": "Support"}]
        assert data["ingroups"] == ["IG1", "IG2"]
        assert data["count_campaigns"] == 2
        assert data["count_ingroups"] == 2
        assert json.loads((data_dir / LAST_AGENT_FILE).read_text())["agent_user"] == "agt1"
        assert (data_dir / "agent_campaigns_agt1.json").exists()

    @pytest.mark.asyncio
    async def test_name_falls_back_to_stats_export(self, name_cache, store):
        name_cache.seed({"c1": "Sales"})
        fake = FakeVici({
            "agent_campaigns": "agt1|c1|",
            "agent_info": "ERROR: agent_info NOT ALLOWED",
            "agent_stats_export": "user|full_name\nagt1|Alice Smith\n",
        })
        async with fake.client() as vici:
            data = await build(vici, name_cache, store).reconcile_agent("agt1")

        assert data["agent_name"] == "Alice Smith"
        assert fake.calls_for("agent_stats_export")[0]["time_format"] == "M"
        assert fake.calls_for("campaigns_list") == []

    @pytest.mark.asyncio
    async def test_empty_response(self, name_cache, store, data_dir):
        fake = FakeVici({"agent_campaigns": "  "})
        async with fake.client() as vici:
            data = await build(vici, name_cache, store).reconcile_agent("agt9")

        assert data["campaigns"] == []
        assert data["count_campaigns"] == 0
        assert not (data_dir / LAST_AGENT_FILE).exists()

    @pytest.mark.asyncio
    async def test_campaign_ids_for_agent(self, name_cache, store):
        fake = FakeVici({"agent_campaigns": lambda p: "ERROR: nope" if p["agent_user"] == "x" else "agt1|c1-c2|"})
        async with fake.client() as vici:
            reconciler = build(vici, name_cache, store)
            assert await reconciler.campaign_ids_for_agent("agt1") == ["c1", "c2"]
            assert await reconciler.campaign_ids_for_agent("x") == []
