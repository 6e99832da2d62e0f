"""CLI tests against an in-memory engine."""

import json

import pytest
from click.testing import CliRunner

from workpool_tool.cli import main
from workpool_tool.pool.commands import common, table_commands
from workpool_tool.pool.exceptions import TableAlreadyExistsError
from workpool_tool.pool.models import Campaign, ItemStatus


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def invoke(runner, engine, monkeypatch):
    """Run `workpool-tool pool ...` with every command bound to the test engine."""
    monkeypatch.setattr(common, "build_engine", lambda config: engine)

    def run(*args, **kwargs):
        return runner.invoke(main, ["pool", *args], **kwargs)

    return run


def json_lines(output: str) -> list[dict]:
    return [json.loads(line) for line in output.splitlines() if line.strip()]


class TestMain:
    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_pool_help_lists_commands(self, runner):
        result = runner.invoke(main, ["pool", "--help"])

        assert result.exit_code == 0
        for name in ("claim", "distribute", "resolve", "summarize", "worker-ensure"):
            assert name in result.output


class TestItemCommands:
    """add-items, item-get, worker-items."""

    def test_add_items(self, invoke, engine):
        result = invoke("add-items", "--campaign", "oasis_outfit", "+3161", "+3162", "+3161")

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["created"] == 2
        assert data["duplicates"] == ["+3161"]
        assert engine.pool_overview().unclaimed == 2

    def test_add_items_from_stdin(self, invoke, engine):
        result = invoke(
            "add-items", "--campaign", "zizii_island", "--file", "-", input="+3161\n+3162\n\n"
        )

        assert result.exit_code == 0
        assert json.loads(result.output)["created"] == 2
        assert engine.pool_overview(Campaign.ZIZII_ISLAND).total == 2

    def test_add_items_text(self, invoke):
        result = invoke("add-items", "--campaign", "oasis_outfit", "+3161", "--text")

        assert result.exit_code == 0
        assert "Added 1 items" in result.output

    def test_add_items_requires_campaign(self, invoke):
        result = invoke("add-items", "+3161")

        assert result.exit_code == 2

    def test_item_get(self, invoke, seed):
        (item,) = seed(1)

        result = invoke("item-get", item.id)

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["id"] == item.id
        assert data["status"] == "unclaimed"

    def test_item_get_missing(self, invoke):
        result = invoke("item-get", "missing")

        assert result.exit_code == 2
        assert json.loads(result.output.strip().splitlines()[-1])["exit_code"] == 2

    def test_worker_items(self, invoke, engine, seed, worker):
        seed(3)
        worker("w1")
        claimed = engine.claim_up_to("w1", 2)

        result = invoke("worker-items", "w1", "--status", "claimed")

        assert result.exit_code == 0
        assert {item["id"] for item in json.loads(result.output)} == {
            item.id for item in claimed
        }

    def test_worker_items_rejects_bad_limit(self, invoke, worker):
        worker("w1")

        result = invoke("worker-items", "w1", "--limit", "0")

        assert result.exit_code == 2


class TestClaimCommands:
    """claim and distribute."""

    def test_claim(self, invoke, seed, worker):
        seed(5)
        worker("w1")

        result = invoke("claim", "w1", "3")

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["requested"] == 3
        assert data["claimed"] == 3
        assert data["remaining_quota"] == 17
        assert all(item["owner_id"] == "w1" for item in data["items"])

    def test_claim_capped_by_quota(self, invoke, seed, worker):
        seed(5)
        worker("w1", quota=2)

        result = invoke("claim", "w1", "5")

        data = json.loads(result.output)
        assert data["claimed"] == 2
        assert data["remaining_quota"] == 0

    def test_claim_strict_when_quota_used(self, invoke, seed, worker):
        seed(3)
        worker("w1", quota=1)
        assert invoke("claim", "w1", "1").exit_code == 0

        result = invoke("claim", "w1", "1", "--strict")

        assert result.exit_code == 1
        assert '"exit_code": 1' in result.output

    def test_claim_bad_timezone_names_the_setting(self, invoke):
        """Errors from engine settings do not blame the COUNT argument alone."""
        result = invoke("claim", "w1", "1", "--timezone", "Mars/Olympus_Mons")

        assert result.exit_code == 2
        error = json.loads(result.output.strip().splitlines()[-1])
        assert "Unknown time zone" in error["error"]
        assert "--timezone" in error["solution"]
        assert "--table" in error["solution"]

    def test_claim_bad_default_quota_names_the_setting(self, invoke, monkeypatch):
        monkeypatch.setenv("WORKPOOL_DEFAULT_QUOTA", "many")

        result = invoke("claim", "w1", "1")

        assert result.exit_code == 2
        error = json.loads(result.output.strip().splitlines()[-1])
        assert "WORKPOOL_DEFAULT_QUOTA" in error["solution"]

    def test_claim_unknown_worker(self, invoke, seed):
        seed(1)

        result = invoke("claim", "ghost", "1")

        assert result.exit_code == 2

    def test_claim_with_events(self, invoke, seed, worker):
        seed(2)
        worker("w1")

        result = invoke("claim", "w1", "2", "--events")

        assert result.exit_code == 0
        lines = json_lines(result.output)
        kinds = [line["kind"] for line in lines if "kind" in line]
        assert kinds == ["item.claimed", "item.claimed"]

    def test_distribute(self, invoke, seed, worker):
        seed(5)
        worker("w1")
        worker("w2")

        result = invoke("distribute", "w1", "w2", "--count", "3")

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["counts"] == {"w1": 3, "w2": 2}
        assert data["exhausted"] is True

    def test_distribute_unknown_worker(self, invoke, seed, worker, engine):
        seed(2)
        worker("w1")

        result = invoke("distribute", "w1", "ghost", "--count", "1")

        assert result.exit_code == 2
        assert engine.pool_overview().claimed == 0


class TestLifecycleCommands:
    """resolve, convert, unconvert, reset."""

    @pytest.fixture
    def claimed(self, engine, seed, worker):
        seed(1)
        worker("w1")
        (item,) = engine.claim_up_to("w1", 1)
        return item

    def test_resolve(self, invoke, claimed):
        result = invoke("resolve", claimed.id, "capable")

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["status"] == "resolved"
        assert data["outcome"] == "capable"

    def test_resolve_unclaimed_rejected(self, invoke, seed):
        (item,) = seed(1)

        result = invoke("resolve", item.id, "capable")

        assert result.exit_code == 1

    def test_resolve_wrong_owner(self, invoke, claimed, worker):
        worker("w2")

        result = invoke("resolve", claimed.id, "capable", "--worker", "w2")

        assert result.exit_code == 1

    def test_convert_and_unconvert(self, invoke, claimed):
        invoke("resolve", claimed.id, "capable")

        converted = invoke("convert", claimed.id, "--note", "signed up")
        cleared = invoke("unconvert", claimed.id)

        assert converted.exit_code == 0
        assert json.loads(converted.output)["conversion"] is True
        assert json.loads(converted.output)["conversion_note"] == "signed up"
        assert cleared.exit_code == 0
        assert json.loads(cleared.output)["conversion"] is False

    def test_convert_requires_capable(self, invoke, claimed):
        invoke("resolve", claimed.id, "not_capable")

        result = invoke("convert", claimed.id)

        assert result.exit_code == 1

    def test_reset(self, invoke, engine, claimed):
        result = invoke("reset", claimed.id)

        assert result.exit_code == 0
        assert engine.get_item(claimed.id).status is ItemStatus.UNCLAIMED

    def test_reset_missing(self, invoke):
        assert invoke("reset", "missing").exit_code == 2


class TestWorkerCommands:
    """Worker registry commands."""

    def test_ensure_and_get(self, invoke):
        created = invoke("worker-ensure", "w1", "--name", "Ada", "--contact", "ada@example.com")
        shown = invoke("worker-get", "w1")

        assert created.exit_code == 0
        assert shown.exit_code == 0
        data = json.loads(shown.output)
        assert data["display_name"] == "Ada"
        assert data["claimed_today"] == 0
        assert data["remaining_quota"] == 20

    def test_get_unknown(self, invoke):
        assert invoke("worker-get", "ghost").exit_code == 2

    def test_quota_role_and_active(self, invoke, engine, worker):
        worker("w1")

        assert invoke("worker-quota", "w1", "5").exit_code == 0
        assert invoke("worker-role", "w1", "elevated").exit_code == 0
        assert invoke("worker-deactivate", "w1").exit_code == 0

        updated = engine.get_worker("w1")
        assert updated.daily_quota == 5
        assert updated.role.value == "elevated"
        assert updated.active is False

        assert invoke("worker-activate", "w1").exit_code == 0
        assert engine.get_worker("w1").active is True

    def test_list(self, invoke, worker, engine):
        worker("w1")
        worker("w2")
        engine.deactivate_worker("w2")

        everyone = json.loads(invoke("worker-list").output)
        active = json.loads(invoke("worker-list", "--active-only").output)

        assert sorted(row["id"] for row in everyone) == ["w1", "w2"]
        assert [row["id"] for row in active] == ["w1"]


class TestReportCommands:
    """summarize, buckets, leaderboard, overview."""

    @pytest.fixture
    def activity(self, engine, seed, worker):
        seed(4)
        worker("w1")
        items = engine.claim_up_to("w1", 3)
        engine.resolve(items[0].id, "capable")
        engine.resolve(items[1].id, "not_capable")
        return items

    def test_summarize_today(self, invoke, activity):
        result = invoke("summarize")

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["start"] == "2026-10-19T00:00:00+00:00"
        assert data["end"] == "2026-10-20T00:00:00+00:00"
        assert data["total"] == 4
        assert data["claimed"] == 3
        assert data["resolved"] == 2
        assert data["capable"] == 1

    def test_summarize_explicit_window(self, invoke, activity):
        result = invoke("summarize", "--start", "2026-10-20", "--end", "2026-10-21")

        data = json.loads(result.output)
        assert data["total"] == 0

    def test_summarize_rejects_reversed_window(self, invoke):
        result = invoke("summarize", "--start", "2026-10-21", "--end", "2026-10-20")

        assert result.exit_code == 2

    def test_buckets(self, invoke, activity):
        result = invoke("buckets", "--days", "3")

        assert result.exit_code == 0
        buckets = json.loads(result.output)
        assert [bucket["label"] for bucket in buckets] == [
            "2026-10-17",
            "2026-10-18",
            "2026-10-19",
        ]
        assert sum(bucket["total"] for bucket in buckets) == 4

    def test_leaderboard(self, invoke, activity):
        result = invoke("leaderboard")

        assert result.exit_code == 0
        (row,) = json.loads(result.output)["rows"]
        assert row["worker_id"] == "w1"
        assert row["resolved"] == 2

    def test_overview(self, invoke, activity):
        result = invoke("overview")

        assert result.exit_code == 0
        assert json.loads(result.output) == {
            "total": 4,
            "unclaimed": 1,
            "claimed": 1,
            "resolved": 2,
            "by_campaign": {"oasis_outfit": 4},
        }

    def test_invalid_timezone(self, invoke):
        result = invoke("overview", "--timezone", "Mars/Olympus_Mons")

        assert result.exit_code == 2


class TestTableCommands:
    """create-table and drop-table without touching AWS."""

    def test_drop_requires_approval(self, runner, monkeypatch):
        def unexpected(*args):
            raise AssertionError("drop_table must not be called")

        monkeypatch.setattr(table_commands, "drop_table", unexpected)

        result = runner.invoke(main, ["pool", "drop-table", "--table", "workpool-test"])

        assert result.exit_code == 2
        assert "approval" in result.output

    def test_drop_with_approval(self, runner, monkeypatch):
        monkeypatch.setattr(
            table_commands, "drop_table", lambda table, region, profile: {"TableStatus": "DELETING"}
        )

        result = runner.invoke(main, ["pool", "drop-table", "--table", "workpool-test", "--approve"])

        assert result.exit_code == 0
        assert json.loads(result.output) == {"table": "workpool-test", "status": "DELETING"}

    def test_create_invalid_name(self, runner):
        result = runner.invoke(main, ["pool", "create-table", "--table", "x"])

        assert result.exit_code == 2

    def test_create_if_not_exists(self, runner, monkeypatch):
        monkeypatch.setattr(table_commands, "check_table_exists", lambda *args: True)

        result = runner.invoke(
            main, ["pool", "create-table", "--table", "workpool-test", "--if-not-exists"]
        )

        assert result.exit_code == 0
        assert json.loads(result.output)["status"] == "EXISTS"

    def test_create_existing(self, runner, monkeypatch):
        def exists(*args):
            raise TableAlreadyExistsError("Table 'workpool-test' already exists")

        monkeypatch.setattr(table_commands, "create_table", exists)

        result = runner.invoke(main, ["pool", "create-table", "--table", "workpool-test"])

        assert result.exit_code == 1
