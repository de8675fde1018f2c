"""Tests for rank ordering and the core entities it works on."""

from datetime import datetime, timezone

import pytest

from rank_sync.core.entities import RankSnapshot, SyncRunReport, TrackedAccount, make_riot_slug
from rank_sync.core.enums import SyncRunStatus, Tier
from rank_sync.core.ranking import RANKING_VERSION, best_snapshot, rank_sort_key
from tests.factories import make_league_entry

NOW = datetime(2024, 9, 1, 12, 0, tzinfo=timezone.utc)


def snapshot(tier, division, lp, account_id=1):
    return RankSnapshot(
        account_id=account_id,
        lp=lp,
        wins=0,
        losses=0,
        tier=tier,
        division=division,
        profile_icon_id=None,
        fetched_at=NOW,
        recorded_at=NOW,
    )


class TestRankSortKey:
    def test_ranking_version(self):
        assert RANKING_VERSION == 1

    def test_tier_beats_division_and_lp(self):
        assert rank_sort_key("platinum", "IV", 0) < rank_sort_key("gold", "I", 99)

    def test_division_beats_lp(self):
        assert rank_sort_key("gold", "I", 0) < rank_sort_key("gold", "II", 99)

    def test_higher_lp_first(self):
        assert rank_sort_key("gold", "II", 80) < rank_sort_key("gold", "II", 20)

    def test_tier_is_case_insensitive(self):
        assert rank_sort_key("GOLD", "II", 50) == rank_sort_key("gold", "II", 50)

    def test_apex_tiers(self):
        keys = [rank_sort_key(t, "I", 0) for t in ("challenger", "grandmaster", "master", "diamond")]
        assert keys == sorted(keys)

    @pytest.mark.parametrize("tier", [None, "", "wood"])
    def test_unranked_sorts_last(self, tier):
        assert rank_sort_key("iron", "IV", 0) < rank_sort_key(tier, None, None)

    def test_missing_division_sorts_after_iv(self):
        assert rank_sort_key("gold", "IV", 0) < rank_sort_key("gold", None, 0)

    def test_best_snapshot(self):
        snapshots = [
            snapshot("gold", "II", 50),
            snapshot("platinum", "IV", 10),
            snapshot("platinum", "IV", 40),
            snapshot("silver", "I", 99),
        ]
        best = best_snapshot(snapshots)
        assert (best.tier, best.division, best.lp) == ("platinum", "IV", 40)

    def test_best_snapshot_empty(self):
        assert best_snapshot([]) is None


class TestEntities:
    def test_slug_lowercases_game_name_only(self):
        assert make_riot_slug("FooBar", "EUW") == "foobar-EUW"

    def test_tracked_account_riot_id(self):
        account = TrackedAccount(player_id=1, puuid="abcdefghijkl", game_name="Foo", tag_line="NA1")
        assert account.riot_id == "Foo#NA1"
        assert account.slug == "foo-NA1"
        assert account.short_puuid.startswith("abcdefgh")

    def test_snapshot_normalizes_tier(self):
        assert snapshot("GOLD", "II", 50).tier == Tier.GOLD.value

    def test_snapshot_rejects_unknown_tier(self):
        with pytest.raises(ValueError, match="Unknown tier"):
            snapshot("WOOD", "II", 50)

    @pytest.mark.parametrize("field", ["lp", "wins", "losses"])
    def test_snapshot_rejects_negative_counts(self, field):
        values = {"lp": 0, "wins": 0, "losses": 0}
        values[field] = -1
        with pytest.raises(ValueError, match=field):
            RankSnapshot(
                account_id=1,
                tier="gold",
                division="II",
                profile_icon_id=None,
                fetched_at=NOW,
                recorded_at=NOW,
                **values,
            )

    def test_observe_sets_both_timestamps(self):
        entry = make_league_entry(tier="DIAMOND", division="III", league_points=12, wins=40, losses=35)

        result = RankSnapshot.observe(account_id=7, entry=entry, profile_icon_id=29, observed_at=NOW)

        assert result.tier == "diamond"
        assert result.division == "III"
        assert result.fetched_at == result.recorded_at == NOW
        assert result.games_played == 75

    def test_collision_report(self):
        report = SyncRunReport.collision()
        assert report.status == SyncRunStatus.COLLISION
        assert report.duration_seconds == 0
        assert "COLLISION" in str(report)
