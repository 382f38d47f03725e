"""Unit tests for preset recommendation scoring."""

from datetime import datetime, timedelta, timezone

import pytest

from src.core.models import DisplayMode, ModelRef, Preset, PresetConfig
from src.utils.template_matcher import (
    REASON_COMPLETE,
    REASON_DEFAULT,
    REASON_FREQUENT,
    REASON_POPULAR,
    REASON_RECENT,
    get_recommended_presets,
    rank_presets,
    score_preset,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_preset(
    preset_id="p1",
    use_count=0,
    days_ago=30.0,
    style="",
    scene=None,
    model_ref=None,
    custom_prompt=None,
):
    return Preset(
        id=preset_id,
        name=f"Preset {preset_id}",
        user_id="u1",
        created_at=NOW - timedelta(days=60),
        updated_at=NOW - timedelta(days=days_ago),
        use_count=use_count,
        config=PresetConfig(
            type=DisplayMode.MODEL,
            style=style,
            scene=scene,
            model_ref=model_ref,
            custom_prompt=custom_prompt,
        ),
    )


class TestScorePreset:
    """Tests for score_preset."""

    def test_base_score_only(self):
        """Test an old, unused, bare preset scores the base with a generic reason."""
        match = score_preset(make_preset(), now=NOW)

        assert match.score == 20
        assert match.reasons == [REASON_DEFAULT]

    def test_usage_bonus_capped(self):
        """Test usage adds five per use up to thirty."""
        assert score_preset(make_preset(use_count=2), now=NOW).score == 30
        assert score_preset(make_preset(use_count=6), now=NOW).score == 50
        assert score_preset(make_preset(use_count=60), now=NOW).score == 50

    def test_frequent_reason_threshold(self):
        """Test the frequently used tag appears from three uses."""
        assert REASON_FREQUENT not in score_preset(make_preset(use_count=2), now=NOW).reasons
        assert REASON_FREQUENT in score_preset(make_preset(use_count=3), now=NOW).reasons

    def test_recency_bonus(self):
        """Test recency decays by two points per day inside the window."""
        assert score_preset(make_preset(days_ago=0), now=NOW).score == 40
        assert score_preset(make_preset(days_ago=3), now=NOW).score == 34
        assert score_preset(make_preset(days_ago=7), now=NOW).score == 20

    def test_recent_reason_within_one_day(self):
        """Test the recently used tag for updates under a day old."""
        assert score_preset(make_preset(days_ago=0.5), now=NOW).reasons == [REASON_RECENT]
        assert REASON_RECENT not in score_preset(make_preset(days_ago=2), now=NOW).reasons

    def test_future_update_treated_as_now(self):
        """Test that clock skew never pushes the recency bonus above its cap."""
        assert score_preset(make_preset(days_ago=-2), now=NOW).score == 40

    def test_rounds_half_up(self):
        """Test that x.5 scores round up."""
        # 20 base + (20 - 1.5) recency = 38.5
        assert score_preset(make_preset(days_ago=0.75), now=NOW).score == 39

    def test_completeness_bonus(self):
        """Test five points per filled field and the complete tag at ten."""
        one = score_preset(make_preset(scene="公园绿地"), now=NOW)
        two = score_preset(make_preset(scene="公园绿地", custom_prompt="soft light"), now=NOW)
        three = score_preset(
            make_preset(
                scene="公园绿地",
                custom_prompt="soft light",
                model_ref=ModelRef(type="library", model_id="m1"),
            ),
            now=NOW,
        )

        assert one.score == 25
        assert REASON_COMPLETE not in one.reasons
        assert two.score == 30
        assert REASON_COMPLETE in two.reasons
        assert three.score == 35

    def test_empty_strings_not_counted(self):
        """Test that blank scene and custom text add nothing."""
        assert score_preset(make_preset(scene="", custom_prompt=""), now=NOW).score == 20

    def test_popular_style(self):
        """Test the flat popularity bonus for trending style keywords."""
        match = score_preset(make_preset(style="韩系童装"), now=NOW)

        assert match.score == 35
        assert match.reasons == [REASON_POPULAR]

    def test_unpopular_style(self):
        """Test that other styles get no popularity bonus."""
        assert score_preset(make_preset(style="森系"), now=NOW).score == 20

    def test_everything_capped_at_100(self):
        """Test the maximum combination reaches exactly 100."""
        match = score_preset(
            make_preset(
                use_count=50,
                days_ago=0,
                style="简约",
                scene="奶油风室内",
                custom_prompt="x",
                model_ref=ModelRef(type="custom", image_url="https://example.com/m.png"),
            ),
            now=NOW,
        )

        assert match.score == 100
        assert match.reasons == [REASON_FREQUENT, REASON_RECENT, REASON_COMPLETE, REASON_POPULAR]

    @pytest.mark.parametrize("use_count", [0, 1, 3, 7, 1000])
    @pytest.mark.parametrize("days_ago", [-10, 0, 0.3, 1, 6.99, 7, 365])
    @pytest.mark.parametrize("complete", [False, True])
    def test_score_bounds(self, use_count, days_ago, complete):
        """Test that every score is an integer in [0, 100]."""
        extras = {}
        if complete:
            extras = {
                "scene": "公园绿地",
                "custom_prompt": "x",
                "model_ref": ModelRef(type="library", model_id="m1"),
                "style": "时尚",
            }

        match = score_preset(make_preset(use_count=use_count, days_ago=days_ago, **extras), now=NOW)

        assert isinstance(match.score, int)
        assert 0 <= match.score <= 100
        assert match.reasons

    def test_naive_now_assumed_utc(self):
        """Test that a naive reference time is accepted."""
        match = score_preset(make_preset(days_ago=0), now=NOW.replace(tzinfo=None))

        assert match.score == 40


class TestRankPresets:
    """Tests for rank_presets and get_recommended_presets."""

    def test_empty_list(self):
        """Test that no presets rank to an empty list."""
        assert rank_presets([], now=NOW) == []

    def test_higher_use_count_first(self):
        """Test that a preset used five times beats an identical unused one."""
        unused = make_preset("unused", use_count=0)
        used = make_preset("used", use_count=5)

        ranked = rank_presets([unused, used], now=NOW)

        assert [m.preset.id for m in ranked] == ["used", "unused"]

    def test_ties_keep_input_order(self):
        """Test that equal scores keep their original order."""
        presets = [make_preset(f"p{i}") for i in range(4)]

        ranked = rank_presets(presets, now=NOW)

        assert [m.preset.id for m in ranked] == ["p0", "p1", "p2", "p3"]

    def test_descending_scores(self):
        """Test that results are sorted by descending score."""
        presets = [
            make_preset("a"),
            make_preset("b", use_count=10, days_ago=0),
            make_preset("c", style="日系"),
        ]

        ranked = rank_presets(presets, now=NOW)

        assert [m.preset.id for m in ranked] == ["b", "c", "a"]
        assert [m.score for m in ranked] == [70, 35, 20]

    def test_context_hints_do_not_change_ranking(self):
        """Test that context hints are accepted but ignored."""
        presets = [make_preset("a"), make_preset("b", use_count=1)]

        plain = rank_presets(presets, now=NOW)
        hinted = rank_presets(presets, context_hints={"images": ["data:..."]}, now=NOW)

        assert [(m.preset.id, m.score) for m in plain] == [(m.preset.id, m.score) for m in hinted]

    def test_get_recommended_presets_count(self):
        """Test that only the top N matches are returned."""
        presets = [make_preset(f"p{i}", use_count=i) for i in range(6)]

        top = get_recommended_presets(presets, count=3, now=NOW)

        assert [m.preset.id for m in top] == ["p5", "p4", "p3"]

    def test_get_recommended_presets_default_count(self):
        """Test the default of three recommendations."""
        presets = [make_preset(f"p{i}") for i in range(5)]

        assert len(get_recommended_presets(presets, now=NOW)) == 3
