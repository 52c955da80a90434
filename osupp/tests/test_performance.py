from datetime import timedelta
import math

from hypothesis import given, settings, strategies as st
import pytest

import osupp.example_data.beatmaps
from osupp import (
    Beatmap,
    Circle,
    DifficultySettings,
    GameMode,
    HitResultPriority,
    Mod,
    Position,
    ScoreParams,
    ScoreState,
    calculate_difficulty,
    calculate_performance,
)
from osupp.strategies import beatmaps, mods


@pytest.fixture
def beatmap():
    return osupp.example_data.beatmaps.strain_study()


def _jump_map(n_objects, interval=200):
    corners = [
        Position(100, 100),
        Position(400, 100),
        Position(400, 250),
        Position(100, 250),
    ]
    return Beatmap(
        mode=GameMode.standard,
        hp_drain_rate=5,
        circle_size=4,
        overall_difficulty=8,
        approach_rate=9,
        hit_objects=[
            Circle(corners[n % 4], timedelta(milliseconds=1000 + interval * n))
            for n in range(n_objects)
        ],
    )


@pytest.fixture(scope='module')
def long_map_attributes():
    return calculate_difficulty(_jump_map(500))


def test_perfect_play(beatmap):
    attributes = calculate_difficulty(beatmap)
    performance = calculate_performance(attributes)

    assert performance.pp > 0
    assert performance.aim_pp > 0
    assert performance.speed_pp > 0
    assert performance.accuracy_pp > 0
    assert performance.flashlight_pp == 0
    assert performance.effective_miss_count == 0
    assert performance.difficulty == attributes
    assert performance.stars == attributes.stars
    assert performance.max_combo == beatmap.max_combo


def test_default_score_is_a_perfect_play(beatmap):
    attributes = calculate_difficulty(beatmap)
    assert calculate_performance(attributes) == calculate_performance(
        attributes,
        ScoreParams(accuracy=100, misses=0, combo=beatmap.max_combo),
    )


def test_monotonic_in_accuracy(long_map_attributes):
    pps = [
        calculate_performance(
            long_map_attributes,
            ScoreParams(accuracy=accuracy),
        ).pp
        for accuracy in range(80, 101)
    ]
    assert pps == sorted(pps)
    assert pps[0] < pps[-1]


def test_monotonic_in_misses(long_map_attributes):
    pps = [
        calculate_performance(
            long_map_attributes,
            ScoreParams(accuracy=95, misses=misses),
        ).pp
        for misses in range(30)
    ]
    assert pps == sorted(pps, reverse=True)
    assert pps[-1] < pps[0]


def test_monotonic_in_combo(beatmap):
    attributes = calculate_difficulty(beatmap)
    pps = [
        calculate_performance(attributes, ScoreParams(combo=combo)).pp
        for combo in range(attributes.max_combo + 1)
    ]
    assert pps == sorted(pps)
    assert pps[0] < pps[-1]


def test_combo_is_clamped(beatmap):
    attributes = calculate_difficulty(beatmap)
    assert calculate_performance(
        attributes,
        ScoreParams(combo=10 ** 6),
    ) == calculate_performance(attributes)

    # misses take away from the highest possible combo
    assert calculate_performance(
        attributes,
        ScoreParams(misses=3, combo=10 ** 6),
    ) == calculate_performance(attributes, ScoreParams(misses=3))


def test_empty_map_awards_nothing():
    attributes = calculate_difficulty(_jump_map(0))
    performance = calculate_performance(attributes)
    assert performance.pp == 0
    assert performance.aim_pp == 0
    assert performance.speed_pp == 0
    assert performance.accuracy_pp == 0


def test_hidden_hard_rock_single_object():
    beatmap = _jump_map(1)
    nomod = calculate_performance(calculate_difficulty(beatmap))
    hdhr = calculate_performance(
        calculate_difficulty(
            beatmap,
            DifficultySettings(mods=Mod.hidden | Mod.hard_rock),
        ),
    )

    assert nomod.stars == 0
    assert hdhr.stars == 0
    assert math.isfinite(hdhr.pp)

    # hard rock raises the approach rate to 10, where hidden is worth 2%
    assert hdhr.aim_pp == pytest.approx(nomod.aim_pp * 1.02)
    assert hdhr.speed_pp == pytest.approx(nomod.speed_pp * 1.02)
    # and the overall difficulty from 8 to 10
    assert hdhr.accuracy_pp == pytest.approx(
        nomod.accuracy_pp * 1.02 * (10 / 8) ** 2,
    )
    assert hdhr.pp > nomod.pp


def test_hidden_rewards_low_approach_rate(long_map_attributes):
    low_ar = long_map_attributes._replace(approach_rate=5)
    plain = calculate_performance(low_ar, mods=0)
    hidden = calculate_performance(low_ar, mods=Mod.hidden)
    assert hidden.aim_pp > plain.aim_pp
    assert hidden.speed_pp > plain.speed_pp


def test_high_approach_rate_bonus(long_map_attributes):
    normal = calculate_performance(long_map_attributes)
    high = calculate_performance(
        long_map_attributes._replace(approach_rate=11),
    )
    assert high.aim_pp == pytest.approx(
        normal.aim_pp * (1 + 0.3 * (11 - 10.33)),
    )
    assert high.speed_pp == normal.speed_pp


def test_mod_multipliers(long_map_attributes):
    nomod = calculate_performance(long_map_attributes)

    no_fail = calculate_performance(long_map_attributes, mods=Mod.no_fail)
    assert no_fail.pp == pytest.approx(nomod.pp * 0.9)

    spun_out = calculate_performance(long_map_attributes, mods=Mod.spun_out)
    assert spun_out.pp == pytest.approx(nomod.pp * 0.95)

    relax = calculate_performance(long_map_attributes, mods=Mod.relax)
    assert relax.speed_pp == 0
    assert relax.aim_pp == pytest.approx(nomod.aim_pp * 0.7)
    assert relax.pp < nomod.pp


def test_flashlight(beatmap):
    attributes = calculate_difficulty(
        beatmap,
        DifficultySettings(mods=Mod.flashlight),
    )
    performance = calculate_performance(attributes)
    assert performance.flashlight_pp > 0
    assert calculate_performance(attributes, mods=0).flashlight_pp == 0


def test_slider_nerf(beatmap):
    attributes = calculate_difficulty(beatmap)._replace(slider_factor=0.5)
    full = calculate_performance(attributes)
    dropped = calculate_performance(
        attributes,
        ScoreParams(n300=25, n100=2, combo=attributes.max_combo - 2),
    )
    assert dropped.aim_pp < full.aim_pp


def test_explicit_counts_win_over_accuracy(beatmap):
    attributes = calculate_difficulty(beatmap)
    counts = ScoreParams(n300=20, n100=5, n50=1, misses=1)
    assert calculate_performance(
        attributes,
        counts._replace(accuracy=10.0),
    ) == calculate_performance(attributes, counts)


def test_score_state(beatmap):
    attributes = calculate_difficulty(beatmap)
    state = ScoreState.from_accuracy(beatmap, 95, misses=1)
    from_state = calculate_performance(attributes, state)
    from_counts = calculate_performance(
        attributes,
        ScoreParams(
            n300=state.n300,
            n100=state.n100,
            n50=state.n50,
            misses=state.misses,
            combo=state.max_combo,
        ),
    )
    assert from_state == from_counts
    assert from_state.effective_miss_count == 1


@pytest.mark.parametrize('accuracy', [30, 90, 97.5])
def test_worst_case_reaches_the_same_counts(long_map_attributes, accuracy):
    # both walk the same chain of single hit moves to the first
    # distribution at or above the target
    best = calculate_performance(
        long_map_attributes,
        ScoreParams(accuracy=accuracy),
    )
    worst = calculate_performance(
        long_map_attributes,
        ScoreParams(
            accuracy=accuracy,
            priority=HitResultPriority.worst_case,
        ),
    )
    assert worst == best


def test_passed_objects(long_map_attributes):
    partial = calculate_performance(
        long_map_attributes,
        ScoreParams(passed_objects=100),
    )
    full = calculate_performance(long_map_attributes)
    assert 0 < partial.pp < full.pp


def test_non_finite_difficulty_falls_back(long_map_attributes, caplog):
    attributes = long_map_attributes._replace(
        aim_strain=float('inf'),
        stars=4.0,
    )
    performance = calculate_performance(
        attributes,
        ScoreParams(accuracy=95, misses=2),
    )

    expected = 4 ** 2.5 * 1.5 * 0.95 * 0.97 ** 2
    assert performance.pp == pytest.approx(expected)
    assert performance.aim_pp == pytest.approx(expected * 0.6)
    assert performance.speed_pp == pytest.approx(expected * 0.3)
    assert performance.accuracy_pp == pytest.approx(expected * 0.1)
    assert 'falling back' in caplog.text


def test_fallback_is_capped(long_map_attributes):
    attributes = long_map_attributes._replace(
        aim_strain=float('inf'),
        stars=1000.0,
    )
    assert calculate_performance(attributes).pp == 1000

    attributes = attributes._replace(stars=float('nan'))
    assert calculate_performance(attributes).pp == 0


def test_invalid_attributes():
    with pytest.raises(ValueError):
        calculate_performance(None)

    with pytest.raises(TypeError):
        calculate_performance(ScoreState())


def test_score_params_clamping():
    params = ScoreParams(accuracy=120, misses=-2, combo=-5, n300=-1)
    assert params.accuracy == 100
    assert params.misses == 0
    assert params.combo == 0
    assert params.n300 == 0
    assert params.has_hit_counts
    assert not ScoreParams(accuracy=99).has_hit_counts


@given(
    beatmaps(min_objects=1, max_objects=40),
    mods(),
    st.floats(min_value=0, max_value=100),
    st.integers(min_value=0, max_value=50),
)
@settings(deadline=None, max_examples=50)
def test_pp_is_finite_and_non_negative(beatmap, mod_mask, accuracy, misses):
    attributes = calculate_difficulty(
        beatmap,
        DifficultySettings(mods=mod_mask),
    )
    performance = calculate_performance(
        attributes,
        ScoreParams(accuracy=accuracy, misses=misses),
    )
    assert math.isfinite(performance.pp)
    assert performance.pp >= 0
