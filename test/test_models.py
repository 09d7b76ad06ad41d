import pytest

from image_ranker.models import (Candidate, DiffResult, HighlightColor, SensitivityMode,
                                 placeholder_results)

from helpers import make_image


def test_sensitivity_keys_and_labels():
    assert [m.key for m in SensitivityMode] == ["all", "colors", "aa"]
    assert SensitivityMode.from_key("aa") is SensitivityMode.IGNORE_ANTIALIASING
    assert SensitivityMode.IGNORE_COLORS.label == "Ignore colors"
    with pytest.raises(ValueError):
        SensitivityMode.from_key("fuzzy")


def test_highlight_color_parsing():
    assert HighlightColor.from_string("255, 0, 255").as_tuple() == (255, 0, 255)
    assert HighlightColor.from_string("#00ff80").as_tuple() == (0, 255, 128)
    with pytest.raises(ValueError):
        HighlightColor.from_string("1,2")
    with pytest.raises(ValueError):
        HighlightColor(256, 0, 0)


def test_diff_result_range():
    assert DiffResult(0.0).available
    assert not DiffResult.unavailable().available
    with pytest.raises(ValueError):
        DiffResult(100.5)
    with pytest.raises(ValueError):
        DiffResult(-1.0)


def test_new_candidate_has_placeholders_for_every_mode():
    c = Candidate(make_image("x.png"))
    assert c.results_by_mode == placeholder_results()
    assert set(c.results_by_mode) == set(SensitivityMode)
    assert c.name == "x.png"
    assert not c.degraded


def test_candidate_ids_are_unique():
    image = make_image("same.png")
    assert Candidate(image).id != Candidate(image).id
