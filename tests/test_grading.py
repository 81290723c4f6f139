import pytest

from grading import BAD_COLOR, GOOD_COLOR, WARN_COLOR, average_score, grade, overall_grade, score_color
from status import TOTAL_STEPS, project_status


@pytest.mark.parametrize(
    "score,expected",
    [(100, "A"), (90, "A"), (89.9, "B"), (80, "B"), (70, "C"), (69, "D"), (50, "D"), (49, "F"), (0, "F")],
)
def test_grade_thresholds(score, expected):
    assert grade(score) == expected


def test_grade_does_not_clamp_out_of_range_scores():
    assert grade(120) == "A"
    assert grade(-5) == "F"


def test_overall_grade_averages_four_scores():
    scores = {"performance": 100, "seo": 100, "security": 0, "accessibility": 100}
    assert average_score(scores) == 75
    assert overall_grade(scores) == "C"


def test_overall_grade_treats_missing_scores_as_zero():
    assert overall_grade({"performance": 100}) == "F"


def test_score_color_bands():
    assert score_color(80) == GOOD_COLOR
    assert score_color(79) == WARN_COLOR
    assert score_color(50) == WARN_COLOR
    assert score_color(49) == BAD_COLOR


def test_project_status_progress_steps():
    view = project_status("checking_links")
    assert view["step"] == 3
    assert view["total_steps"] == TOTAL_STEPS
    assert not view["is_completed"]

    completed = project_status("completed")
    assert completed["step"] == 7
    assert completed["is_completed"]

    failed = project_status("failed")
    assert failed["step"] == -1
    assert failed["is_failed"]


def test_project_status_defaults():
    assert project_status(None)["status"] == "queued"
    unknown = project_status("paused")
    assert unknown["step"] == 0
    assert unknown["label"] == "paused"


def test_overall_grade_extremes():
    assert overall_grade({"performance": 90, "seo": 90, "security": 90, "accessibility": 90}) == "A"
    assert overall_grade({"performance": 0, "seo": 0, "security": 0, "accessibility": 0}) == "F"


def test_grade_is_monotonic_over_whole_range():
    order = "FDCBA"
    grades = [grade(score) for score in range(101)]
    assert all(g in order for g in grades)
    assert all(order.index(a) <= order.index(b) for a, b in zip(grades, grades[1:]))
    assert grades[0] == "F"
    assert grades[100] == "A"
