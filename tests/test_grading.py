import pytest

from mbkm.services.grading import (
    NO_GRADE,
    GradeWeights,
    calculate_final_grade,
    grade_letter,
)

EQUAL = GradeWeights(company=1, lecturer=1, examiner=1)


def test_zero_weights_give_no_result():
    weights = GradeWeights(company=0, lecturer=0, examiner=0)
    assert calculate_final_grade(90, 90, 90, weights) is None
    assert calculate_final_grade(None, None, None, weights) is None


def test_equal_weights_all_ninety_is_a():
    result = calculate_final_grade(90, 90, 90, EQUAL)
    assert result.total_score == pytest.approx(90)
    assert result.grade == "A"
    assert result.company_score == pytest.approx(30)


def test_equal_weights_all_sixty_is_c():
    result = calculate_final_grade(60, 60, 60, EQUAL)
    assert result.total_score == pytest.approx(60)
    assert result.grade == "C"


def test_weights_need_not_sum_to_hundred():
    weights = GradeWeights(company=2, lecturer=1, examiner=1)
    result = calculate_final_grade(100, 60, 60, weights)
    assert result.company_score == pytest.approx(50)
    assert result.lecturer_score == pytest.approx(15)
    assert result.examiner_score == pytest.approx(15)
    assert result.total_score == pytest.approx(80)
    assert result.grade == "B"


@pytest.mark.parametrize("scores", [
    (None, 80, 80),
    (80, None, 80),
    (80, 80, None),
])
def test_missing_component_keeps_sentinel(scores):
    result = calculate_final_grade(*scores, EQUAL)
    assert result.grade == NO_GRADE
    # absent score contributes nothing
    assert result.total_score == pytest.approx(160 / 3)


def test_zero_score_counts_as_submitted():
    result = calculate_final_grade(0, 0, 0, EQUAL)
    assert result.total_score == 0
    assert result.grade == "E"


@pytest.mark.parametrize("score, letter", [
    (100, "A"), (85, "A"), (84.99, "B"), (70, "B"), (69.9, "C"),
    (55, "C"), (54, "D"), (40, "D"), (39.99, "E"), (0, "E"),
])
def test_grade_letter_boundaries(score, letter):
    assert grade_letter(score) == letter


def test_weights_from_row_treats_null_as_zero():
    weights = GradeWeights.from_row({
        "bobot_nilai_perusahaan": 40,
        "bobot_nilai_pembimbing": None,
        "bobot_nilai_penguji": "30",
    })
    assert weights == GradeWeights(company=40.0, lecturer=0.0, examiner=30.0)
    assert weights.total == 70


def test_breakdown_dict_keys():
    data = calculate_final_grade(90, 80, 70, EQUAL).to_dict()
    assert set(data) == {"company_score", "lecturer_score", "examiner_score", "total_score", "grade"}
    assert data["grade"] == "B"
