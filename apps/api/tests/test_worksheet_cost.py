import pytest

from services.credits import compute_worksheet_cost
from services.worksheets import WorksheetRequest


def test_base_cost_covers_first_ten_questions():
    assert compute_worksheet_cost(10, "5") == 1
    assert compute_worksheet_cost(1, "5") == 1


def test_each_extra_block_of_ten_questions_adds_one_credit():
    assert compute_worksheet_cost(11, "5") == 2
    assert compute_worksheet_cost(20, "5") == 2
    assert compute_worksheet_cost(21, "5") == 3
    assert compute_worksheet_cost(50, "8") == 5


def test_low_grades_carry_image_surcharge():
    assert compute_worksheet_cost(10, "K") == 2
    assert compute_worksheet_cost(10, "k") == 2
    assert compute_worksheet_cost(10, "1") == 2
    assert compute_worksheet_cost(10, "2") == 2
    assert compute_worksheet_cost(10, "3") == 1
    assert compute_worksheet_cost(25, "K") == 4


def test_unknown_grade_skips_surcharge():
    assert compute_worksheet_cost(10, "college") == 1
    assert compute_worksheet_cost(10, "") == 1


def test_defaults_match_standard_worksheet():
    assert compute_worksheet_cost() == 1


@pytest.mark.parametrize("question_count", [0, 1, 9, 10, 11, 37, 100, 1000])
@pytest.mark.parametrize("grade_level", ["K", "1", "2", "5", "12", "unknown"])
def test_cost_is_always_at_least_one(question_count, grade_level):
    assert compute_worksheet_cost(question_count, grade_level) >= 1


def test_worksheet_request_applies_defaults():
    request = WorksheetRequest(topic="  Fractions  ")

    assert request.topic == "Fractions"
    assert request.subject == "general"
    assert request.grade_level == "5"
    assert request.difficulty == "medium"
    assert request.question_count == 10
    assert request.question_types == ["multiple_choice"]
    assert request.language == "en"
    assert request.credit_cost == 1


def test_worksheet_request_normalizes_kindergarten_and_prices_it():
    request = WorksheetRequest(topic="Shapes", grade_level="k", question_count=15)

    assert request.grade_level == "K"
    assert request.credit_cost == 3


def test_worksheet_request_rejects_blank_topic_and_unknown_question_type():
    with pytest.raises(ValueError):
        WorksheetRequest(topic="   ")
    with pytest.raises(ValueError):
        WorksheetRequest(topic="Plants", question_types=["crossword"])
    with pytest.raises(ValueError):
        WorksheetRequest(topic="Plants", grade_level="13")
