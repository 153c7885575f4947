# Standard Library
import math

# PIP3 modules
import pytest

# Local modules
import survey_summarizer


#============================================


def _percent(count: int, total: int) -> str:
    return f"{round(count / total * 100, 2):.2f}%"


#============================================


def test_multi_select_cells_are_counted_per_token() -> None:
    rows = [{"Color": "Red, Blue"}, {"Color": "red"}, {"Color": "BLUE"}]
    groups = survey_summarizer.find_related_questions(["Color"])
    questions = survey_summarizer.build_preview_questions(rows, groups)

    assert len(questions) == 1
    question = questions[0]
    assert question["question"] == "Color"
    assert question["total_respondents"] == 3
    assert question["answers"] == [
        {"text": "RED", "count": 2, "percentage": "66.67%"},
        {"text": "BLUE", "count": 2, "percentage": "66.67%"},
    ]


def test_separate_questions_each_at_full_percentage() -> None:
    rows = [
        {"Q1 (RU)": "A", "Q1 (KZ)": "B"},
        {"Q1 (RU)": "A", "Q1 (KZ)": "B"},
    ]
    questions = survey_summarizer.prepare_preview(rows)

    assert [q["question"] for q in questions] == ["Q1 (RU)", "Q1 (KZ)"]
    assert questions[0]["answers"] == [{"text": "A", "count": 2, "percentage": "100.00%"}]
    assert questions[1]["answers"] == [{"text": "B", "count": 2, "percentage": "100.00%"}]


def test_grouped_columns_share_one_counter() -> None:
    rows = [
        {"Fruit": "Apple", "Fruit [Other]": "Kiwi"},
        {"Fruit": "apple", "Fruit [Other]": math.nan},
    ]
    questions = survey_summarizer.prepare_preview(rows)

    assert len(questions) == 1
    counts = {a["text"]: a["count"] for a in questions[0]["answers"]}
    assert counts == {"APPLE": 2, "KIWI": 1}


def test_missing_cells_are_skipped() -> None:
    rows = [{"Age": "30"}, {}, {"Age": None}]
    groups = {"Age": ["Age"]}
    summary = survey_summarizer.tally_answers(rows, groups)
    assert summary == {"Age": {"30": 1}}


def test_ties_keep_first_seen_order() -> None:
    rows = [{"Q": "b"}, {"Q": "a"}, {"Q": "c"}, {"Q": "c"}]
    questions = survey_summarizer.prepare_preview(rows)
    texts = [a["text"] for a in questions[0]["answers"]]
    assert texts == ["C", "B", "A"]


def test_total_is_row_count_not_answer_count() -> None:
    rows = [{"Q": "a, b, c"}, {"Q": ""}, {"Q": "a"}, {"Q": "b"}]
    questions = survey_summarizer.prepare_preview(rows)
    question = questions[0]

    assert question["total_respondents"] == 4
    for answer in question["answers"]:
        assert answer["percentage"] == _percent(answer["count"], 4)
    assert sum(a["count"] for a in question["answers"]) <= 4 * 3


def test_prepare_preview_assigns_languages() -> None:
    rows = [{"Сколько детей": "2", "Бала саны": "2", "How many children": "2"}]
    questions = survey_summarizer.prepare_preview(rows)
    languages = [q["language"] for q in questions]
    assert languages == ["russian", "kazakh", "unknown"]
    assert all(q["combined_with"] == [] for q in questions)
    assert all("original_answers" not in q for q in questions)


def test_prepare_preview_rejects_empty_input() -> None:
    with pytest.raises(ValueError, match="No data found"):
        survey_summarizer.prepare_preview([])


def test_format_percentage() -> None:
    assert survey_summarizer.format_percentage(1, 3) == "33.33%"
    assert survey_summarizer.format_percentage(3, 5) == "60.00%"
    assert survey_summarizer.format_percentage(0, 0) == "0.00%"
