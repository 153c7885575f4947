# PIP3 modules
import pytest

# Local modules
import survey_summarizer


#============================================


def test_detect_language_examples() -> None:
    assert survey_summarizer.detect_language("Бала саны") == "kazakh"
    assert survey_summarizer.detect_language("Сколько детей") == "russian"
    assert survey_summarizer.detect_language("How many children") == "unknown"


def test_kazakh_letters_win_in_either_case() -> None:
    assert survey_summarizer.detect_language("ҚАЛА") == "kazakh"
    assert survey_summarizer.detect_language("Город Өскемен") == "kazakh"


def test_detect_language_handles_missing_text() -> None:
    assert survey_summarizer.detect_language(None) == "unknown"
    assert survey_summarizer.detect_language("") == "unknown"


def test_language_is_not_redetected_after_edit() -> None:
    questions = survey_summarizer.assign_languages([
        {"question": "Сколько детей", "answers": [], "total_respondents": 1},
    ])
    questions[0]["question"] = "How many children"
    assert questions[0]["language"] == "russian"


def test_set_question_language() -> None:
    question = {"question": "Age", "language": "unknown"}
    survey_summarizer.set_question_language(question, "kazakh")
    assert question["language"] == "kazakh"

    with pytest.raises(ValueError):
        survey_summarizer.set_question_language(question, "english")


def test_count_languages() -> None:
    questions = [
        {"language": "russian"},
        {"language": "russian"},
        {"language": "kazakh"},
        {},
    ]
    counts = survey_summarizer.count_languages(questions)
    assert counts == {"russian": 2, "kazakh": 1, "unknown": 1}
