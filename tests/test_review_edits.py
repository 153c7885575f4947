# Local modules
import survey_summarizer


#============================================


def _question(answers: list[tuple[str, int]], total: int = 10) -> dict:
    return {
        "question": "Q",
        "answers": [survey_summarizer.make_answer(t, c, total) for t, c in answers],
        "total_respondents": total,
        "language": "unknown",
        "combined_with": [],
    }


def _texts(question: dict) -> list[str]:
    return [a["text"] for a in question["answers"]]


#============================================


def test_edit_answer_text_keeps_statistics() -> None:
    question = _question([("RED", 4)])
    survey_summarizer.edit_answer_text(question, 0, "Red colour")
    assert question["answers"] == [{"text": "Red colour", "count": 4, "percentage": "40.00%"}]


def test_delete_answer() -> None:
    question = _question([("A", 3), ("B", 2), ("C", 1)])
    survey_summarizer.delete_answer(question, 1)
    assert _texts(question) == ["A", "C"]


def test_add_answer_starts_at_zero() -> None:
    question = _question([("A", 3)])
    survey_summarizer.add_answer(question, "Other")
    survey_summarizer.add_answer(question, "   ")
    assert question["answers"][-1] == {"text": "Other", "count": 0, "percentage": "0.00%"}
    assert len(question["answers"]) == 2


def test_invalid_answer_index_is_ignored() -> None:
    question = _question([("A", 3)])
    survey_summarizer.edit_answer_text(question, 4, "X")
    survey_summarizer.delete_answer(question, -1)
    survey_summarizer.merge_answers(question, 0, 0)
    assert _texts(question) == ["A"]


def test_merge_answers_restores_comma() -> None:
    question = _question([("APPLES", 2), ("PEARS", 2), ("PLUMS", 1)])
    survey_summarizer.merge_answers(question, 0, 1)
    assert question["answers"] == [
        {"text": "APPLES, PEARS", "count": 2, "percentage": "20.00%"},
        {"text": "PLUMS", "count": 1, "percentage": "10.00%"},
    ]


def test_merge_answers_after_parenthesis_uses_space() -> None:
    question = _question([("OTHER (PLEASE SPECIFY)", 2), ("PLUMS", 1), ("TEA", 2)])
    survey_summarizer.merge_answers(question, 2, 0)
    assert _texts(question) == ["TEA, OTHER (PLEASE SPECIFY)", "PLUMS"]

    question = _question([("OTHER (PLEASE SPECIFY)", 2), ("TEA", 2)])
    survey_summarizer.merge_answers(question, 0, 1)
    assert _texts(question) == ["OTHER (PLEASE SPECIFY) TEA"]


#============================================


def test_find_issue_groups() -> None:
    question = _question([("A", 5), ("B", 5), ("C", 3), ("D", 3), ("E", 1), ("F", 0), ("G", 0)])
    groups = survey_summarizer.find_issue_groups(question)
    assert [[a["text"] for a in group] for group in groups] == [["A", "B"], ["C", "D"]]


def test_one_shared_count_is_one_issue() -> None:
    clean = _question([("A", 4), ("B", 2)])
    assert survey_summarizer.count_remaining_issues([clean]) == 0

    split = _question([("A", 5), ("B", 5)])
    assert survey_summarizer.count_remaining_issues([clean, split]) == 1


def test_merge_issue_group() -> None:
    question = _question([("BLACK", 5), ("WHITE", 4), ("GREY", 5), ("RED", 5)])
    group = survey_summarizer.find_issue_groups(question)[0]
    survey_summarizer.merge_issue_group(question, group)

    assert question["answers"] == [
        {"text": "BLACK, GREY, RED", "count": 5, "percentage": "50.00%"},
        {"text": "WHITE", "count": 4, "percentage": "40.00%"},
    ]
    assert survey_summarizer.find_issue_groups(question) == []


def test_dismissed_issue_groups_are_hidden_until_they_change() -> None:
    question = _question([("A", 5), ("B", 5), ("C", 3), ("D", 3)])
    survey_summarizer.dismiss_issue_groups(question)

    assert survey_summarizer.find_issue_groups(question) == []
    assert survey_summarizer.count_remaining_issues([question]) == 2

    survey_summarizer.edit_answer_text(question, 1, "B2")
    groups = survey_summarizer.find_issue_groups(question)
    assert [[a["text"] for a in group] for group in groups] == [["A", "B2"]]
