"""
Survey Summarizer
=================

A tool to turn survey exports (Google Forms style: one row per respondent,
one column per question) into a statistical summary spreadsheet.

Features:
    - Groups repeated, numbered and multi-select columns into one question
    - Splits multi-select cells on commas/semicolons and normalizes casing
    - Counts every answer and its percentage of respondents
    - Detects Russian / Kazakh questions from the script they are written in
    - Combines the same question asked in two languages, with undo
    - Review edits: rename, merge, delete and add answers
    - Writes one summary sheet, optionally split per language

Usage:
    CLI: python survey_summarizer.py [options] survey.xlsx
"""

import copy
import json
import logging
import os
import re
import sys

import pandas as pd


# =============================================================================
# CONSTANTS
# =============================================================================

# Header markers for the form's automatic submission time column
TIMESTAMP_MARKERS = ('timestamp', 'отметка времени')

# Characters ignored when comparing two headers (question numbering)
NUMBERING_PATTERN = re.compile(r'[0-9.()]')

# Multi-select answers packed into one cell
ANSWER_SEPARATOR_PATTERN = re.compile(r'[,;]')

# Letters that only exist in the Kazakh Cyrillic alphabet
KAZAKH_LETTERS_PATTERN = re.compile(r'[әіңғүұқөһ]', re.IGNORECASE)
CYRILLIC_LETTERS_PATTERN = re.compile(r'[а-яА-Я]')

LANGUAGES = ('russian', 'kazakh', 'unknown')

# Suffix added to question titles in the report
LANGUAGE_TAGS = {
    'russian': ' [RU]',
    'kazakh': ' [KZ]',
}

# Suffix added to output file names when the report is split per language
LANGUAGE_FILE_SUFFIXES = {
    'all': '_ALL',
    'russian': '_RU',
    'kazakh': '_KZ',
}

# Report labels (header row, trailer row, combination note)
REPORT_LABELS = {
    'en': {
        'count': 'Count',
        'percent': 'Percent',
        'total': 'Total respondents:',
        'combined': 'combined with',
    },
    'ru': {
        'count': 'Кол-во',
        'percent': 'Проценты',
        'total': 'Всего записей:',
        'combined': 'объединено с',
    },
}

# Output sheet layout
SHEET_NAME = 'Survey Summary'
COLUMN_WIDTHS = {'A': 60, 'B': 10, 'C': 12}

# Cross-language pairing heuristics
PAIR_MAX_LENGTH_DIFFERENCE = 0.4   # Relative length difference of the two texts
PAIR_MAX_POSITION_DISTANCE = 2     # Max distance between the two questions

# Same-language similarity heuristics
SIMILAR_MAX_LENGTH_DIFFERENCE = 0.3  # Relative length difference of the two texts
SIMILAR_MIN_WORD_OVERLAP = 0.2       # Shared words over the larger word set

EXCEL_EXTENSIONS = ('.xlsx', '.xlsm', '.xls')


# =============================================================================
# LOGGING SETUP
# =============================================================================

logger = logging.getLogger('SurveySummarizer')


def setup_logging(debug=False, log_file=None):
    """
    Configure logging with optional file output.

    Sets up console logging and optionally file logging for debugging.
    At DEBUG the log shows which header joined which question group, the
    skipped timestamp columns, the suggested language pairs, and every
    answer mapping that combine_questions() skipped. At WARNING only
    rejected edits and combinations (bad indices) are reported.

    Args:
        debug: If True, sets logging level to DEBUG; otherwise WARNING.
        log_file: Optional path to write log output to the file.
    """
    level = logging.DEBUG if debug else logging.WARNING
    logger.setLevel(level)
    logger.handlers.clear()

    # Console handler with a simple format
    formatter = logging.Formatter(
        '%(asctime)s | %(levelname)-8s | %(message)s',
        datefmt='%H:%M:%S'
    )
    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(formatter)
    logger.addHandler(console)

    # Optional file handler with a detailed format including function names
    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s | %(levelname)-8s | %(funcName)s:%(lineno)d | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        logger.addHandler(file_handler)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def safe_str(value):
    """
    Safely convert any value to a stripped string.

    Handles NaN/None values gracefully by returning an empty string.

    Args:
        value: Any value (maybe None, NaN, or any type).

    Returns:
        String representation, stripped of whitespace.
    """
    if value is None or pd.isna(value):
        return ''
    return str(value).strip()


def is_valid_index(items, index):
    """Check that index addresses an element of items (no negative indexing)."""
    return isinstance(index, int) and 0 <= index < len(items)


def format_percentage(count, total):
    """
    Format a count as a percentage of total with two decimals.

    Args:
        count: Number of respondents that gave the answer.
        total: Number of respondents.

    Returns:
        String like '66.67%'. A zero total yields '0.00%'.
    """
    if not total:
        return '0.00%'
    return f"{count / total * 100:.2f}%"


def make_answer(text, count, total):
    """Build an answer dict with its percentage already computed."""
    return {
        'text': text,
        'count': count,
        'percentage': format_percentage(count, total),
    }


def find_answer(answers, text):
    """
    Find the first answer with exactly the given text.

    Args:
        answers: List of answer dicts.
        text: Answer text to look for.

    Returns:
        The matching answer dict (not a copy), or None.
    """
    for answer in answers:
        if answer['text'] == text:
            return answer
    return None


def sort_answers(answers):
    """
    Sort answers by descending count.

    Python's sort is stable, so answers with equal counts keep the order
    in which they were first seen.
    """
    return sorted(answers, key=lambda answer: -answer['count'])


def recalculate_percentages(answers, total):
    """Recompute every answer's percentage in place against total."""
    for answer in answers:
        answer['percentage'] = format_percentage(answer['count'], total)
    return answers


# =============================================================================
# ANSWER NORMALIZATION
# =============================================================================

def standardize_answer(answer):
    """Trim and uppercase one answer token."""
    return answer.strip().upper()


def split_answers(value):
    """
    Split a raw cell value into normalized answer tokens.

    Multi-select questions pack several choices into one cell separated by
    commas or semicolons. Each part is trimmed and uppercased; empty parts
    are dropped.

    Args:
        value: Raw cell value (string, number, NaN or None).

    Returns:
        List of normalized tokens, possibly empty.
    """
    raw = safe_str(value)
    if not raw:
        return []

    tokens = (standardize_answer(part) for part in ANSWER_SEPARATOR_PATTERN.split(raw))
    return [token for token in tokens if token]


# =============================================================================
# QUESTION GROUPING
# =============================================================================

def normalize_question_text(question):
    """
    Normalize a question header for comparison.

    Args:
        question: Raw header text.

    Returns:
        Lowercased text with runs of whitespace collapsed and ends trimmed.
    """
    return re.sub(r'\s+', ' ', str(question).lower()).strip()


def strip_numbering(text):
    """Remove digits, dots and parentheses (question numbering) from text."""
    return NUMBERING_PATTERN.sub('', text)


def is_timestamp_header(question):
    """Check whether a header is the form's submission timestamp column."""
    lowered = str(question).lower()
    return any(marker in lowered for marker in TIMESTAMP_MARKERS)


def questions_are_related(normalized, base_normalized):
    """
    Decide whether two normalized headers belong to the same question.

    Headers are related when one contains the other (repeated prompts,
    multi-select sub-columns like "Color [Red]") or when they only differ
    in their numbering.
    """
    if base_normalized in normalized or normalized in base_normalized:
        return True
    return strip_numbering(normalized) == strip_numbering(base_normalized)


def find_related_questions(questions):
    """
    Group raw column headers into logical questions.

    Headers are visited in order. Each one joins the first existing group
    whose base header is related to it, otherwise it starts a new group
    keyed by the header itself. Blank and timestamp headers are skipped.

    Args:
        questions: Ordered list of raw header strings.

    Returns:
        Dict mapping base header to the list of its member headers,
        in creation order.
    """
    groups = {}
    normalized_bases = {}

    for question in questions:
        if not safe_str(question):
            continue
        if is_timestamp_header(question):
            logger.debug(f"Skipping timestamp column: {question}")
            continue

        normalized = normalize_question_text(question)

        for base, members in groups.items():
            if questions_are_related(normalized, normalized_bases[base]):
                members.append(question)
                logger.debug(f"Grouped '{question}' under '{base}'")
                break
        else:
            groups[question] = [question]
            normalized_bases[question] = normalized

    logger.info(f"Grouped {len(questions)} columns into {len(groups)} questions")
    return groups


# =============================================================================
# ANSWER TALLY
# =============================================================================

def tally_answers(rows, groups):
    """
    Count normalized answers for every question group.

    Args:
        rows: List of row dicts (header -> cell value).
        groups: Output of find_related_questions().

    Returns:
        Dict mapping base header to a dict of answer text -> count.
        Answer dicts keep first-seen order.
    """
    summary = {base: {} for base in groups}

    for row in rows:
        for base, members in groups.items():
            counts = summary[base]
            for question in members:
                if question not in row:
                    continue
                for answer in split_answers(row[question]):
                    counts[answer] = counts.get(answer, 0) + 1

    return summary


def build_preview_questions(rows, groups):
    """
    Build the reviewable question list from rows and question groups.

    Args:
        rows: List of row dicts.
        groups: Output of find_related_questions().

    Returns:
        List of question dicts, one per group, with answers sorted by
        descending count and percentages computed against the row count.
    """
    total = len(rows)
    summary = tally_answers(rows, groups)

    questions = []
    for base in groups:
        answers = [
            make_answer(text, count, total)
            for text, count in summary[base].items()
        ]
        questions.append({
            'question': base,
            'answers': sort_answers(answers),
            'total_respondents': total,
            'language': 'unknown',
            'combined_with': [],
        })

    return questions


# =============================================================================
# LANGUAGE DETECTION
# =============================================================================

def detect_language(text):
    """
    Classify a question string by the script it is written in.

    Kazakh-specific letters win over plain Cyrillic, which is taken as
    Russian. Anything else is unknown.

    Args:
        text: Question or answer text.

    Returns:
        'kazakh', 'russian' or 'unknown'.
    """
    text = safe_str(text)
    if KAZAKH_LETTERS_PATTERN.search(text):
        return 'kazakh'
    if CYRILLIC_LETTERS_PATTERN.search(text):
        return 'russian'
    return 'unknown'


def assign_languages(questions):
    """Label every question with its detected language (in place)."""
    for question in questions:
        question['language'] = detect_language(question['question'])
    return questions


def count_languages(questions):
    """Return how many questions carry each language label."""
    counts = {language: 0 for language in LANGUAGES}
    for question in questions:
        language = question.get('language', 'unknown')
        counts[language] = counts.get(language, 0) + 1
    return counts


def set_question_language(question, language):
    """
    Override a question's language label.

    Raises:
        ValueError: If language is not one of LANGUAGES.
    """
    if language not in LANGUAGES:
        raise ValueError(f"Unknown language: {language}")
    question['language'] = language


# =============================================================================
# REVIEW EDITS
# =============================================================================

def join_answer_texts(first, second):
    """
    Join two answer texts that were split apart by a comma.

    A comma is put back unless the first text already ends with one or
    with a closing parenthesis.
    """
    trimmed = first.strip()
    needs_comma = bool(trimmed) and not trimmed.endswith((',', ')'))
    return f"{first}{', ' if needs_comma else ' '}{second}"


def edit_answer_text(question, answer_index, text):
    """Replace the text of one answer (count and percentage are kept)."""
    answers = question['answers']
    if not is_valid_index(answers, answer_index):
        logger.warning(f"Cannot edit answer {answer_index}: no such answer")
        return
    answers[answer_index] = {**answers[answer_index], 'text': text}


def delete_answer(question, answer_index):
    """Remove one answer from a question."""
    answers = question['answers']
    if not is_valid_index(answers, answer_index):
        logger.warning(f"Cannot delete answer {answer_index}: no such answer")
        return
    question['answers'] = [a for i, a in enumerate(answers) if i != answer_index]


def add_answer(question, text):
    """
    Append a new, unanswered option to a question.

    Blank text is ignored. The new answer has a count of zero.
    """
    if not text or not text.strip():
        return
    question['answers'] = question['answers'] + [
        {'text': text, 'count': 0, 'percentage': '0.00%'}
    ]


def merge_answers(question, first_index, second_index):
    """
    Merge two answers that were wrongly split on a comma.

    The merged answer keeps the first answer's count and percentage and
    takes the lower of the two positions.

    Args:
        question: Question dict to edit in place.
        first_index: Index of the answer whose text comes first.
        second_index: Index of the answer appended to it.
    """
    answers = question['answers']
    if (not is_valid_index(answers, first_index)
            or not is_valid_index(answers, second_index)
            or first_index == second_index):
        logger.warning(f"Cannot merge answers {first_index} and {second_index}")
        return

    first = answers[first_index]
    second = answers[second_index]
    merged = {
        'text': join_answer_texts(first['text'], second['text']),
        'count': first['count'],
        'percentage': first['percentage'],
    }

    updated = [
        a for i, a in enumerate(answers) if i not in (first_index, second_index)
    ]
    updated.insert(min(first_index, second_index), merged)
    question['answers'] = updated


def issue_group_id(group):
    """Identify an issue group by its count and sorted answer texts."""
    texts = '|'.join(sorted(answer['text'] for answer in group))
    return f"{group[0]['count']}-{texts}"


def find_issue_groups(question, include_dismissed=False):
    """
    Find answers that were probably split out of one multi-select answer.

    An answer containing a comma is split into several tokens that always
    appear together, so they end up with exactly the same count.

    Args:
        question: Question dict.
        include_dismissed: Also return groups hidden with
            dismiss_issue_groups().

    Returns:
        List of answer lists. Each list holds two or more answers sharing
        the same nonzero count; lists are ordered by the position of their
        first member.
    """
    by_count = {}
    for answer in question['answers']:
        if answer['count'] > 0:
            by_count.setdefault(answer['count'], []).append(answer)
    groups = [group for group in by_count.values() if len(group) > 1]

    if include_dismissed:
        return groups
    dismissed = set(question.get('dismissed_issues') or [])
    return [group for group in groups if issue_group_id(group) not in dismissed]


def dismiss_issue_groups(question):
    """
    Hide the current issue groups of a question from review.

    A group that changes afterwards (different count or answers) gets a
    new id and shows up again.
    """
    ids = [issue_group_id(group) for group in find_issue_groups(question, True)]
    question['dismissed_issues'] = ids


def merge_issue_group(question, group):
    """
    Merge a whole issue group into its first member.

    Args:
        question: Question dict to edit in place.
        group: One of the lists returned by find_issue_groups().
    """
    answers = question['answers']
    texts = [answer['text'] for answer in answers]
    indices = sorted({texts.index(a['text']) for a in group if a['text'] in texts})
    if len(indices) < 2:
        return

    base = dict(answers[indices[0]])
    for index in indices[1:]:
        base['text'] = join_answer_texts(base['text'], answers[index]['text'])

    updated = [a for i, a in enumerate(answers) if i not in indices]
    updated.insert(indices[0], base)
    question['answers'] = updated


def count_remaining_issues(questions):
    """Count issue groups across all questions, dismissed ones included."""
    return sum(len(find_issue_groups(question, True)) for question in questions)


# =============================================================================
# QUESTION COMBINATION
# =============================================================================

def add_link(question, partner_index, partner_text):
    """Record a combination link on one side; existing links are kept as is."""
    links = question.setdefault('combined_with', [])
    if any(link['question_index'] == partner_index for link in links):
        return
    links.append({'question_index': partner_index, 'question_text': partner_text})


def combine_questions(questions, source_index, target_index, mapping,
                      new_answers=None):
    """
    Combine two questions that ask the same thing (e.g. in two languages).

    Both questions end up with the summed respondent total. Mapped source
    answers are added onto their target answers and then report the same
    merged figures as the target. The first combination snapshots each
    side's answers so remove_combination() can restore them.

    Args:
        questions: List of question dicts, edited in place.
        source_index: Index of the question being folded in.
        target_index: Index of the question receiving the counts.
        mapping: Dict of source answer text -> target answer text. Empty
            target text means "do not combine".
        new_answers: Optional list of {'source_text', 'target_text'} dicts
            for source answers that have no counterpart on the target yet.
            They are appended to the target with the source count.

    Invalid indices and mapping entries that point at missing answers are
    skipped with a log message.
    """
    if (not is_valid_index(questions, source_index)
            or not is_valid_index(questions, target_index)
            or source_index == target_index):
        logger.warning(f"Cannot combine question {source_index} into {target_index}")
        return

    source = questions[source_index]
    target = questions[target_index]
    mapping = mapping or {}

    # Only the first combination takes a snapshot
    if 'original_answers' not in source:
        source['original_answers'] = copy.deepcopy(source['answers'])
    if 'original_answers' not in target:
        target['original_answers'] = copy.deepcopy(target['answers'])

    total = source['total_respondents'] + target['total_respondents']
    source['total_respondents'] = total
    target['total_respondents'] = total

    add_link(source, target_index, target['question'])
    add_link(target, source_index, source['question'])

    target_answers = [dict(answer) for answer in target['answers']]

    introduced = set()
    for entry in new_answers or []:
        source_answer = find_answer(source['answers'], entry['source_text'])
        if source_answer is None:
            logger.debug(f"New answer source '{entry['source_text']}' not found")
            continue
        added = find_answer(target_answers, entry['target_text'])
        if added is None:
            target_answers.append(make_answer(entry['target_text'], source_answer['count'], total))
        else:
            added['count'] += source_answer['count']
        introduced.add((entry['source_text'], entry['target_text']))

    for source_text, target_text in mapping.items():
        if not target_text or (source_text, target_text) in introduced:
            continue
        source_answer = find_answer(source['answers'], source_text)
        target_answer = find_answer(target_answers, target_text)
        if source_answer is None or target_answer is None:
            logger.debug(f"Mapping '{source_text}' -> '{target_text}' skipped")
            continue
        target_answer['count'] += source_answer['count']

    recalculate_percentages(target_answers, total)

    source_answers = []
    for answer in source['answers']:
        answer = dict(answer)
        target_text = mapping.get(answer['text'])
        merged = find_answer(target_answers, target_text) if target_text else None
        if merged is not None:
            answer['count'] = merged['count']
            answer['percentage'] = merged['percentage']
        else:
            answer['percentage'] = format_percentage(answer['count'], total)
        source_answers.append(answer)

    target['answers'] = sort_answers(target_answers)
    source['answers'] = source_answers

    logger.info(
        f"Combined '{source['question']}' into '{target['question']}' "
        f"({total} respondents)"
    )


def restore_original_answers(question):
    """Put back the pre-combination answers and drop the snapshot."""
    if 'original_answers' in question:
        question['answers'] = copy.deepcopy(question['original_answers'])
        del question['original_answers']


def remove_combination(questions, question_index):
    """
    Undo every combination of one question.

    The question and each of its partners get their snapshotted answers
    back and the links between them are removed. The respondent total is
    left at its combined value.

    Args:
        questions: List of question dicts, edited in place.
        question_index: Index of the question to separate.
    """
    if not is_valid_index(questions, question_index):
        logger.warning(f"Cannot undo combination: no question {question_index}")
        return

    question = questions[question_index]
    links = question.get('combined_with') or []
    if not links:
        return

    partner_indices = [link['question_index'] for link in links]

    restore_original_answers(question)
    question['combined_with'] = []

    for index in partner_indices:
        if not is_valid_index(questions, index):
            continue
        partner = questions[index]
        restore_original_answers(partner)
        partner['combined_with'] = [
            link for link in partner.get('combined_with') or []
            if link['question_index'] != question_index
        ]

    logger.info(f"Removed combinations of '{question['question']}'")


def auto_map_answers(source, target):
    """
    Suggest an answer mapping between two questions.

    An exact (case-insensitive) text match wins. Otherwise a target answer
    is suggested when it is the only one that contains, or is contained in,
    the source answer.

    Args:
        source: Source question dict.
        target: Target question dict.

    Returns:
        Dict of source answer text -> target answer text.
    """
    mapping = {}
    targets = [(answer['text'], answer['text'].lower().strip()) for answer in target['answers']]

    for answer in source['answers']:
        source_text = answer['text'].lower().strip()

        exact = [text for text, lowered in targets if lowered == source_text]
        if exact:
            mapping[answer['text']] = exact[0]
            continue

        partial = [
            text for text, lowered in targets
            if lowered in source_text or source_text in lowered
        ]
        if len(partial) == 1:
            mapping[answer['text']] = partial[0]

    return mapping


def collect_new_answers(mapping, target):
    """
    List mapping entries whose target text the target question lacks.

    Each missing target text is listed once, for the first source answer
    mapped to it. Other source answers mapped to the same text are added
    onto it through the mapping.
    """
    existing = {answer['text'] for answer in target['answers']}
    new_answers = []
    for source_text, target_text in mapping.items():
        if not target_text or target_text in existing:
            continue
        existing.add(target_text)
        new_answers.append({'source_text': source_text, 'target_text': target_text})
    return new_answers


def available_combine_targets(questions, source_index):
    """
    List the questions a source question may still be combined with.

    Excludes the source itself, questions already linked to it, and
    questions linked to anything else. Questions with as many answers as
    the source come first.

    Returns:
        List of question indices.
    """
    if not is_valid_index(questions, source_index):
        return []

    source = questions[source_index]
    linked = {link['question_index'] for link in source.get('combined_with') or []}
    candidates = [
        index for index, question in enumerate(questions)
        if index != source_index
        and index not in linked
        and not question.get('combined_with')
    ]
    answer_count = len(source['answers'])
    return sorted(
        candidates,
        key=lambda index: 0 if len(questions[index]['answers']) == answer_count else 1
    )


def suggest_language_pairs(questions):
    """
    Pair Russian questions with their Kazakh counterparts.

    Two questions in different languages are paired when their texts have
    a similar length and sit close to each other in the survey, or when
    they share a number (like the question number).

    Args:
        questions: List of question dicts with a 'language' label.

    Returns:
        List of (first_index, second_index) tuples in survey order of the
        first question.
    """
    entries = [
        {
            'normalized': normalize_question_text(question['question']),
            'language': question.get('language', 'unknown'),
            'linked': bool(question.get('combined_with')),
        }
        for question in questions
    ]
    for entry in entries:
        entry['numbers'] = set(re.findall(r'\d+', entry['normalized']))

    pairs = []
    processed = set()

    for i, first in enumerate(entries):
        if i in processed or first['linked'] or first['language'] == 'unknown':
            continue

        for j, second in enumerate(entries):
            if j == i or j in processed or second['linked']:
                continue
            if second['language'] in ('unknown', first['language']):
                continue

            longest = max(len(first['normalized']), len(second['normalized'])) or 1
            length_similar = (
                abs(len(first['normalized']) - len(second['normalized'])) / longest
                < PAIR_MAX_LENGTH_DIFFERENCE
            )
            position_similar = abs(i - j) <= PAIR_MAX_POSITION_DISTANCE
            common_numbers = bool(first['numbers'] & second['numbers'])

            if (length_similar and position_similar) or common_numbers:
                pairs.append((i, j))
                processed.update((i, j))
                break

    logger.debug(f"Suggested {len(pairs)} language pairs")
    return pairs


def suggest_similar_questions(questions, exclude=()):
    """
    Group questions whose texts share enough words.

    A later question joins an earlier one when their normalized lengths
    are close and the shared words make up more than a fifth of the
    larger word set. Language is not considered.

    Args:
        questions: List of question dicts.
        exclude: Indices to leave out (e.g. already paired questions).

    Returns:
        List of index lists with two or more members, in survey order
        of their first member.
    """
    texts = [normalize_question_text(question['question']) for question in questions]
    processed = set(exclude)
    groups = []

    for i, first in enumerate(texts):
        if i in processed:
            continue

        members = [i]
        first_words = set(first.split())
        for j in range(i + 1, len(texts)):
            if j in processed:
                continue
            second = texts[j]

            longest = max(len(first), len(second)) or 1
            length_similar = (
                abs(len(first) - len(second)) / longest < SIMILAR_MAX_LENGTH_DIFFERENCE
            )
            second_words = set(second.split())
            largest = max(len(first_words), len(second_words)) or 1
            overlap = len(first_words & second_words) / largest

            if length_similar and overlap > SIMILAR_MIN_WORD_OVERLAP:
                members.append(j)
                processed.add(j)

        if len(members) > 1:
            groups.append(members)
            processed.update(members)

    logger.debug(f"Suggested {len(groups)} similar question groups")
    return groups


def check_links_consistent(questions):
    """Return True when every combination link has its back-reference."""
    for index, question in enumerate(questions):
        for link in question.get('combined_with') or []:
            partner_index = link['question_index']
            if not is_valid_index(questions, partner_index):
                return False
            partner_links = questions[partner_index].get('combined_with') or []
            if not any(l['question_index'] == index for l in partner_links):
                return False
    return True


# =============================================================================
# REPORT GENERATION
# =============================================================================

def report_question_title(question, labels):
    """Build the header cell text for one question."""
    title = str(question['question'])
    title += LANGUAGE_TAGS.get(question.get('language'), '')

    links = question.get('combined_with') or []
    if links:
        partners = '; '.join(str(link['question_text']) for link in links)
        title += f" ({labels['combined']}: {partners})"
    return title


def build_report_rows(questions, language=None, labels='en'):
    """
    Flatten questions into printable three-column rows.

    Each question gives a header row, one row per answer (descending
    count), and a respondent total row. Questions are separated by a blank
    row.

    Args:
        questions: List of question dicts.
        language: Optional language label; other questions are left out.
        labels: Key into REPORT_LABELS.

    Returns:
        List of (text, count, percentage) tuples.
    """
    label_set = REPORT_LABELS[labels]
    rows = []

    for question in questions:
        if language and question.get('language', 'unknown') != language:
            continue

        if rows:
            rows.append(('', '', ''))

        rows.append((
            report_question_title(question, label_set),
            label_set['count'],
            label_set['percent'],
        ))
        for answer in sort_answers(question['answers']):
            rows.append((answer['text'], answer['count'], answer['percentage']))
        rows.append((label_set['total'], question['total_respondents'], ''))

    return rows


# =============================================================================
# FILE INPUT / OUTPUT
# =============================================================================

def validate_survey_file(path):
    """
    Validate that a file exists and is a readable survey export.

    Args:
        path: Path to a .csv or Excel file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file type is unsupported or cannot be read.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"File not found: {path}")

    extension = os.path.splitext(path)[1].lower()
    if extension != '.csv' and extension not in EXCEL_EXTENSIONS:
        raise ValueError(f"Unsupported file type: {extension or path}")

    try:
        if extension == '.csv':
            pd.read_csv(path, nrows=1, encoding='utf-8-sig')
        else:
            pd.read_excel(path, nrows=1)
    except Exception as e:
        raise ValueError(f"Cannot read survey file: {e}")


def read_survey_rows(path):
    """
    Read a survey export into row dicts.

    All cells are read as strings so answer codes like "01" survive.
    Completely empty rows are dropped.

    Args:
        path: Path to a .csv or Excel file (first sheet is used).

    Returns:
        List of dicts mapping header text to cell value.
    """
    if os.path.splitext(path)[1].lower() == '.csv':
        df = pd.read_csv(path, encoding='utf-8-sig', dtype=str, on_bad_lines='warn')
    else:
        df = pd.read_excel(path, sheet_name=0, dtype=str)

    df.columns = [str(column) for column in df.columns]
    df = df.dropna(how='all')

    logger.info(f"Read {len(df)} rows and {len(df.columns)} columns from {path}")
    return df.to_dict('records')


def write_report(rows, path):
    """
    Write report rows to a spreadsheet.

    Excel output gets a single sheet with a wide question column and
    narrow count/percent columns. Paths ending in .csv are written as CSV.

    Args:
        rows: Output of build_report_rows().
        path: Destination file path.
    """
    df = pd.DataFrame(rows, columns=['A', 'B', 'C'])

    if path.lower().endswith('.csv'):
        df.to_csv(path, index=False, header=False, encoding='utf-8-sig')
    else:
        with pd.ExcelWriter(path, engine='openpyxl') as writer:
            df.to_excel(writer, sheet_name=SHEET_NAME, index=False, header=False)
            worksheet = writer.sheets[SHEET_NAME]
            for letter, width in COLUMN_WIDTHS.items():
                worksheet.column_dimensions[letter].width = width

    logger.info(f"Wrote {len(rows)} rows to {path}")


def output_paths(base_path):
    """
    Derive the per-language report paths from a base path.

    "survey.xlsx" gives "survey_ALL.xlsx", "survey_RU.xlsx" and
    "survey_KZ.xlsx".
    """
    root, extension = os.path.splitext(base_path)
    extension = extension or '.xlsx'
    return {
        key: f"{root}{suffix}{extension}"
        for key, suffix in LANGUAGE_FILE_SUFFIXES.items()
    }


def load_combinations(path):
    """
    Load combination instructions from a JSON file.

    The file holds a list of objects:
        {"source": 3, "target": 1, "mapping": {"ДА": "ИӘ"},
         "new_answers": [{"source_text": "...", "target_text": "..."}]}
    "mapping" may also be the string "auto".

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the content is not a list of valid entries.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"File not found: {path}")

    with open(path, encoding='utf-8') as f:
        try:
            specs = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid combination file: {e}")

    if not isinstance(specs, list):
        raise ValueError("Combination file must contain a list")

    for number, spec in enumerate(specs, start=1):
        if not isinstance(spec, dict):
            raise ValueError(f"Combination {number} is not an object")
        for key in ('source', 'target'):
            if not isinstance(spec.get(key), int):
                raise ValueError(f"Combination {number} needs an integer '{key}'")
        mapping = spec.get('mapping', {})
        if mapping != 'auto' and not isinstance(mapping, dict):
            raise ValueError(f"Combination {number} has an invalid 'mapping'")

    return specs


# =============================================================================
# PROCESSING PIPELINE
# =============================================================================

def prepare_preview(rows):
    """
    Turn survey rows into the reviewable question list.

    Args:
        rows: List of row dicts from the row source.

    Returns:
        List of question dicts with languages assigned.

    Raises:
        ValueError: If there are no rows.
    """
    if not rows:
        raise ValueError("No data found in the worksheet")

    headers = list(dict.fromkeys(header for row in rows for header in row))
    groups = find_related_questions(headers)
    questions = build_preview_questions(rows, groups)
    return assign_languages(questions)


def apply_combinations(questions, specs):
    """
    Apply combination instructions in order.

    A mapping of "auto" is replaced with auto_map_answers(); when
    "new_answers" is missing it is derived from the mapping.
    """
    for spec in specs:
        source_index = spec['source']
        target_index = spec['target']
        mapping = spec.get('mapping') or {}
        new_answers = spec.get('new_answers')

        indices_valid = (is_valid_index(questions, source_index)
                         and is_valid_index(questions, target_index))
        if mapping == 'auto':
            mapping = auto_map_answers(
                questions[source_index], questions[target_index]
            ) if indices_valid else {}
        if new_answers is None and indices_valid:
            new_answers = collect_new_answers(mapping, questions[target_index])

        combine_questions(questions, source_index, target_index, mapping, new_answers)


def auto_combine(questions):
    """
    Combine every suggested language pair using suggested answer mappings.

    The later question of each pair is folded into the earlier one.

    Returns:
        Number of combinations applied.
    """
    pairs = suggest_language_pairs(questions)
    for first, second in pairs:
        target_index, source_index = min(first, second), max(first, second)
        mapping = auto_map_answers(questions[source_index], questions[target_index])
        combine_questions(questions, source_index, target_index, mapping)
    return len(pairs)


def process_survey(input_path, output_path=None, combinations_path=None,
                   auto_combine_languages=False, split_languages=False,
                   labels='en', progress_callback=None):
    """
    Process a survey export and write the summary report(s).

    Main entry point for report generation. Handles the complete workflow
    from reading to writing.

    Args:
        input_path: Path to the survey export (.csv or Excel).
        output_path: Output file path. Defaults to "<input>_ANALYZED.xlsx",
            or "<input>.xlsx" as the base for split reports.
        combinations_path: Optional JSON file with combination instructions.
        auto_combine_languages: Combine suggested Russian/Kazakh pairs.
        split_languages: Also write one report per detected language.
        labels: Report label language key ('en' or 'ru').
        progress_callback: Optional function for progress updates.

    Returns:
        Tuple of (respondent_count, questions, written_paths).
    """
    logger.info(f"Processing: {input_path}")

    if labels not in REPORT_LABELS:
        raise ValueError(f"Unknown report labels: {labels}")

    # --- Validate and read input ---
    if progress_callback:
        progress_callback("Validating file...")
    validate_survey_file(input_path)

    if progress_callback:
        progress_callback("Reading responses...")
    rows = read_survey_rows(input_path)

    # --- Group and count ---
    if progress_callback:
        progress_callback("Summarizing answers...")
    questions = prepare_preview(rows)

    # --- Combine questions ---
    if combinations_path:
        if progress_callback:
            progress_callback("Combining questions...")
        apply_combinations(questions, load_combinations(combinations_path))
    if auto_combine_languages:
        if progress_callback:
            progress_callback("Combining language pairs...")
        auto_combine(questions)

    # --- Write output ---
    if progress_callback:
        progress_callback("Writing report...")

    root = os.path.splitext(input_path)[0]
    written = []
    if split_languages:
        paths = output_paths(output_path or f"{root}.xlsx")
        write_report(build_report_rows(questions, labels=labels), paths['all'])
        written.append(paths['all'])
        for language in ('russian', 'kazakh'):
            if any(q['language'] == language for q in questions):
                rows_for_language = build_report_rows(questions, language, labels)
                write_report(rows_for_language, paths[language])
                written.append(paths[language])
    else:
        path = output_path or f"{root}_ANALYZED.xlsx"
        write_report(build_report_rows(questions, labels=labels), path)
        written.append(path)

    logger.info(f"Complete: {len(rows)} respondents, {len(questions)} questions")

    return len(rows), questions, written


# =============================================================================
# COMMAND LINE INTERFACE
# =============================================================================

def print_usage():
    print("Survey Summarizer")
    print("")
    print("Usage: python survey_summarizer.py [options] survey.xlsx")
    print("")
    print("Options:")
    print("  -o, --output FILE        Output file (default: <input>_ANALYZED.xlsx)")
    print("  -c, --combine FILE       JSON file with question combinations")
    print("  -a, --auto-combine       Combine matching Russian/Kazakh questions")
    print("  -s, --split-languages    Also write _RU and _KZ reports")
    print("      --labels LANG        Report labels: en (default) or ru")
    print("  -d, --debug              Enable debug logging")
    print("  -l, --log FILE           Write debug log to file")
    print("  -h, --help               Show this help message")
    print("")
    print("Examples:")
    print("  python survey_summarizer.py survey.xlsx")
    print("  python survey_summarizer.py -s -a survey.xlsx")
    print("  python survey_summarizer.py -c combine.json -o summary.xlsx survey.csv")


def main(argv=None):
    """
    Main entry point for command line usage.

    Args:
        argv: Argument list without the program name (defaults to sys.argv).
    """
    args = sys.argv[1:] if argv is None else list(argv)
    if not args:
        print_usage()
        sys.exit(1)

    input_path = None
    output = None
    combinations = None
    auto = False
    split = False
    labels = 'en'
    debug = False
    log_file = None

    # Parse arguments
    i = 0
    while i < len(args):
        arg = args[i]

        if arg in ('-d', '--debug'):
            debug = True
        elif arg in ('-a', '--auto-combine'):
            auto = True
        elif arg in ('-s', '--split-languages'):
            split = True
        elif arg in ('-o', '--output'):
            if i + 1 < len(args):
                output = args[i + 1]
                i += 1
        elif arg in ('-c', '--combine'):
            if i + 1 < len(args):
                combinations = args[i + 1]
                i += 1
        elif arg == '--labels':
            if i + 1 < len(args):
                labels = args[i + 1]
                i += 1
        elif arg in ('-l', '--log'):
            log_file = args[i + 1] if i + 1 < len(args) else 'debug.log'
            i += 1
        elif arg in ('-h', '--help'):
            print_usage()
            sys.exit(0)
        elif not arg.startswith('-'):
            if input_path is None:
                input_path = arg

        i += 1

    # Validate required argument
    if not input_path:
        print("Error: No input file specified")
        print("Run with --help for usage information")
        sys.exit(1)

    # Setup logging and process
    setup_logging(debug, log_file)

    try:
        n_resp, questions, written = process_survey(
            input_path, output,
            combinations_path=combinations,
            auto_combine_languages=auto,
            split_languages=split,
            labels=labels,
        )
    except Exception as e:
        logger.exception("Failed")
        print(f"❌ Error: {e}")
        sys.exit(1)

    languages = count_languages(questions)
    issues = count_remaining_issues(questions)

    for path in written:
        print(f"✅ Generated: {path}")
    print(f"   Respondents: {n_resp}")
    print(f"   Questions: {len(questions)}")
    print(
        f"   Languages: {languages['russian']} Russian, "
        f"{languages['kazakh']} Kazakh, {languages['unknown']} unknown"
    )
    if issues:
        print(f"   ⚠ {issues} answer group(s) share a count and may be split answers")


if __name__ == "__main__":
    main()
