"""
Intelligent Question Picker Module
Builds quiz batches that revisit missed questions, introduce unseen ones
and space out review of recently mastered ones.

Author: Learnify Backend Team
Date: October 2026

Selection modes:
    smart       60% previously missed, 30% never attempted, rest recently correct
    random      uniform sample over the whole pool
    wrong_only  only previously missed questions that are not recently mastered
"""

import logging
import random
import sqlite3

from query_params import parse_int
from results import Failure, NO_QUESTIONS_FOUND, NO_WRONG_QUESTIONS
from timestamps import parse_timestamp

logger = logging.getLogger(__name__)

SELECTION_MODES = ('smart', 'random', 'wrong_only')
DEFAULT_MODE = 'smart'

# Bucket shares, in tenths of the requested count
PRIORITY_SHARE_TENTHS = 6
NEW_SHARE_TENTHS = 3

RECENT_CORRECT_WINDOW = 10

HIDDEN_FIELDS = ('correct_answer', 'explanation')


def clamp_count(value, default=5, maximum=20):
    """
    Parse a requested batch size.

    Only the leading integer is read ('2.5' -> 2). Unparseable and zero
    values fall back to the default, everything else is clamped into
    [1, maximum].
    """
    count = parse_int(value, 0)
    if count == 0:
        count = default

    return max(1, min(count, maximum))


def normalize_mode(question_type):
    if question_type in SELECTION_MODES:
        return question_type
    return DEFAULT_MODE


def sanitize_question(question):
    """Return a copy of the question without answer-revealing fields."""
    return {key: value for key, value in question.items() if key not in HIDDEN_FIELDS}


def split_history(attempts, recent_window=RECENT_CORRECT_WINDOW):
    """
    Classify a learner's attempt history.

    Args:
        attempts: Iterable of attempt dicts with question_id, is_correct
                  and created_at
        recent_window: How many of the most recent correct attempts count
                       as "recently mastered"

    Returns:
        Dictionary of question-id sets: incorrect_ids, recently_correct_ids
        and attempted_ids
    """
    incorrect_ids = set()
    attempted_ids = set()
    correct_attempts = []

    for attempt in attempts:
        question_id = attempt['question_id']
        attempted_ids.add(question_id)
        if attempt['is_correct']:
            correct_attempts.append(attempt)
        else:
            incorrect_ids.add(question_id)

    # Most recent first; sorted() is stable so equal timestamps keep store order
    correct_attempts = sorted(
        correct_attempts,
        key=lambda a: parse_timestamp(a['created_at']),
        reverse=True
    )
    recently_correct_ids = {a['question_id'] for a in correct_attempts[:recent_window]}

    return {
        'incorrect_ids': incorrect_ids,
        'recently_correct_ids': recently_correct_ids,
        'attempted_ids': attempted_ids
    }


def build_buckets(pool, attempts, recent_window=RECENT_CORRECT_WINDOW):
    """
    Partition the pool into priority, new and reinforcement buckets.

    The buckets are disjoint. A question answered correctly only, and not
    recently, falls in none of them and is reachable through top-up only.
    """
    history = split_history(attempts, recent_window)
    incorrect_ids = history['incorrect_ids']
    recent_ids = history['recently_correct_ids']
    attempted_ids = history['attempted_ids']

    return {
        'priority': [q for q in pool if q['id'] in incorrect_ids and q['id'] not in recent_ids],
        'new': [q for q in pool if q['id'] not in attempted_ids],
        'reinforcement': [q for q in pool if q['id'] in recent_ids]
    }


def bucket_targets(count):
    """Return the (priority, new) draw sizes: ceil(60%) and ceil(30%) of count."""
    priority_target = -(-count * PRIORITY_SHARE_TENTHS // 10)
    new_target = -(-count * NEW_SHARE_TENTHS // 10)
    return priority_target, new_target


def _sample(items, k, rng):
    return rng.sample(items, max(0, min(k, len(items))))


def _smart_selection(buckets, pool, count, rng):
    priority_target, new_target = bucket_targets(count)

    priority_drawn = _sample(buckets['priority'], priority_target, rng)
    # The new draw never overruns the batch (ceil + ceil can exceed count when count is small)
    new_drawn = _sample(buckets['new'], min(new_target, count - len(priority_drawn)), rng)
    reinforcement_drawn = _sample(
        buckets['reinforcement'], count - len(priority_drawn) - len(new_drawn), rng
    )

    selected = priority_drawn + new_drawn + reinforcement_drawn

    # Top up from whatever is left, in ascending id order before the draw
    if len(selected) < count:
        used_ids = {q['id'] for q in selected}
        remaining = sorted((q for q in pool if q['id'] not in used_ids), key=lambda q: q['id'])
        selected.extend(_sample(remaining, count - len(selected), rng))

    rng.shuffle(selected)
    return selected


def pick_questions(pool, count=5, mode=DEFAULT_MODE, history=None, rng=None,
                   recent_window=RECENT_CORRECT_WINDOW):
    """
    Select a batch of quiz questions.

    Args:
        pool: Active questions (already filtered by difficulty if requested)
        count: Batch size, clamped by the caller
        mode: 'smart', 'random' or 'wrong_only'
        history: The learner's attempts, or None when unknown
        rng: random.Random used for every draw; seed it for repeatable batches
        recent_window: Size of the recently-correct window

    Returns:
        Dictionary with sanitized questions and selection metadata, or a
        Failure (NO_QUESTIONS_FOUND, NO_WRONG_QUESTIONS)
    """
    rng = rng or random.Random()
    pool = list(pool)
    mode = normalize_mode(mode)
    count = max(1, int(count))

    if not pool:
        return Failure(NO_QUESTIONS_FOUND, 'No active quiz questions found')

    priority = []

    if history is None:
        selected = _sample(pool, count, rng)
        selection_method = 'random'
    else:
        buckets = build_buckets(pool, history, recent_window)
        priority = buckets['priority']

        if mode == 'wrong_only':
            if not priority:
                return Failure(
                    NO_WRONG_QUESTIONS,
                    'No previously incorrect questions found. Try taking some quizzes first!'
                )
            selected = _sample(priority, count, rng)
            selection_method = 'wrong_only'
        elif mode == 'random':
            selected = _sample(pool, count, rng)
            selection_method = 'random'
        else:
            selected = _smart_selection(buckets, pool, count, rng)
            selection_method = 'smart_learning'

    return {
        'questions': [sanitize_question(q) for q in selected],
        'selection_method': selection_method,
        'question_type': mode,
        'priority_count': len(priority),
        'total_available': len(pool)
    }


def load_history(db, student_id):
    """
    Fetch a learner's attempts for selection.

    Returns None when there is no learner or the store fails, which makes
    pick_questions fall back to random selection.
    """
    if not student_id:
        return None

    try:
        return db.fetch_learner_attempts(student_id)
    except sqlite3.Error as e:
        logger.warning("Attempt history unavailable for %s, using random selection: %s", student_id, e)
        return None


def get_quiz_questions(db, count=5, difficulty=None, student_id=None, question_type=None,
                       rng=None, recent_window=RECENT_CORRECT_WINDOW):
    """
    Load the pool and history from the store and pick a batch.

    Store errors while loading the pool propagate; errors while loading the
    history only downgrade the selection to random.
    """
    pool = db.fetch_active_questions(difficulty)
    if not pool:
        return Failure(NO_QUESTIONS_FOUND, 'No active quiz questions found')

    history = load_history(db, student_id)
    result = pick_questions(pool, count, question_type, history, rng, recent_window)

    if not isinstance(result, Failure):
        logger.debug("Picked %d questions for %s via %s",
                     len(result['questions']), student_id or 'anonymous', result['selection_method'])
    return result
