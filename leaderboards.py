"""
Leaderboard Module
Class rankings from check-ins, app reviews, project submissions and quiz points

Author: Learnify Backend Team
Date: October 2026

Ranking precedence (first difference wins):
    1. total marks, highest first
    2. number of check-ins, highest first
    3. most recent check-in, latest first; having one beats having none
    4. display name, ascending
    5. student id, ascending
"""

import math
from functools import cmp_to_key

from query_params import parse_int
from results import Failure, STUDENT_NOT_FOUND
from timestamps import parse_timestamp, to_iso

PARTICIPATION_POINTS = 10


def calculate_score(aggregate):
    """
    Calculate a learner's total marks.

    Args:
        aggregate: Dictionary with check_in_count, review_count,
                   submission_count and quiz_points

    Returns:
        Tuple of (total, breakdown dict)
    """
    breakdown = {
        'check_in_points': PARTICIPATION_POINTS if aggregate.get('check_in_count', 0) > 0 else 0,
        'review_points': PARTICIPATION_POINTS if aggregate.get('review_count', 0) > 0 else 0,
        'submission_points': PARTICIPATION_POINTS if aggregate.get('submission_count', 0) > 0 else 0,
        'quiz_points': aggregate.get('quiz_points', 0) or 0
    }
    return sum(breakdown.values()), breakdown


def _cmp(a, b):
    return (a > b) - (a < b)


def compare_entries(a, b):
    """
    Pairwise leaderboard comparator.

    Returns a negative number when a ranks above b, positive when b ranks
    above a, and 0 only for entries with the same student id.
    """
    if a['total_marks'] != b['total_marks']:
        return b['total_marks'] - a['total_marks']

    if a['total_check_ins'] != b['total_check_ins']:
        return b['total_check_ins'] - a['total_check_ins']

    latest_a = parse_timestamp(a['latest_check_in'])
    latest_b = parse_timestamp(b['latest_check_in'])
    if latest_a and latest_b:
        if latest_a != latest_b:
            return -1 if latest_a > latest_b else 1
    elif latest_a and not latest_b:
        return -1
    elif latest_b and not latest_a:
        return 1

    name_order = _cmp(a['full_name'], b['full_name'])
    if name_order:
        return name_order

    return _cmp(str(a['student_id']), str(b['student_id']))


def build_entry(aggregate):
    """Turn one learner aggregate into an unranked leaderboard entry."""
    total, breakdown = calculate_score(aggregate)
    return {
        'student_id': aggregate['student_id'],
        'full_name': aggregate.get('full_name') or '',
        'total_marks': total,
        'total_check_ins': aggregate.get('check_in_count', 0),
        'latest_check_in': to_iso(aggregate.get('latest_check_in')),
        'points_breakdown': breakdown
    }


def rank_leaderboard(aggregates):
    """
    Rank every learner.

    Args:
        aggregates: Iterable of per-learner aggregate dicts

    Returns:
        List of leaderboard entries sorted best first, each with a
        1-based positional rank
    """
    entries = sorted((build_entry(a) for a in aggregates), key=cmp_to_key(compare_entries))

    leaderboard = []
    for i, entry in enumerate(entries, 1):
        entry['rank'] = i
        leaderboard.append(entry)

    return leaderboard


def clamp_page(limit, offset, default_limit=50, max_limit=100):
    """Parse limit/offset query values the way the leaderboard endpoint accepts them."""
    limit = parse_int(limit, 0)
    offset = parse_int(offset, 0)

    if limit <= 0:
        limit = default_limit
    return min(limit, max_limit), max(offset, 0)


def paginate_leaderboard(leaderboard, limit=50, offset=0):
    """
    Slice a ranked leaderboard for one page.

    Ranks are not reassigned; the page carries the ranks of the full list.
    """
    page = leaderboard[offset:offset + limit]
    total = len(leaderboard)

    return {
        'leaderboard': page,
        'total_students': total,
        'showing': {
            'limit': limit,
            'offset': offset,
            'total_pages': math.ceil(total / limit) if limit else 0,
            'current_page': offset // limit + 1 if limit else 1
        }
    }


def clamp_context(value, default=5, maximum=20):
    context = parse_int(value, 0)
    if context <= 0:
        context = default
    return min(context, maximum)


def find_leaderboard_context(leaderboard, student_id, context=5):
    """
    Get a learner's entry and the entries around it.

    Args:
        leaderboard: Ranked leaderboard from rank_leaderboard
        student_id: Learner to look up
        context: Number of entries to include above and below

    Returns:
        Dictionary with the student entry, the context window, the total
        and the learner's index, or a STUDENT_NOT_FOUND Failure
    """
    student_index = None
    for i, entry in enumerate(leaderboard):
        if entry['student_id'] == student_id:
            student_index = i
            break

    if student_index is None:
        return Failure(STUDENT_NOT_FOUND, f"Student {student_id} not found in leaderboard")

    start_idx = max(0, student_index - context)
    end_idx = min(len(leaderboard), student_index + context + 1)

    return {
        'student': leaderboard[student_index],
        'context': leaderboard[start_idx:end_idx],
        'total_students': len(leaderboard),
        'student_index': student_index
    }
