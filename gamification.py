"""
Gamification Module
Quiz points, answer grading and the first-correct-only reconciliation pass

Author: Learnify Backend Team
Date: October 2026

Each distinct question a learner answers correctly is worth POINTS_PER_CORRECT
once. Repeat correct answers on an already-solved question earn nothing; the
reconciliation pass rewrites stored attempt points to enforce that.
"""

import logging
from collections import OrderedDict

from timestamps import parse_timestamp, to_iso

logger = logging.getLogger(__name__)

# Point Constants
POINTS_PER_CORRECT = 5
VALID_ANSWERS = ('A', 'B', 'C', 'D')


def is_valid_answer(value):
    return value in VALID_ANSWERS


def grade_answer(question, selected_answer):
    """
    Grade a submitted answer.

    Args:
        question: Question dict including correct_answer and explanation
        selected_answer: One of A, B, C, D

    Returns:
        Dictionary with is_correct, points_earned, correct_answer,
        explanation and a feedback message
    """
    is_correct = selected_answer == question['correct_answer']
    points_earned = POINTS_PER_CORRECT if is_correct else 0

    if is_correct:
        message = f"Correct! You earned {points_earned} points."
    else:
        message = f"Incorrect. The correct answer was {question['correct_answer']}."

    return {
        'is_correct': is_correct,
        'points_earned': points_earned,
        'correct_answer': question['correct_answer'],
        'explanation': question.get('explanation'),
        'message': message
    }


def _chronological(attempts):
    return sorted(attempts, key=lambda a: (parse_timestamp(a['created_at']), a['id']))


def expected_points(attempts):
    """
    Work out what every attempt should be worth.

    Args:
        attempts: One learner's attempts

    Returns:
        OrderedDict of attempt id -> points, in chronological order
    """
    solved = set()
    points = OrderedDict()

    for attempt in _chronological(attempts):
        if attempt['is_correct'] and attempt['question_id'] not in solved:
            solved.add(attempt['question_id'])
            points[attempt['id']] = POINTS_PER_CORRECT
        else:
            points[attempt['id']] = 0

    return points


def first_correct_points(attempts):
    """Quiz points for one learner: POINTS_PER_CORRECT per distinct solved question."""
    solved = {a['question_id'] for a in attempts if a['is_correct']}
    return len(solved) * POINTS_PER_CORRECT


def reconcile_quiz_points(attempts):
    """
    Recompute stored attempt points from the full attempt log.

    The pass is rebuilt from scratch on every run, so running it twice
    produces no further corrections.

    Args:
        attempts: Every attempt in the store, any order

    Returns:
        Dictionary with students_processed, total_points_corrected,
        per-student details and the (attempt_id, points) corrections to apply
    """
    by_student = OrderedDict()
    for attempt in attempts:
        by_student.setdefault(attempt['student_id'], []).append(attempt)

    corrections = []
    details = []
    total_points_corrected = 0

    for student_id, student_attempts in by_student.items():
        expected = expected_points(student_attempts)
        old_points = sum(a['points_earned'] or 0 for a in student_attempts)
        new_points = sum(expected.values())

        student_corrections = [
            (a['id'], expected[a['id']])
            for a in student_attempts
            if (a['points_earned'] or 0) != expected[a['id']]
        ]
        corrections.extend(student_corrections)

        points_corrected = new_points - old_points
        total_points_corrected += abs(points_corrected)
        last_attempt = _chronological(student_attempts)[-1]

        details.append({
            'student_id': student_id,
            'old_points': old_points,
            'new_points': new_points,
            'points_corrected': points_corrected,
            'attempts_corrected': len(student_corrections),
            'unique_questions_answered': new_points // POINTS_PER_CORRECT,
            'total_attempts': len(student_attempts),
            'last_quiz_date': to_iso(last_attempt['created_at'])
        })

        if student_corrections:
            logger.info("Fixed %s: %d -> %d points (%+d)",
                        student_id, old_points, new_points, points_corrected)

    return {
        'students_processed': len(by_student),
        'total_points_corrected': total_points_corrected,
        'details': details,
        'corrections': corrections
    }
