"""
Learning Analytics Module
Per-learner quiz summaries and question-bank statistics

Author: Learnify Backend Team
Collaborators: None
Date: October 2026
"""

from gamification import first_correct_points
from timestamps import parse_timestamp, to_iso, utc_now

DIFFICULTY_NAMES = {
    1: 'Beginner',
    2: 'Intermediate',
    3: 'Advanced'
}


def _percentage(part, whole):
    return round(part / whole * 100) if whole > 0 else 0


def _latest(attempts):
    if not attempts:
        return None
    return max(attempts, key=lambda a: (parse_timestamp(a['created_at']), a['id']))


def summarize_quiz_scores(student_id, attempts):
    """
    Summarize a learner's quiz performance.

    Points follow the first-correct-only rule regardless of what is stored
    on the individual attempts. Accuracy is the share of attempts that were
    correct.

    Args:
        student_id: Learner the attempts belong to
        attempts: All of the learner's attempts

    Returns:
        Dictionary of totals, accuracy and last quiz date
    """
    correct_attempts = sum(1 for a in attempts if a['is_correct'])
    latest = _latest(attempts)

    return {
        'student_id': student_id,
        'total_questions_attempted': len(attempts),
        'total_correct_answers': len({a['question_id'] for a in attempts if a['is_correct']}),
        'total_points': first_correct_points(attempts),
        'accuracy_percentage': _percentage(correct_attempts, len(attempts)),
        'last_quiz_date': to_iso(latest['created_at']) if latest else None
    }


def _attempt_status(total_attempts, correct_attempts):
    if total_attempts == 0:
        return 'never_attempted'
    if correct_attempts > 0:
        return 'mastered'
    return 'needs_practice'


def summarize_question_attempts(questions, attempts):
    """
    Combine every question with a learner's results on it.

    Args:
        questions: Full question records, answers included
        attempts: The learner's attempts

    Returns:
        Dictionary with the annotated questions and an overall summary
    """
    attempts_by_question = {}
    for attempt in attempts:
        attempts_by_question.setdefault(attempt['question_id'], []).append(attempt)

    annotated = []
    for question in questions:
        question_attempts = attempts_by_question.get(question['id'], [])
        total_attempts = len(question_attempts)
        correct_attempts = sum(1 for a in question_attempts if a['is_correct'])
        latest = _latest(question_attempts)

        annotated.append(dict(question, attempt_summary={
            'total_attempts': total_attempts,
            'correct_attempts': correct_attempts,
            'accuracy_percentage': _percentage(correct_attempts, total_attempts),
            'total_points': sum(a['points_earned'] or 0 for a in question_attempts),
            'latest_attempt': {
                'selected_answer': latest['selected_answer'],
                'is_correct': latest['is_correct'],
                'points_earned': latest['points_earned'],
                'created_at': to_iso(latest['created_at'])
            } if latest else None,
            'status': _attempt_status(total_attempts, correct_attempts)
        }))

    total_questions = len(annotated)
    attempted = sum(1 for q in annotated if q['attempt_summary']['total_attempts'] > 0)
    mastered = sum(1 for q in annotated if q['attempt_summary']['correct_attempts'] > 0)

    return {
        'questions': annotated,
        'summary': {
            'total_questions': total_questions,
            'attempted_questions': attempted,
            'mastered_questions': mastered,
            'never_attempted': total_questions - attempted,
            'overall_accuracy': _percentage(mastered, attempted)
        }
    }


def question_difficulty_stats(questions):
    """Count active questions per difficulty level."""
    breakdown = []
    for level, name in DIFFICULTY_NAMES.items():
        breakdown.append({
            'difficulty_level': level,
            'difficulty_name': name,
            'question_count': sum(1 for q in questions if q['difficulty_level'] == level)
        })

    return {
        'total_questions': len(questions),
        'difficulty_breakdown': breakdown,
        'last_updated': utc_now().isoformat()
    }
