from learning_analytics import (summarize_quiz_scores, summarize_question_attempts,
                                question_difficulty_stats)


def make_question(question_id, difficulty):
    return {
        'id': question_id,
        'question_text': f'Question {question_id}',
        'difficulty_level': difficulty,
        'correct_answer': 'B',
        'explanation': None
    }


def make_attempt(attempt_id, question_id, selected, is_correct, points, created_at):
    return {
        'id': attempt_id,
        'question_id': question_id,
        'selected_answer': selected,
        'is_correct': is_correct,
        'points_earned': points,
        'created_at': created_at
    }


ATTEMPTS = [
    make_attempt(1, 1, 'A', False, 0, '2025-03-01T09:00:00+00:00'),
    make_attempt(2, 1, 'B', True, 5, '2025-03-01T09:05:00+00:00'),
    make_attempt(3, 1, 'B', True, 5, '2025-03-01T09:10:00+00:00'),
    make_attempt(4, 2, 'C', False, 0, '2025-03-01T09:15:00+00:00'),
]


def test_summarize_quiz_scores_counts_each_question_once():
    summary = summarize_quiz_scores('S1', ATTEMPTS)

    assert summary['total_questions_attempted'] == 4
    assert summary['total_correct_answers'] == 1
    assert summary['total_points'] == 5
    assert summary['accuracy_percentage'] == 50
    assert summary['last_quiz_date'] == '2025-03-01T09:15:00+00:00'


def test_summarize_quiz_scores_without_attempts():
    summary = summarize_quiz_scores('S1', [])
    assert summary['total_points'] == 0
    assert summary['accuracy_percentage'] == 0
    assert summary['last_quiz_date'] is None


def test_question_overview_statuses():
    questions = [make_question(1, 1), make_question(2, 2), make_question(3, 3)]
    overview = summarize_question_attempts(questions, ATTEMPTS)

    by_id = {q['id']: q['attempt_summary'] for q in overview['questions']}
    assert by_id[1]['status'] == 'mastered'
    assert by_id[1]['total_attempts'] == 3
    assert by_id[1]['accuracy_percentage'] == 67
    assert by_id[1]['total_points'] == 10
    assert by_id[1]['latest_attempt']['created_at'] == '2025-03-01T09:10:00+00:00'
    assert by_id[2]['status'] == 'needs_practice'
    assert by_id[3]['status'] == 'never_attempted'
    assert by_id[3]['latest_attempt'] is None

    assert overview['summary'] == {
        'total_questions': 3,
        'attempted_questions': 2,
        'mastered_questions': 1,
        'never_attempted': 1,
        'overall_accuracy': 50
    }


def test_question_difficulty_stats():
    questions = [make_question(1, 1), make_question(2, 1), make_question(3, 3)]
    stats = question_difficulty_stats(questions)

    assert stats['total_questions'] == 3
    assert stats['difficulty_breakdown'] == [
        {'difficulty_level': 1, 'difficulty_name': 'Beginner', 'question_count': 2},
        {'difficulty_level': 2, 'difficulty_name': 'Intermediate', 'question_count': 0},
        {'difficulty_level': 3, 'difficulty_name': 'Advanced', 'question_count': 1},
    ]
