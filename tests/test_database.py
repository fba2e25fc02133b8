import sqlite3

import pytest

from database import Database, init_db, get_db
from leaderboards import rank_leaderboard

OPTIONS = ('one', 'two', 'three', 'four')


def add_questions(db):
    return [
        db.add_question('Easy one', OPTIONS, 'A', 1, 'Basics'),
        db.add_question('Hard one', OPTIONS, 'B', 3, 'Concurrency', 'Because.'),
        db.add_question('Retired', OPTIONS, 'C', 1, 'Basics', is_active=False),
    ]


def test_init_db_is_repeatable(db_path):
    init_db(db_path)
    init_db(db_path)
    db = get_db(db_path)
    try:
        tables = {row['name'] for row in db.cursor.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()}
    finally:
        db.disconnect()

    assert {'students', 'quiz_questions', 'student_quiz_attempts', 'student_check_ins',
            'student_reviews', 'submissions'} <= tables


def test_fetch_active_questions_filters(db):
    easy, hard, _ = add_questions(db)

    assert [q['id'] for q in db.fetch_active_questions()] == [easy, hard]
    assert [q['id'] for q in db.fetch_active_questions(3)] == [hard]
    assert db.fetch_active_questions(2) == []
    assert db.fetch_active_questions()[0]['is_active'] is True


def test_inactive_question_is_not_fetched(db):
    _, _, retired = add_questions(db)
    assert db.fetch_question(retired) is None
    assert db.fetch_question(retired, active_only=False)['question_text'] == 'Retired'


def test_constraints_reject_bad_rows(db):
    with pytest.raises(sqlite3.IntegrityError):
        db.add_question('Bad difficulty', OPTIONS, 'A', 4)
    with pytest.raises(sqlite3.IntegrityError):
        db.add_question('Bad answer', OPTIONS, 'E', 1)

    db.add_student('S1', 'Amy')
    with pytest.raises(sqlite3.IntegrityError):
        db.add_student('S1', 'Amy Again')

    # Attempts must reference an existing question and student
    with pytest.raises(sqlite3.IntegrityError):
        db.record_attempt('S1', 999, 'A', True, 5)
    easy = db.add_question('Easy one', OPTIONS, 'A', 1)
    with pytest.raises(sqlite3.IntegrityError):
        db.record_attempt('S404', easy, 'A', True, 5)


def test_get_or_create_student(db):
    assert db.get_or_create_student('S1') is None

    created = db.get_or_create_student('S1', 'Amy')
    assert created['full_name'] == 'Amy'
    assert created['is_admin'] is False

    existing = db.get_or_create_student('S1', 'Someone Else')
    assert existing['full_name'] == 'Amy'


def test_learner_attempts_are_most_recent_first(db):
    easy, hard, _ = add_questions(db)
    db.add_student('S1', 'Amy')
    db.record_attempt('S1', easy, 'B', False, 0, created_at='2025-03-01T10:00:00Z')
    db.record_attempt('S1', hard, 'B', True, 5, created_at='2025-03-01T12:00:00Z')
    db.record_attempt('S1', easy, 'A', True, 5, created_at='2025-03-01T11:00:00Z')

    attempts = db.fetch_learner_attempts('S1')

    assert [a['created_at'][:19] for a in attempts] == [
        '2025-03-01T12:00:00', '2025-03-01T11:00:00', '2025-03-01T10:00:00'
    ]
    assert attempts[0]['is_correct'] is True
    assert len(db.fetch_all_attempts()) == 3


def test_leaderboard_aggregates(db):
    easy, hard, _ = add_questions(db)
    db.add_student('S1', 'Amy', created_at='2025-01-01T00:00:00Z')
    db.add_student('S2', 'Bob', created_at='2025-01-02T00:00:00Z')

    db.record_check_in('S1', '2025-03-01T08:00:00Z')
    db.record_check_in('S1', '2025-03-03T08:00:00Z')
    db.record_review('S1', ' Notion ', ' Clean layout. ')
    db.record_submission('S2', 'project', 'Midterm app')

    db.record_attempt('S1', easy, 'A', True, 5)
    db.record_attempt('S1', easy, 'A', True, 5)
    db.record_attempt('S1', hard, 'A', False, 0)

    amy, bob = db.fetch_leaderboard_aggregates()

    assert amy['student_id'] == 'S1'
    assert amy['check_in_count'] == 2
    assert amy['latest_check_in'].startswith('2025-03-03T08:00:00')
    assert amy['review_count'] == 1
    assert amy['submission_count'] == 0
    assert amy['quiz_points'] == 5

    assert bob['check_in_count'] == 0
    assert bob['latest_check_in'] is None
    assert bob['submission_count'] == 1
    assert bob['quiz_points'] == 0


def test_apply_points_corrections(db):
    easy, _, _ = add_questions(db)
    db.add_student('S1', 'Amy')
    first = db.record_attempt('S1', easy, 'A', True, 5)
    second = db.record_attempt('S1', easy, 'A', True, 5)

    assert db.apply_points_corrections([]) == 0
    assert db.apply_points_corrections([(second['id'], 0)]) == 1

    points = {a['id']: a['points_earned'] for a in db.fetch_all_attempts()}
    assert points == {first['id']: 5, second['id']: 0}


def test_disconnect_is_safe_to_repeat(db_path):
    db = Database(db_path)
    db.connect()
    db.disconnect()
    db.disconnect()
    assert db.conn is None


def test_learner_attempts_with_questions_are_paged(db):
    easy, hard, _ = add_questions(db)
    db.add_student('S1', 'Amy')
    db.add_student('S2', 'Bob')
    for minute, question_id in enumerate([easy, hard, easy, hard, easy]):
        db.record_attempt('S1', question_id, 'B', question_id == hard, 5 if question_id == hard else 0,
                          created_at=f'2025-03-01T10:0{minute}:00Z')
    db.record_attempt('S2', easy, 'A', True, 5)

    page = db.fetch_learner_attempts_with_questions('S1', limit=2, offset=1)

    assert db.count_learner_attempts('S1') == 5
    assert [a['created_at'][:19] for a in page] == ['2025-03-01T10:03:00', '2025-03-01T10:02:00']
    assert page[0]['is_correct'] is True
    assert page[0]['quiz_questions'] == {
        'question_text': 'Hard one',
        'question_category': 'Concurrency',
        'difficulty_level': 3,
        'option_a': 'one',
        'option_b': 'two',
        'option_c': 'three',
        'option_d': 'four',
        'correct_answer': 'B',
        'explanation': 'Because.'
    }
    assert 'question_text' not in page[0]


def test_fetch_students_newest_first(db):
    db.add_student('S1', 'Amy', created_at='2025-01-01T00:00:00Z')
    db.add_student('S2', 'Bob', is_admin=True, created_at='2025-01-02T00:00:00Z')

    students = db.fetch_students()

    assert [s['student_id'] for s in students] == ['S2', 'S1']
    assert students[0]['is_admin'] is True


def test_delete_student_cascades_to_activity(db):
    easy, _, _ = add_questions(db)
    db.add_student('S1', 'Amy')
    db.add_student('S2', 'Bob')
    for student_id in ('S1', 'S2'):
        db.record_check_in(student_id)
        db.record_review(student_id, 'Notion', 'Clean layout.')
        db.record_submission(student_id, 'project', 'Midterm app')
        db.record_attempt(student_id, easy, 'A', True, 5)

    assert db.delete_student('S1') is True
    assert db.delete_student('S1') is False

    assert db.get_student('S1') is None
    for table in ('student_quiz_attempts', 'student_check_ins', 'student_reviews', 'submissions'):
        remaining = db.cursor.execute(f'SELECT student_id FROM {table}').fetchall()
        assert [row['student_id'] for row in remaining] == ['S2']

    leaderboard = rank_leaderboard(db.fetch_leaderboard_aggregates())
    assert [e['student_id'] for e in leaderboard] == ['S2']
    assert leaderboard[0]['rank'] == 1
