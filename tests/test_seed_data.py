import seed_data
from database import get_db
from leaderboards import rank_leaderboard


def test_seed_populates_questions_students_and_ranks(db_path):
    seed_data.main(db_path)

    db = get_db(db_path)
    try:
        questions = db.fetch_active_questions()
        aggregates = db.fetch_leaderboard_aggregates()
    finally:
        db.disconnect()

    assert len(questions) == len(seed_data.QUESTIONS)
    assert len(aggregates) == 25

    leaderboard = rank_leaderboard(aggregates)
    assert [e['rank'] for e in leaderboard] == list(range(1, 26))
    assert all(e['points_breakdown']['quiz_points'] % 5 == 0 for e in leaderboard)
