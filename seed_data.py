"""
Development seed data: students, quiz questions, check-ins, reviews,
submissions and quiz attempts.

    python seed_data.py [database_path]
"""

import sys
import random
import logging
from datetime import timedelta

from config import configure_logging
from database import init_db, get_db
from gamification import grade_answer
from timestamps import utc_now

logger = logging.getLogger(__name__)

FIRST_NAMES = ['Alex', 'Jordan', 'Taylor', 'Morgan', 'Casey', 'Riley', 'Jamie', 'Quinn', 'Avery', 'Skyler',
               'Charlie', 'Sam', 'Peyton', 'Reese', 'Dakota', 'Cameron', 'Sage', 'Rowan', 'Sawyer', 'Emerson']
LAST_NAMES = ['Smith', 'Johnson', 'Williams', 'Brown', 'Jones', 'Garcia', 'Miller', 'Davis', 'Rodriguez',
              'Martinez', 'Hernandez', 'Lopez', 'Gonzalez', 'Wilson', 'Anderson', 'Thomas']
MOBILE_APPS = ['Duolingo', 'Notion', 'Spotify', 'Todoist', 'Headspace', 'Strava']

# (text, category, difficulty, options, correct, explanation)
QUESTIONS = [
    ('Which keyword declares a constant in Swift?', 'Swift Basics', 1,
     ('var', 'let', 'const', 'static'), 'B', '`let` binds a value that cannot be reassigned.'),
    ('What does an optional represent?', 'Swift Basics', 1,
     ('A value or nil', 'A lazy value', 'A weak reference', 'A thrown error'), 'A', None),
    ('Which type is a value type?', 'Swift Basics', 1,
     ('class', 'actor', 'struct', 'closure'), 'C', 'Structs are copied on assignment.'),
    ('Which property wrapper owns view state in SwiftUI?', 'SwiftUI', 2,
     ('@Binding', '@State', '@Environment', '@Published'), 'B', None),
    ('Which stack lays views out horizontally?', 'SwiftUI', 1,
     ('VStack', 'ZStack', 'HStack', 'LazyVGrid'), 'C', None),
    ('What does `guard let` require?', 'Swift Basics', 2,
     ('A loop', 'An early exit', 'A default value', 'A closure'), 'B',
     'The else branch of a guard must leave the current scope.'),
    ('Which protocol lets a type be used in ForEach without an id?', 'SwiftUI', 2,
     ('Hashable', 'Codable', 'Identifiable', 'Equatable'), 'C', None),
    ('What does `async let` start?', 'Concurrency', 3,
     ('A detached task', 'A child task', 'A new actor', 'A dispatch queue'), 'B', None),
    ('Which attribute runs code on the main actor?', 'Concurrency', 3,
     ('@MainActor', '@Sendable', '@escaping', '@objc'), 'A', None),
    ('Which type decodes JSON data?', 'Networking', 2,
     ('JSONSerialization', 'PropertyListDecoder', 'JSONDecoder', 'URLSession'), 'C', None),
    ('What does URLSession.shared.data(from:) return?', 'Networking', 3,
     ('Data only', '(Data, URLResponse)', 'URLRequest', 'Result<Data, Error>'), 'B', None),
    ('Which modifier presents a sheet?', 'SwiftUI', 2,
     ('.alert', '.popover', '.sheet', '.overlay'), 'C', None)
]


def seed_questions(db):
    logger.info("Seeding %d questions...", len(QUESTIONS))
    question_ids = []
    for text, category, difficulty, options, correct, explanation in QUESTIONS:
        question_ids.append(db.add_question(text, options, correct, difficulty, category, explanation))
    return question_ids


def seed_students(db, count=25):
    logger.info("Seeding %d students...", count)
    student_ids = []
    start = utc_now() - timedelta(days=60)

    for i in range(count):
        student_id = f"S{1000 + i}"
        if db.get_student(student_id):
            continue
        full_name = f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}"
        db.add_student(student_id, full_name, created_at=start + timedelta(hours=i))
        student_ids.append(student_id)

    return student_ids


def seed_activity(db, student_ids):
    logger.info("Seeding check-ins, reviews and submissions...")
    now = utc_now()

    for student_id in student_ids:
        for _ in range(random.randint(0, 12)):
            db.record_check_in(student_id, now - timedelta(hours=random.randint(1, 24 * 45)))

        if random.random() < 0.6:
            app_name = random.choice(MOBILE_APPS)
            db.record_review(student_id, app_name, f"{app_name} onboarding is clear and quick.")

        if random.random() < 0.5:
            db.record_submission(student_id, 'screenshot', 'Weekly progress screenshot')


def seed_attempts(db, student_ids, question_ids):
    logger.info("Seeding quiz attempts...")
    now = utc_now()

    for student_id in student_ids:
        for _ in range(random.randint(0, 30)):
            question = db.fetch_question(random.choice(question_ids))
            selected = random.choice('ABCD')
            graded = grade_answer(question, selected)
            db.record_attempt(
                student_id,
                question['id'],
                selected,
                graded['is_correct'],
                graded['points_earned'],
                attempt_time_seconds=random.randint(5, 90),
                created_at=now - timedelta(minutes=random.randint(1, 60 * 24 * 30))
            )


def main(db_path=None):
    configure_logging()
    init_db(db_path)
    db = get_db(db_path)

    try:
        question_ids = seed_questions(db)
        student_ids = seed_students(db)
        seed_activity(db, student_ids)
        seed_attempts(db, student_ids, question_ids)
        logger.info("Seeding complete!")
    finally:
        db.disconnect()


if __name__ == '__main__':
    main(sys.argv[1] if len(sys.argv) > 1 else None)
