"""
Database Module
SQLite store for students, quiz questions, quiz attempts and the activity
(check-ins, app reviews, project submissions) the leaderboard is built from.

Author: Learnify Backend Team
Date: October 2026

Uniqueness, answer/difficulty domains and attempt -> question references are
declared as table constraints so the store rejects inconsistent writes.
"""

import sqlite3
import logging

from config import Config
from gamification import POINTS_PER_CORRECT
from timestamps import parse_timestamp, utc_now

logger = logging.getLogger(__name__)


def _timestamp(value=None):
    """Stored timestamps are always UTC ISO-8601 so text ordering is time ordering."""
    return (parse_timestamp(value) or utc_now()).isoformat(timespec='microseconds')


QUESTION_DETAIL_FIELDS = ('question_text', 'question_category', 'difficulty_level', 'option_a',
                          'option_b', 'option_c', 'option_d', 'correct_answer', 'explanation')


def _question_from_row(row):
    question = dict(row)
    question['is_active'] = bool(question['is_active'])
    return question


def _attempt_from_row(row):
    attempt = dict(row)
    attempt['is_correct'] = bool(attempt['is_correct'])
    return attempt


class Database:
    """Database manager for the quiz and leaderboard service."""

    def __init__(self, db_path=None):
        """Initialize database connection settings."""
        self.db_path = db_path or Config.DATABASE_PATH
        self.conn = None
        self.cursor = None

    def connect(self):
        """Establish database connection."""
        self.conn = sqlite3.connect(self.db_path)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute('PRAGMA foreign_keys = ON')
        self.cursor = self.conn.cursor()

    def disconnect(self):
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None
            self.cursor = None

    def create_tables(self):
        """Create all tables."""

        # Students
        self.cursor.execute('''
            CREATE TABLE IF NOT EXISTS students (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                student_id TEXT UNIQUE NOT NULL,
                full_name TEXT NOT NULL,
                is_admin BOOLEAN DEFAULT 0,
                created_at TIMESTAMP NOT NULL
            )
        ''')

        # Quiz questions
        self.cursor.execute('''
            CREATE TABLE IF NOT EXISTS quiz_questions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                question_text TEXT NOT NULL,
                question_category TEXT,
                difficulty_level INTEGER NOT NULL CHECK (difficulty_level IN (1, 2, 3)),
                option_a TEXT NOT NULL,
                option_b TEXT NOT NULL,
                option_c TEXT NOT NULL,
                option_d TEXT NOT NULL,
                correct_answer TEXT NOT NULL CHECK (correct_answer IN ('A', 'B', 'C', 'D')),
                explanation TEXT,
                is_active BOOLEAN DEFAULT 1,
                created_at TIMESTAMP NOT NULL
            )
        ''')

        # Quiz attempts (append-only apart from reconciliation of points_earned)
        self.cursor.execute('''
            CREATE TABLE IF NOT EXISTS student_quiz_attempts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                student_id TEXT NOT NULL,
                question_id INTEGER NOT NULL,
                selected_answer TEXT NOT NULL CHECK (selected_answer IN ('A', 'B', 'C', 'D')),
                is_correct BOOLEAN NOT NULL,
                points_earned INTEGER DEFAULT 0,
                attempt_time_seconds INTEGER,
                created_at TIMESTAMP NOT NULL,
                FOREIGN KEY (student_id) REFERENCES students(student_id) ON DELETE CASCADE,
                FOREIGN KEY (question_id) REFERENCES quiz_questions(id)
            )
        ''')

        # Check-ins
        self.cursor.execute('''
            CREATE TABLE IF NOT EXISTS student_check_ins (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                student_id TEXT NOT NULL,
                created_at TIMESTAMP NOT NULL,
                FOREIGN KEY (student_id) REFERENCES students(student_id) ON DELETE CASCADE
            )
        ''')

        # App reviews
        self.cursor.execute('''
            CREATE TABLE IF NOT EXISTS student_reviews (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                student_id TEXT NOT NULL,
                mobile_app_name TEXT NOT NULL,
                review_text TEXT NOT NULL,
                created_at TIMESTAMP NOT NULL,
                FOREIGN KEY (student_id) REFERENCES students(student_id) ON DELETE CASCADE
            )
        ''')

        # Screenshot and project submissions
        self.cursor.execute('''
            CREATE TABLE IF NOT EXISTS submissions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                student_id TEXT NOT NULL,
                submission_type TEXT NOT NULL DEFAULT 'screenshot',
                title TEXT,
                created_at TIMESTAMP NOT NULL,
                FOREIGN KEY (student_id) REFERENCES students(student_id) ON DELETE CASCADE
            )
        ''')

        self.conn.commit()

    def create_indexes(self):
        """Create indexes for better query performance."""

        indexes = [
            'CREATE INDEX IF NOT EXISTS idx_questions_active ON quiz_questions(is_active, difficulty_level)',
            'CREATE INDEX IF NOT EXISTS idx_attempts_student ON student_quiz_attempts(student_id, created_at)',
            'CREATE INDEX IF NOT EXISTS idx_attempts_question ON student_quiz_attempts(question_id)',
            'CREATE INDEX IF NOT EXISTS idx_check_ins_student ON student_check_ins(student_id, created_at)',
            'CREATE INDEX IF NOT EXISTS idx_reviews_student ON student_reviews(student_id)',
            'CREATE INDEX IF NOT EXISTS idx_submissions_student ON submissions(student_id)'
        ]

        for index_sql in indexes:
            self.cursor.execute(index_sql)

        self.conn.commit()

    def initialize_database(self):
        """Initialize database with tables and indexes."""
        self.connect()
        self.create_tables()
        self.create_indexes()
        logger.info("Database initialized at %s", self.db_path)

    def _write(self, sql, params):
        try:
            self.cursor.execute(sql, params)
            self.conn.commit()
            return self.cursor.lastrowid
        except sqlite3.Error:
            self.conn.rollback()
            raise

    # ==================== READS ====================

    def fetch_active_questions(self, difficulty=None):
        """
        Get every active question, answers included.

        Args:
            difficulty: Optional difficulty level (1-3) to filter on

        Returns:
            List of question dicts ordered by difficulty, then id
        """
        sql = 'SELECT * FROM quiz_questions WHERE is_active = 1'
        params = []

        if difficulty is not None:
            sql += ' AND difficulty_level = ?'
            params.append(difficulty)

        sql += ' ORDER BY difficulty_level, id'
        rows = self.cursor.execute(sql, params).fetchall()
        return [_question_from_row(row) for row in rows]

    def fetch_question(self, question_id, active_only=True):
        sql = 'SELECT * FROM quiz_questions WHERE id = ?'
        if active_only:
            sql += ' AND is_active = 1'
        row = self.cursor.execute(sql, (question_id,)).fetchone()
        return _question_from_row(row) if row else None

    def fetch_learner_attempts(self, student_id):
        """Get a learner's attempts, most recent first."""
        rows = self.cursor.execute('''
            SELECT * FROM student_quiz_attempts
            WHERE student_id = ?
            ORDER BY created_at DESC, id DESC
        ''', (student_id,)).fetchall()
        return [_attempt_from_row(row) for row in rows]

    def fetch_learner_attempts_with_questions(self, student_id, limit=20, offset=0):
        """
        Get one page of a learner's attempts with the question each answered.

        Args:
            student_id: Learner to look up
            limit: Page size
            offset: Number of attempts to skip, most recent first

        Returns:
            List of attempt dicts, each carrying a quiz_questions dict
        """
        rows = self.cursor.execute('''
            SELECT
                a.*,
                q.question_text,
                q.question_category,
                q.difficulty_level,
                q.option_a,
                q.option_b,
                q.option_c,
                q.option_d,
                q.correct_answer,
                q.explanation
            FROM student_quiz_attempts a
            JOIN quiz_questions q ON q.id = a.question_id
            WHERE a.student_id = ?
            ORDER BY a.created_at DESC, a.id DESC
            LIMIT ? OFFSET ?
        ''', (student_id, limit, offset)).fetchall()

        attempts = []
        for row in rows:
            row = dict(row)
            question = {key: row.pop(key) for key in QUESTION_DETAIL_FIELDS}
            attempt = _attempt_from_row(row)
            attempt['quiz_questions'] = question
            attempts.append(attempt)
        return attempts

    def count_learner_attempts(self, student_id):
        row = self.cursor.execute(
            'SELECT COUNT(*) AS total FROM student_quiz_attempts WHERE student_id = ?',
            (student_id,)
        ).fetchone()
        return row['total']

    def fetch_all_attempts(self):
        """Get every attempt in the store, oldest first."""
        rows = self.cursor.execute('''
            SELECT * FROM student_quiz_attempts ORDER BY created_at, id
        ''').fetchall()
        return [_attempt_from_row(row) for row in rows]

    def fetch_leaderboard_aggregates(self):
        """
        Get the per-learner activity counts the leaderboard ranks on.

        Quiz points are recomputed from the attempt log on every read:
        POINTS_PER_CORRECT for each distinct question answered correctly.

        Returns:
            List of aggregate dicts in student registration order
        """
        rows = self.cursor.execute('''
            SELECT
                s.student_id,
                s.full_name,
                (SELECT COUNT(*) FROM student_check_ins c
                    WHERE c.student_id = s.student_id) AS check_in_count,
                (SELECT MAX(c.created_at) FROM student_check_ins c
                    WHERE c.student_id = s.student_id) AS latest_check_in,
                (SELECT COUNT(*) FROM student_reviews r
                    WHERE r.student_id = s.student_id) AS review_count,
                (SELECT COUNT(*) FROM submissions sub
                    WHERE sub.student_id = s.student_id) AS submission_count,
                (SELECT COUNT(DISTINCT a.question_id) FROM student_quiz_attempts a
                    WHERE a.student_id = s.student_id AND a.is_correct = 1) * ? AS quiz_points
            FROM students s
            ORDER BY s.created_at, s.id
        ''', (POINTS_PER_CORRECT,)).fetchall()
        return [dict(row) for row in rows]

    def fetch_students(self):
        """Get every student, newest registration first."""
        rows = self.cursor.execute(
            'SELECT * FROM students ORDER BY created_at DESC, id DESC'
        ).fetchall()
        students = []
        for row in rows:
            student = dict(row)
            student['is_admin'] = bool(student['is_admin'])
            students.append(student)
        return students

    def get_student(self, student_id):
        row = self.cursor.execute(
            'SELECT * FROM students WHERE student_id = ?', (student_id,)
        ).fetchone()
        if not row:
            return None
        student = dict(row)
        student['is_admin'] = bool(student['is_admin'])
        return student

    # ==================== WRITES ====================

    def add_student(self, student_id, full_name, is_admin=False, created_at=None):
        self._write('''
            INSERT INTO students (student_id, full_name, is_admin, created_at)
            VALUES (?, ?, ?, ?)
        ''', (student_id, full_name, int(is_admin), _timestamp(created_at)))
        return self.get_student(student_id)

    def get_or_create_student(self, student_id, full_name=None):
        """
        Look up a learner, registering them on first contact.

        Returns:
            Student dict, or None when the learner is unknown and no
            full_name was supplied
        """
        student = self.get_student(student_id)
        if student:
            return student
        if not full_name:
            return None

        logger.info("Registering new student %s", student_id)
        return self.add_student(student_id, full_name)

    def add_question(self, question_text, options, correct_answer, difficulty_level=1,
                     question_category=None, explanation=None, is_active=True):
        """
        Insert a quiz question.

        Args:
            options: Sequence of the four option texts, A to D
        """
        option_a, option_b, option_c, option_d = options
        return self._write('''
            INSERT INTO quiz_questions
            (question_text, question_category, difficulty_level, option_a, option_b,
             option_c, option_d, correct_answer, explanation, is_active, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ''', (question_text, question_category, difficulty_level, option_a, option_b,
              option_c, option_d, correct_answer, explanation, int(is_active), _timestamp()))

    def record_attempt(self, student_id, question_id, selected_answer, is_correct,
                       points_earned, attempt_time_seconds=None, created_at=None):
        """Append one quiz attempt and return it."""
        attempt_id = self._write('''
            INSERT INTO student_quiz_attempts
            (student_id, question_id, selected_answer, is_correct, points_earned,
             attempt_time_seconds, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        ''', (student_id, question_id, selected_answer, int(is_correct), points_earned,
              attempt_time_seconds, _timestamp(created_at)))

        row = self.cursor.execute(
            'SELECT * FROM student_quiz_attempts WHERE id = ?', (attempt_id,)
        ).fetchone()
        return _attempt_from_row(row)

    def apply_points_corrections(self, corrections):
        """
        Rewrite points_earned on the given attempts in one transaction.

        Args:
            corrections: Iterable of (attempt_id, points) pairs

        Returns:
            Number of attempts updated
        """
        corrections = [(points, attempt_id) for attempt_id, points in corrections]
        if not corrections:
            return 0

        try:
            self.cursor.executemany(
                'UPDATE student_quiz_attempts SET points_earned = ? WHERE id = ?',
                corrections
            )
            self.conn.commit()
        except sqlite3.Error:
            self.conn.rollback()
            raise

        return len(corrections)

    def delete_student(self, student_id):
        """
        Remove a student.

        Their attempts, check-ins, reviews and submissions go with them
        through the ON DELETE CASCADE foreign keys.

        Returns:
            True if a student was deleted
        """
        try:
            self.cursor.execute('DELETE FROM students WHERE student_id = ?', (student_id,))
            self.conn.commit()
        except sqlite3.Error:
            self.conn.rollback()
            raise

        deleted = self.cursor.rowcount > 0
        if deleted:
            logger.info("Deleted student %s", student_id)
        return deleted

    def record_check_in(self, student_id, created_at=None):
        return self._write(
            'INSERT INTO student_check_ins (student_id, created_at) VALUES (?, ?)',
            (student_id, _timestamp(created_at))
        )

    def record_review(self, student_id, mobile_app_name, review_text, created_at=None):
        return self._write('''
            INSERT INTO student_reviews (student_id, mobile_app_name, review_text, created_at)
            VALUES (?, ?, ?, ?)
        ''', (student_id, mobile_app_name.strip(), review_text.strip(), _timestamp(created_at)))

    def record_submission(self, student_id, submission_type='screenshot', title=None, created_at=None):
        return self._write('''
            INSERT INTO submissions (student_id, submission_type, title, created_at)
            VALUES (?, ?, ?, ?)
        ''', (student_id, submission_type, title, _timestamp(created_at)))


# Utility functions for database operations
def get_db(db_path=None):
    """Get a connected database instance."""
    db = Database(db_path)
    db.connect()
    return db


def init_db(db_path=None):
    """Initialize the database."""
    db = Database(db_path)
    db.initialize_database()
    db.disconnect()


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    init_db()
