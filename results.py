"""
Result Types
Typed failures returned by the quiz and leaderboard core instead of exceptions.
"""

NO_QUESTIONS_FOUND = 'NO_QUESTIONS_FOUND'
NO_WRONG_QUESTIONS = 'NO_WRONG_QUESTIONS'
STUDENT_NOT_FOUND = 'STUDENT_NOT_FOUND'
QUESTION_NOT_FOUND = 'QUESTION_NOT_FOUND'


class Failure:
    """A named failure the caller maps to its own response."""

    def __init__(self, code, message):
        self.code = code
        self.message = message

    def to_dict(self):
        """Convert failure to the response envelope."""
        return {
            'success': False,
            'error': self.code,
            'message': self.message
        }

    def __repr__(self):
        return f'<Failure {self.code}>'
