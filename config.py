"""
Application Configuration
Settings for the quiz and leaderboard service, read from the environment.
"""

import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _int_env(name, default):
    value = os.environ.get(name)
    if value is None or value == '':
        return default
    return int(value)


class Config:
    """Base configuration"""
    # Database
    DATABASE_PATH = os.environ.get('DATABASE_PATH', 'learnify.db')

    # Quiz selection
    QUIZ_DEFAULT_COUNT = _int_env('QUIZ_DEFAULT_COUNT', 5)
    QUIZ_MAX_COUNT = _int_env('QUIZ_MAX_COUNT', 20)
    RECENT_CORRECT_WINDOW = _int_env('RECENT_CORRECT_WINDOW', 10)
    QUIZ_RANDOM_SEED = os.environ.get('QUIZ_RANDOM_SEED')  # seeds the per-request streams; unset = OS entropy

    # Leaderboard
    LEADERBOARD_DEFAULT_LIMIT = 50
    LEADERBOARD_MAX_LIMIT = _int_env('LEADERBOARD_MAX_LIMIT', 100)
    LEADERBOARD_DEFAULT_CONTEXT = 5
    LEADERBOARD_MAX_CONTEXT = _int_env('LEADERBOARD_MAX_CONTEXT', 20)

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level=None, fmt=None):
    """Configure root logging once for the service."""
    logging.basicConfig(
        level=getattr(logging, (level or Config.LOG_LEVEL).upper(), logging.INFO),
        format=fmt or Config.LOG_FORMAT,
    )
    return logging.getLogger('learnify')
