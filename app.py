"""
Learnify Quiz & Leaderboard API
Flask request layer over the question picker, leaderboard ranker and
quiz scoring modules. Every response uses the envelope
{"success": bool, "data": ...} or {"success": false, "error": CODE, "message": ...}.
"""

import os
import random
import logging
import sqlite3
import threading

from flask import Flask, Blueprint, current_app, g, jsonify, request
from werkzeug.exceptions import HTTPException

from config import Config, configure_logging
from database import get_db, init_db
from gamification import grade_answer, is_valid_answer, reconcile_quiz_points
from leaderboards import (rank_leaderboard, paginate_leaderboard, find_leaderboard_context,
                          clamp_page, clamp_context)
from learning_analytics import (summarize_quiz_scores, summarize_question_attempts,
                                question_difficulty_stats)
from query_params import parse_int
from question_picker import clamp_count, get_quiz_questions
from results import (Failure, NO_QUESTIONS_FOUND, NO_WRONG_QUESTIONS, STUDENT_NOT_FOUND,
                     QUESTION_NOT_FOUND)
from timestamps import utc_now

logger = logging.getLogger(__name__)

SERVICE_NAME = 'learnify-backend'
SERVICE_VERSION = '1.0.0'

FAILURE_STATUS = {
    NO_QUESTIONS_FOUND: 404,
    NO_WRONG_QUESTIONS: 404,
    STUDENT_NOT_FOUND: 404,
    QUESTION_NOT_FOUND: 404
}

quiz_bp = Blueprint('quiz', __name__)
leaderboard_bp = Blueprint('leaderboard', __name__)
admin_bp = Blueprint('admin', __name__)


# ==================== HELPERS ====================

def get_request_db():
    """Open one store connection per request."""
    if 'db' not in g:
        g.db = get_db(current_app.config['DATABASE_PATH'])
    return g.db


def get_request_rng():
    """
    One Random per request, seeded from the app-level source.

    Only the seed draw is shared between threads, so each batch is drawn
    from its own stream.
    """
    if 'quiz_rng' not in g:
        with current_app.extensions['quiz_rng_lock']:
            seed = current_app.extensions['quiz_rng'].getrandbits(64)
        g.quiz_rng = random.Random(seed)
    return g.quiz_rng


def close_request_db(exc=None):
    db = g.pop('db', None)
    if db is not None:
        db.disconnect()


def error_response(code, message, status):
    return jsonify({"success": False, "error": code, "message": message}), status


def failure_response(failure):
    return jsonify(failure.to_dict()), FAILURE_STATUS.get(failure.code, 400)


def parse_difficulty(value):
    """Difficulty filter; anything outside 1-3 means no filter."""
    difficulty = parse_int(value)
    return difficulty if difficulty is not None and 1 <= difficulty <= 3 else None


def student_summary(student):
    return {
        "student_id": student['student_id'],
        "full_name": student['full_name'],
        "uuid": student['id']
    }


def student_not_found(student_id):
    return error_response(STUDENT_NOT_FOUND, f"Student {student_id} not found", 404)


# ==================== QUIZ ====================

@quiz_bp.route('/questions/random', methods=['GET'])
def get_random_questions():
    """Get a quiz batch, prioritizing previously missed questions when student_id is given."""
    config = current_app.config
    count = clamp_count(request.args.get('count'), config['QUIZ_DEFAULT_COUNT'], config['QUIZ_MAX_COUNT'])
    difficulty = parse_difficulty(request.args.get('difficulty'))
    student_id = request.args.get('student_id')
    question_type = request.args.get('question_type')

    result = get_quiz_questions(
        get_request_db(),
        count=count,
        difficulty=difficulty,
        student_id=student_id,
        question_type=question_type,
        rng=get_request_rng(),
        recent_window=config['RECENT_CORRECT_WINDOW']
    )

    if isinstance(result, Failure):
        return failure_response(result)

    return jsonify({
        "success": True,
        "data": {
            "questions": result['questions'],
            "total_available": result['total_available'],
            "selection_method": result['selection_method'],
            "question_type": result['question_type'],
            "wrong_questions_count": result['priority_count']
        }
    })


@quiz_bp.route('/submit-answer', methods=['POST'])
def submit_answer():
    """Submit a quiz answer and get immediate feedback."""
    data = request.get_json(silent=True) or {}
    student_id = data.get('student_id')
    full_name = data.get('full_name')
    question_id = data.get('question_id')
    selected_answer = data.get('selected_answer')
    attempt_time_seconds = data.get('attempt_time_seconds')

    if not student_id or not question_id or not selected_answer:
        return error_response('MISSING_REQUIRED_FIELDS',
                              'student_id, question_id, and selected_answer are required', 400)

    if not is_valid_answer(selected_answer):
        return error_response('INVALID_ANSWER', 'selected_answer must be A, B, C, or D', 400)

    try:
        question_id = int(question_id)
    except (TypeError, ValueError):
        return error_response('INVALID_QUESTION_ID', 'question_id must be an integer', 400)

    db = get_request_db()

    student = db.get_or_create_student(student_id, full_name)
    if not student:
        return error_response('MISSING_FULL_NAME', 'full_name is required for new students', 400)

    question = db.fetch_question(question_id)
    if not question:
        return failure_response(Failure(QUESTION_NOT_FOUND, 'Quiz question not found or inactive'))

    graded = grade_answer(question, selected_answer)
    attempt = db.record_attempt(
        student_id,
        question_id,
        selected_answer,
        graded['is_correct'],
        graded['points_earned'],
        attempt_time_seconds
    )

    return jsonify({
        "success": True,
        "data": {
            "attempt": attempt,
            "is_correct": graded['is_correct'],
            "points_earned": graded['points_earned'],
            "correct_answer": graded['correct_answer'],
            "explanation": graded['explanation']
        },
        "message": graded['message']
    }), 201


@quiz_bp.route('/student/<student_id>/scores', methods=['GET'])
def get_student_scores(student_id):
    """Get a student's quiz totals and most recent attempts."""
    limit, offset = clamp_page(request.args.get('limit'), request.args.get('offset'), 10, 50)

    db = get_request_db()
    student = db.get_student(student_id)
    if not student:
        return student_not_found(student_id)

    attempts = db.fetch_learner_attempts(student_id)

    return jsonify({
        "success": True,
        "data": {
            "student": student_summary(student),
            "quiz_scores": summarize_quiz_scores(student_id, attempts),
            "recent_attempts": attempts[offset:offset + limit],
            "total_attempts": len(attempts),
            "showing": {"limit": limit, "offset": offset}
        }
    })


@quiz_bp.route('/student/<student_id>/attempts', methods=['GET'])
def get_student_attempts(student_id):
    """Get a student's attempt history with question details, most recent first."""
    limit, offset = clamp_page(request.args.get('limit'), request.args.get('offset'), 20, 100)

    db = get_request_db()
    student = db.get_student(student_id)
    if not student:
        return student_not_found(student_id)

    return jsonify({
        "success": True,
        "data": {
            "student": student_summary(student),
            "attempts": db.fetch_learner_attempts_with_questions(student_id, limit, offset),
            "total_attempts": db.count_learner_attempts(student_id),
            "showing": {"limit": limit, "offset": offset}
        }
    })


@quiz_bp.route('/questions/all/<student_id>', methods=['GET'])
def get_questions_with_attempts(student_id):
    """Get every active question with the student's results on it."""
    db = get_request_db()
    student = db.get_student(student_id)
    if not student:
        return student_not_found(student_id)

    overview = summarize_question_attempts(
        db.fetch_active_questions(),
        db.fetch_learner_attempts(student_id)
    )

    return jsonify({
        "success": True,
        "data": {
            "student": student_summary(student),
            "questions": overview['questions'],
            "summary": overview['summary']
        }
    })


@quiz_bp.route('/questions/stats', methods=['GET'])
def get_question_stats():
    """Get active question counts by difficulty level."""
    stats = question_difficulty_stats(get_request_db().fetch_active_questions())
    return jsonify({"success": True, "data": stats})


# ==================== LEADERBOARD ====================

@leaderboard_bp.route('/leaderboard', methods=['GET'])
def get_leaderboard():
    """Get the ranked leaderboard, one page at a time."""
    config = current_app.config
    limit, offset = clamp_page(
        request.args.get('limit'),
        request.args.get('offset'),
        config['LEADERBOARD_DEFAULT_LIMIT'],
        config['LEADERBOARD_MAX_LIMIT']
    )

    leaderboard = rank_leaderboard(get_request_db().fetch_leaderboard_aggregates())

    return jsonify({
        "success": True,
        "data": paginate_leaderboard(leaderboard, limit, offset)
    })


@leaderboard_bp.route('/leaderboard/student/<student_id>', methods=['GET'])
def get_student_rank(student_id):
    """Get a student's rank and the students around them."""
    config = current_app.config
    context = clamp_context(
        request.args.get('context'),
        config['LEADERBOARD_DEFAULT_CONTEXT'],
        config['LEADERBOARD_MAX_CONTEXT']
    )

    leaderboard = rank_leaderboard(get_request_db().fetch_leaderboard_aggregates())
    result = find_leaderboard_context(leaderboard, student_id, context)

    if isinstance(result, Failure):
        return failure_response(result)

    return jsonify({"success": True, "data": result})


# ==================== ADMIN ====================

@admin_bp.route('/fix-quiz-scores', methods=['POST'])
def fix_quiz_scores():
    """Recalculate quiz points so each question pays out once per student."""
    db = get_request_db()
    report = reconcile_quiz_points(db.fetch_all_attempts())
    attempts_updated = db.apply_points_corrections(report['corrections'])

    logger.info("Quiz score reconciliation: %d students, %d attempts updated",
                report['students_processed'], attempts_updated)

    if report['students_processed'] == 0:
        message = 'No quiz attempts found to fix'
    else:
        message = f"Quiz scores fixed for {report['students_processed']} students"

    return jsonify({
        "success": True,
        "message": message,
        "data": {
            "students_processed": report['students_processed'],
            "total_points_corrected": report['total_points_corrected'],
            "attempts_updated": attempts_updated,
            "details": report['details']
        }
    })


@admin_bp.route('/students', methods=['GET'])
def list_students():
    """Get every student, newest first."""
    return jsonify({"success": True, "data": get_request_db().fetch_students()})


@admin_bp.route('/students/<student_id>', methods=['DELETE'])
def delete_student(student_id):
    """Delete a student and everything recorded for them."""
    db = get_request_db()
    student = db.get_student(student_id)
    if not student:
        return student_not_found(student_id)

    if student['is_admin']:
        return error_response('CANNOT_DELETE_ADMIN', 'Cannot delete admin accounts', 400)

    db.delete_student(student_id)

    return jsonify({
        "success": True,
        "message": f"Student {student_id} ({student['full_name']}) has been deleted",
        "data": {
            "deleted_student": {
                "student_id": student['student_id'],
                "full_name": student['full_name'],
                "is_admin": student['is_admin']
            }
        }
    })


# ==================== APPLICATION ====================

def handle_http_error(error):
    if error.code == 404:
        return error_response('NOT_FOUND', f"Route {request.method} {request.path} not found", 404)
    return error_response(error.name.upper().replace(' ', '_'), error.description, error.code)


def handle_unexpected_error(error):
    logger.exception("Unhandled error on %s %s", request.method, request.path)
    return error_response('INTERNAL_ERROR', 'Internal server error', 500)


def create_app(overrides=None):
    """
    Build the Flask application.

    Args:
        overrides: Optional config values applied on top of Config
                   (tests point DATABASE_PATH at a temporary file)
    """
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    configure_logging(app.config['LOG_LEVEL'], app.config['LOG_FORMAT'])

    seed = app.config.get('QUIZ_RANDOM_SEED')
    app.extensions['quiz_rng'] = random.Random(int(seed)) if seed not in (None, '') else random.Random()
    app.extensions['quiz_rng_lock'] = threading.Lock()

    init_db(app.config['DATABASE_PATH'])

    app.register_blueprint(quiz_bp, url_prefix='/api/quiz')
    app.register_blueprint(leaderboard_bp, url_prefix='/api')
    app.register_blueprint(admin_bp, url_prefix='/api/admin')

    app.teardown_appcontext(close_request_db)
    app.register_error_handler(HTTPException, handle_http_error)
    app.register_error_handler(sqlite3.Error, handle_unexpected_error)
    app.register_error_handler(Exception, handle_unexpected_error)

    @app.route('/health')
    def health():
        return jsonify({
            "status": "ok",
            "timestamp": utc_now().isoformat(),
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION
        })

    @app.route('/')
    def index():
        return jsonify({
            "message": "Learnify Backend API",
            "version": SERVICE_VERSION,
            "health": "/health"
        })

    return app


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    create_app().run(host='0.0.0.0', port=port, debug=False)
