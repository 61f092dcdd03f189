from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from sqlalchemy.orm.exc import StaleDataError
from dotenv import load_dotenv
from typing import Optional, Dict, Any

from portal.config.settings import load_settings
from portal.workflow.errors import (
    InvalidActorContext,
    NO_SUCH_TRANSITION,
    NOT_PERMITTED,
    NOT_READY,
    TransitionDenied,
)

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()

DENIAL_STATUS = {
    NO_SUCH_TRANSITION: (400, 'Bad Request'),
    NOT_READY: (400, 'Bad Request'),
    NOT_PERMITTED: (403, 'Forbidden'),
}


def error_payload(status: int, title: str, detail: str, **extra):
    body = {'status': status, 'title': title, 'detail': detail}
    body.update(extra)
    return {'error': body}, status


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    app = Flask(__name__)

    # environment first, explicit overrides (tests, callers) win
    app.config.update(load_settings(config))
    app.logger.setLevel(app.config['LOG_LEVEL'])

    # Database
    db_url = app.config['DATABASE_URL']
    if db_url.endswith(':memory:'):
        # Ensure a single shared in-memory SQLite database across all sessions
        db_engine = create_engine(
            db_url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        db_engine = create_engine(db_url, echo=False, future=True)
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    jwt.init_app(app)

    from .routes.auth import auth_bp
    from .routes.events import events_bp
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(events_bp, url_prefix='/api/events')

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    @app.teardown_appcontext
    def remove_session(exc):  # type: ignore
        if SessionLocal is not None:
            SessionLocal.remove()

    @app.errorhandler(TransitionDenied)
    def handle_transition_denied(e):  # type: ignore
        get_db().rollback()
        status, title = DENIAL_STATUS.get(e.reason, (400, 'Bad Request'))
        app.logger.info('Transition denied (%s): %s', e.reason, e.message)
        return error_payload(status, title, e.message, **e.to_dict())

    @app.errorhandler(InvalidActorContext)
    def handle_invalid_actor(e):  # type: ignore
        app.logger.warning('Invalid actor context: %s', e.message)
        return error_payload(400, 'Bad Request', e.message, **e.to_dict())

    @app.errorhandler(StaleDataError)
    def handle_stale(e):  # type: ignore
        get_db().rollback()
        app.logger.warning('Concurrent modification rejected: %s', e)
        return error_payload(409, 'Conflict', 'Event was modified concurrently; re-fetch and retry')

    # Unified error handler producing standardized JSON shape
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            return error_payload(e.code, e.name, e.description)
        # Unhandled exception
        app.logger.exception('Unhandled exception')
        return error_payload(500, 'Internal Server Error', 'Unexpected error')

    from .openapi import build_openapi_spec

    @app.route('/openapi.json')
    def openapi_spec():
        return build_openapi_spec()

    @app.route('/docs')
    def docs_index():
        # Lightweight HTML referencing Redoc CDN (no local install) for quick browsing
        return (
            "<!DOCTYPE html><html><head><title>Events Portal API</title>"
            "<link rel=\"stylesheet\" href=\"https://cdn.jsdelivr.net/npm/redoc@next/bundles/redoc.standalone.css\" />"
            "</head><body><redoc spec-url='/openapi.json'></redoc>"
            "<script src='https://cdn.jsdelivr.net/npm/redoc@next/bundles/redoc.standalone.js'></script>"
            "</body></html>"
        )

    return app


def get_db():
    return SessionLocal()
