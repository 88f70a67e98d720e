import logging
import traceback

from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_socketio import SocketIO
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
from klub.config import config, DEFAULT_SECRET_KEY

db = SQLAlchemy()
socketio = SocketIO()

logger = logging.getLogger(__name__)


def _parse_allowed_origins(raw_origins):
    if not raw_origins:
        return '*'

    if isinstance(raw_origins, (list, tuple, set)):
        cleaned = [origin for origin in raw_origins if origin]
        return cleaned or '*'

    raw_text = str(raw_origins).strip()
    if not raw_text or raw_text == '*':
        return '*'

    origins = [origin.strip() for origin in raw_text.split(',') if origin.strip()]
    return origins or '*'


def _configure_logging(app):
    level_name = str(app.config.get('LOG_LEVEL') or 'INFO').upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )
    logging.getLogger('klub').setLevel(level)


def _register_error_handlers(app):
    @app.errorhandler(HTTPException)
    def _handle_http_exception(exc):
        return jsonify({'message': exc.description or exc.name}), exc.code

    @app.errorhandler(Exception)
    def _handle_unexpected_exception(exc):
        logger.exception('Unhandled error: %s', exc)
        db.session.rollback()
        payload = {'message': 'Błąd serwera'}
        if app.config.get('PROPAGATE_ERROR_DETAILS'):
            payload['error'] = str(exc)
            payload['stack'] = traceback.format_exc()
        return jsonify(payload), 500


def create_app(config_name='development'):
    app = Flask(__name__)
    app.config.from_object(config[config_name])
    _configure_logging(app)

    allowed_origins = _parse_allowed_origins(app.config.get('CORS_ALLOWED_ORIGINS', '*'))
    if str(config_name).strip().lower() == 'production':
        secret_key = str(app.config.get('SECRET_KEY') or '').strip()
        if not secret_key or secret_key == DEFAULT_SECRET_KEY:
            raise RuntimeError('JWT_SECRET must be set to a non-default value in production')
        if not app.config.get('SQLALCHEMY_DATABASE_URI'):
            raise RuntimeError('DATABASE_URL must be set in production')

    db.init_app(app)
    socketio.init_app(
        app,
        cors_allowed_origins=allowed_origins,
        async_mode=app.config.get('SOCKETIO_ASYNC_MODE', 'threading'),
    )
    CORS(app, resources={r'/api/*': {'origins': allowed_origins}})
    _register_error_handlers(app)

    from klub.routes.auth import auth_bp
    from klub.routes.password import password_bp
    from klub.routes.admin import admin_bp
    from klub.routes.events import events_bp
    from klub.routes.squads import squads_bp
    from klub.routes.statistics import statistics_bp
    from klub.routes.mail import mail_bp
    from klub.routes.reports import reports_bp

    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(password_bp, url_prefix='/api/password')
    app.register_blueprint(admin_bp, url_prefix='/api/admin')
    app.register_blueprint(events_bp, url_prefix='/api/wydarzenia')
    app.register_blueprint(squads_bp, url_prefix='/api/squads')
    app.register_blueprint(statistics_bp, url_prefix='/api/statystyki')
    app.register_blueprint(mail_bp, url_prefix='/api/mail')
    app.register_blueprint(reports_bp, url_prefix='/api/reports')

    @app.route('/api/health')
    def health():
        return jsonify({'status': 'OK', 'message': 'Serwer działa poprawnie'})

    with app.app_context():
        from klub import models  # noqa: F401
        db.create_all()

    return app
