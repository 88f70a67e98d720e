#!/usr/bin/env python3
"""Entry point for the club manager API."""
import logging
import os
import sys

from dotenv import load_dotenv
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

load_dotenv()

from klub.app import create_app, socketio, db  # noqa: E402
from klub.reminders import start_reminder_worker  # noqa: E402

logger = logging.getLogger('klub.run')

config_name = os.environ.get('FLASK_ENV', 'development')

try:
    app = create_app(config_name)
    with app.app_context():
        db.session.execute(text('SELECT 1'))
except OperationalError:
    logger.exception('Nie można połączyć z bazą danych')
    sys.exit(1)

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 4000))
    start_reminder_worker(app)
    logger.info('Serwer działa na porcie %s', port)
    socketio.run(
        app, host='0.0.0.0', port=port,
        debug=(config_name == 'development'),
        use_reloader=False,
        allow_unsafe_werkzeug=True,
    )
