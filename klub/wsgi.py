"""WSGI entrypoint used by Gunicorn."""
import os

from klub.app import create_app
from klub.reminders import start_reminder_worker

config_name = os.environ.get('FLASK_ENV', 'production')
app = create_app(config_name)
start_reminder_worker(app)
