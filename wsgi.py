"""
WSGI entry point for Gunicorn
"""
from api import create_app
from config import Config, setup_logging

config = Config.from_env()
setup_logging(config)

app = create_app(config=config)

# Gunicorn workers only poll releases in production
if config.production:
    app.config['RELEASE_SCHEDULER'].start()
