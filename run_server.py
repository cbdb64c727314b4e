"""
Production API server using Waitress
"""
import logging

from waitress import serve

from api import create_app
from config import Config, setup_logging

logger = logging.getLogger(__name__)


def main():
    config = Config.from_env()
    setup_logging(config)

    app = create_app(config=config)
    app.config['RELEASE_SCHEDULER'].start()

    logger.info('MangaRock Release API listening on http://%s:%d', config.host, config.port)
    serve(app, host=config.host, port=config.port, threads=4)


if __name__ == '__main__':
    main()
