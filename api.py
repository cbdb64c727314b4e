import logging
from datetime import datetime

import requests
from flask import Flask, jsonify, request
from flask.json.provider import DefaultJSONProvider
from flask_cors import CORS
from werkzeug.exceptions import BadRequest, HTTPException

from config import Config
from crawler import MangaRockCrawler, MangaRockError
from scheduler import ReleaseScheduler
from utils import parse_timestamp

logger = logging.getLogger(__name__)

FILTER_KEYS = ('genres', 'order', 'rank', 'status')


class IsoJSONProvider(DefaultJSONProvider):
    """Serializes datetimes as ISO 8601 instead of HTTP dates"""

    @staticmethod
    def default(o):
        if isinstance(o, datetime):
            return o.isoformat()
        return DefaultJSONProvider.default(o)


def _error(message, status):
    return jsonify({
        'success': False,
        'error': message
    }), status


def _ids_from_body():
    data = request.get_json(silent=True)
    if not data or 'ids' not in data:
        raise BadRequest('ids parameter required')
    ids = data['ids']
    if not isinstance(ids, list):
        raise BadRequest('ids must be an array')
    if len(ids) == 0:
        raise BadRequest('ids cannot be empty')
    return ids


def create_app(crawler=None, release_scheduler=None, config=None):
    """Builds the Flask app around a crawler and its release scheduler"""
    config = config or Config.from_env()
    crawler = crawler or MangaRockCrawler(config=config)
    release_scheduler = release_scheduler or ReleaseScheduler(crawler, config)

    app = Flask(__name__)
    app.json = IsoJSONProvider(app)
    app.config['CRAWLER'] = crawler
    app.config['RELEASE_SCHEDULER'] = release_scheduler
    CORS(app)

    @app.errorhandler(MangaRockError)
    def handle_api_error(e):
        logger.warning('MangaRock API error: %s', e)
        return _error(str(e), 502)

    @app.errorhandler(requests.RequestException)
    def handle_upstream_error(e):
        logger.warning('MangaRock request failed: %s', e)
        return _error(str(e), 502)

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return _error(e.description, e.code)

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        logger.exception('Unhandled error on %s', request.path)
        return _error(str(e), 500)

    @app.route('/', methods=['GET'])
    def home():
        """Service description"""
        return jsonify({
            'service': 'MangaRock Release API',
            'version': '1.0.0',
            'status': 'online',
            'endpoints': {
                'health_check': {'method': 'GET', 'url': '/health'},
                'manga': {'method': 'GET', 'url': '/api/manga/<oid>'},
                'mangas_meta': {'method': 'POST', 'url': '/api/manga/meta', 'request_body': {'ids': ['mrs-serie-1']}},
                'filter': {'method': 'POST', 'url': '/api/manga/filter', 'request_body': {'order': 'rank', 'status': 'all'}},
                'authors': {'method': 'POST', 'url': '/api/authors', 'request_body': {'ids': ['mrs-author-1']}},
                'categories': {'method': 'POST', 'url': '/api/categories', 'request_body': {'ids': ['mrs-genre-1']}},
                'releases': {'method': 'GET', 'url': '/api/releases?from=2019-04-01T00:00:00Z'},
                'scheduler_status': {'method': 'GET', 'url': '/api/scheduler/status'},
                'scheduler_run_now': {'method': 'POST', 'url': '/api/scheduler/run-now'}
            }
        })

    @app.route('/health', methods=['GET'])
    def health_check():
        return jsonify({
            'status': 'online',
            'message': 'MangaRock Release API is running'
        })

    @app.route('/api/manga/<oid>', methods=['GET'])
    def get_manga(oid):
        return jsonify(crawler.get_manga(oid))

    @app.route('/api/manga/meta', methods=['POST', 'OPTIONS'])
    def get_mangas_meta():
        if request.method == 'OPTIONS':
            return '', 204
        return jsonify(crawler.get_mangas_data(_ids_from_body()))

    @app.route('/api/manga/filter', methods=['POST', 'OPTIONS'])
    def filter_mangas():
        """
        Request Body (every key optional):
        {"genres": {"mrs-genre-304068": true}, "order": "rank", "rank": "all", "status": "all"}
        """
        if request.method == 'OPTIONS':
            return '', 204
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            raise BadRequest('request body must be an object')
        filters = {key: data[key] for key in FILTER_KEYS if key in data}
        return jsonify(crawler.get_mangas_for_filters(filters))

    @app.route('/api/authors', methods=['POST', 'OPTIONS'])
    def get_authors():
        if request.method == 'OPTIONS':
            return '', 204
        return jsonify(crawler.get_authors_data(_ids_from_body()))

    @app.route('/api/categories', methods=['POST', 'OPTIONS'])
    def get_categories():
        if request.method == 'OPTIONS':
            return '', 204
        return jsonify(crawler.get_categories_data(_ids_from_body()))

    @app.route('/api/releases', methods=['GET'])
    def get_releases():
        """Latest releases, optionally only those since ?from=<ISO 8601>"""
        since = request.args.get('from')
        from_ = None
        if since:
            try:
                from_ = parse_timestamp(since)
            except ValueError as e:
                raise BadRequest(str(e)) from None
        return jsonify(crawler.get_releases(from_))

    @app.route('/api/scheduler/status', methods=['GET'])
    def scheduler_status():
        next_run = release_scheduler.get_next_run()
        return jsonify({
            'success': True,
            'scheduler': {
                'is_running': release_scheduler.is_running,
                'test_mode': release_scheduler.test_mode,
                'next_run': next_run,
                'last_check': release_scheduler.last_check
            },
            'latest_releases': release_scheduler.latest_releases
        }), 200

    @app.route('/api/scheduler/run-now', methods=['POST', 'OPTIONS'])
    def run_scheduler_now():
        if request.method == 'OPTIONS':
            return '', 204
        updates = release_scheduler.run_now()
        return jsonify({
            'success': True,
            'message': 'Release check completed',
            'updates': updates
        }), 200

    return app
