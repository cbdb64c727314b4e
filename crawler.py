import logging
import re
import time
from datetime import datetime

import requests

from config import Config
from utils import as_utc, parse_chapter_number, parse_timestamp, trim_spaces

logger = logging.getLogger(__name__)

BASE_URL = 'https://api.mangarockhd.com'
FILTER_URL = BASE_URL + '/query/web401/mrs_filter'
MANGA_URL = BASE_URL + '/query/web401/manga_detail'
META_URL = BASE_URL + '/meta'
RELEASES_URL = BASE_URL + '/query/web401/mrs_latest'

MANGA_PAGE_URL = 'https://mangarock.com/manga'

MANGA_SECTIONS = [
    'basic_info',
    'summary',
    'artworks',
    'sub_genres',
    'social_stats',
    'author',
    'character',
    'publisher',
    'scanlator',
    'other_fact',
    'chapters',
    'related_series',
    'same_author',
    'feature_collections'
]

PUNCTUATION_RE = re.compile(r'[.?!]$')


class MangaRockError(Exception):
    """The API answered with an error code or without the expected data"""


def manga_url(manga_id):
    return f'{MANGA_PAGE_URL}/{manga_id}'


def chapter_url(manga_id, chapter_id):
    return f'{MANGA_PAGE_URL}/{manga_id}/chapter/{chapter_id}'


class MangaRockCrawler:
    def __init__(self, user_agent=None, timeout=None, config=None):
        config = config or Config()
        self.headers = {
            'User-Agent': user_agent or config.user_agent
        }
        self.timeout = timeout if timeout is not None else config.timeout

    def _request(self, method, url, body=None, what='data'):
        """Sends a request and returns the payload's data, checking code == 0"""
        logger.debug('%s %s', method, url)
        response = requests.request(
            method,
            url,
            headers=self.headers,
            json=body,
            timeout=self.timeout
        )
        response.raise_for_status()
        payload = response.json()

        code = payload.get('code') if isinstance(payload, dict) else None
        if code != 0 or payload.get('data') is None:
            raise MangaRockError(f'Error getting {what}: code {code}')
        return payload['data']

    def _meta(self, ids, what):
        if not isinstance(ids, (list, tuple)):
            raise TypeError('ids should be a list')
        data = self._request('POST', META_URL, list(ids), what=what)
        return list(data.values())

    def get_mangas_for_filters(self, filters=None):
        """Returns the manga ids matching the given filters"""
        filters = filters or {}
        params = {
            'genres': filters.get('genres') or {},
            'order': filters.get('order') or 'rank',
            'rank': filters.get('rank') or 'all',
            'status': filters.get('status') or 'all'
        }
        return self._request('POST', FILTER_URL, params, what='manga list for filters')

    def get_mangas_data(self, ids):
        """Short metadata for a list of manga ids"""
        return [
            {
                'source_id': data.get('oid'),
                'name': trim_spaces(data.get('name')),
                'thumbnail': data.get('thumbnail'),
                'chapters_count': data.get('total_chapters') or 0,
                'completed': data.get('completed'),
                'authors': data.get('author_ids')
            }
            for data in self._meta(ids, 'mangas data')
        ]

    def get_authors_data(self, ids):
        return [
            {
                'source_id': data.get('oid'),
                'name': data.get('name'),
                'thumbnail': data.get('thumbnail')
            }
            for data in self._meta(ids, 'authors data')
        ]

    def get_categories_data(self, ids):
        return [
            {
                'source_id': data.get('oid'),
                'name': trim_spaces(data.get('name'))
            }
            for data in self._meta(ids, 'categories data')
        ]

    def get_releases(self, from_=None):
        """
        Latest releases feed, newest first.

        With from_, stops at the first manga updated before that date and
        keeps only the chapters released since then.
        """
        if from_ is not None:
            if not isinstance(from_, datetime):
                raise TypeError('from_ should be a datetime')
            from_ = as_utc(from_)

        feed = self._request('GET', RELEASES_URL, what='manga releases')

        mangas = []
        for data in feed:
            manga_id = data.get('oid')
            updated_chapters = [
                {
                    'source_id': chap.get('oid'),
                    'name': trim_spaces(chap.get('name')),
                    'url': chapter_url(manga_id, chap.get('oid')),
                    'updated_at': parse_timestamp(chap.get('updatedAt'))
                }
                for chap in data.get('new_chapters') or []
            ]

            updated_at = parse_timestamp(data.get('updated_at'))

            if from_ is not None:
                if updated_at is not None and updated_at < from_:
                    break
                updated_chapters = [
                    chap for chap in updated_chapters
                    if chap['updated_at'] is not None and chap['updated_at'] >= from_
                ]

            mangas.append({
                'source_id': manga_id,
                'name': trim_spaces(data.get('name')),
                'url': manga_url(manga_id),
                'thumbnail': data.get('thumbnail'),
                'rank': data.get('rank'),
                'updated_chapters': updated_chapters,
                'updated_chapters_count': len(updated_chapters),
                'updated_at': updated_at,
                'completed': data.get('completed')
            })

        logger.debug('Releases feed: %d mangas', len(mangas))
        return mangas

    def get_manga(self, oid):
        """Full manga details including chapters, tags and authors"""
        if not oid:
            raise ValueError('manga id required')

        params = {
            'oids': {oid: 0},
            'sections': MANGA_SECTIONS
        }
        data = self._request('POST', MANGA_URL, params, what='manga data')
        if oid not in data:
            raise MangaRockError('Error getting manga data: code 0')
        data = data[oid]

        now = time.time()
        default_info = data.get('default') or {}
        basic_info = data.get('basic_info') or {}
        manga_id = default_info.get('oid')

        manga = {
            'source_id': manga_id,
            'name': trim_spaces(basic_info.get('name')),
            'url': manga_url(manga_id),
            'rank': basic_info.get('rank'),
            'description': basic_info.get('description'),
            'completed': basic_info.get('completed'),
            'deleted': basic_info.get('removed'),
            'direction': basic_info.get('direction'),
            'thumbnail': basic_info.get('thumbnail'),
            'cover': basic_info.get('cover'),
            'artworks': (data.get('artworks') or {}).get('artworks') or [],
            'aliases': basic_info.get('alias'),
            'updated_at': parse_timestamp(default_info.get('last_updated'), now=now)
        }

        summary = data.get('summary')
        if summary:
            points = None
            if summary.get('plot_points'):
                points = [self._plot_point(point) for point in summary['plot_points']]
            tags = None
            if summary.get('key_genres'):
                tags = self.get_categories_data(summary['key_genres'])
            manga['summary'] = {
                'points': points,
                'tags': tags
            }

        frequency = basic_info.get('release_frequency')
        if frequency:
            manga['frequency'] = {
                'unit': frequency.get('unit'),
                'amount': frequency.get('amount')
            }

        social_stats = data.get('social_stats')
        if social_stats:
            manga['rank'] = social_stats.get('rank')
            manga['views'] = social_stats.get('read')

        sub_genres = (data.get('sub_genres') or {}).get('sub_genres')
        if sub_genres:
            manga['tags'] = self.get_categories_data(sub_genres)

        chapters = (data.get('chapters') or {}).get('chapters') or []
        manga['chapters'] = self._chapters(chapters, manga_id, manga['name'], now)
        manga['chapters_count'] = len(manga['chapters'])

        manga['authors'] = self._authors((data.get('author') or {}).get('authors'))

        return manga

    @staticmethod
    def _plot_point(point):
        point = trim_spaces(point) or ''
        if PUNCTUATION_RE.search(point):
            return point
        return point + '.'

    @staticmethod
    def _chapters(chapters, manga_id, manga_name, now):
        ordered = sorted(chapters, key=lambda chap: chap.get('order', 0))
        result = []
        for index, chap in enumerate(ordered):
            name = trim_spaces(chap.get('name'))
            result.append({
                'source_id': chap.get('oid'),
                'index': index,
                'name': name,
                'url': chapter_url(manga_id, chap.get('oid')),
                'updated_at': parse_timestamp(chap.get('last_updated'), now=now),
                'number': parse_chapter_number(name, manga_name)
            })

        # Numbering is only trusted when no two chapters claim the same number
        seen = set()
        for chap in result:
            number = chap['number']
            if number >= 0 and number in seen:
                logger.debug('Duplicate chapter number %s in manga %s', number, manga_id)
                for other in result:
                    other['number'] = -1
                break
            seen.add(number)
        return result

    def _authors(self, authors):
        if not authors:
            return []

        roles = {}
        for auth in authors:
            roles[auth.get('oid')] = trim_spaces(auth.get('role'))

        result = self.get_authors_data(list(roles))
        for auth in result:
            auth['role'] = roles.get(auth['source_id'])
        return result
