import argparse
import json
import sys

import requests

from config import Config, setup_logging
from crawler import MangaRockCrawler, MangaRockError
from utils import parse_timestamp


def _print_json(data):
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def build_parser():
    parser = argparse.ArgumentParser(description='MangaRock API client')
    sub = parser.add_subparsers(dest='command', required=True)

    manga = sub.add_parser('manga', help='Full manga details with chapters')
    manga.add_argument('oid', help='Manga id like mrs-serie-35593')

    releases = sub.add_parser('releases', help='Latest releases feed')
    releases.add_argument('--since', help='Only releases since this ISO 8601 date')

    filters = sub.add_parser('filter', help='Manga ids matching filters')
    filters.add_argument('--order', default='rank')
    filters.add_argument('--rank', default='all')
    filters.add_argument('--status', default='all')

    for name in ('meta', 'authors', 'categories'):
        lookup = sub.add_parser(name, help=f'{name} lookup by ids')
        lookup.add_argument('ids', nargs='+')

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    config = Config.from_env()
    setup_logging(config)
    crawler = MangaRockCrawler(config=config)

    try:
        if args.command == 'manga':
            result = crawler.get_manga(args.oid)
        elif args.command == 'releases':
            result = crawler.get_releases(parse_timestamp(args.since) if args.since else None)
        elif args.command == 'filter':
            result = crawler.get_mangas_for_filters({
                'order': args.order,
                'rank': args.rank,
                'status': args.status
            })
        elif args.command == 'meta':
            result = crawler.get_mangas_data(args.ids)
        elif args.command == 'authors':
            result = crawler.get_authors_data(args.ids)
        else:
            result = crawler.get_categories_data(args.ids)
    except (MangaRockError, ValueError, requests.RequestException) as e:
        print(f'Error: {e}', file=sys.stderr)
        return 2

    _print_json(result)
    return 0


if __name__ == '__main__':
    sys.exit(main())
