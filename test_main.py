import json
from datetime import datetime, timezone
from unittest.mock import patch

import main
from crawler import MangaRockError


@patch.object(main, 'MangaRockCrawler')
def test_releases_since(crawler_cls, capsys):
    crawler_cls.return_value.get_releases.return_value = [
        {'source_id': 'mrs-serie-1', 'updated_at': datetime(2019, 4, 2, tzinfo=timezone.utc)}
    ]
    assert main.main(['releases', '--since', '2019-04-01T00:00:00Z']) == 0

    crawler_cls.return_value.get_releases.assert_called_once_with(datetime(2019, 4, 1, tzinfo=timezone.utc))
    out = json.loads(capsys.readouterr().out)
    assert out[0]['updated_at'] == '2019-04-02 00:00:00+00:00'


@patch.object(main, 'MangaRockCrawler')
def test_lookup_commands(crawler_cls, capsys):
    crawler_cls.return_value.get_authors_data.return_value = [{'source_id': 'mrs-author-1'}]
    assert main.main(['authors', 'mrs-author-1', 'mrs-author-2']) == 0
    crawler_cls.return_value.get_authors_data.assert_called_once_with(['mrs-author-1', 'mrs-author-2'])


@patch.object(main, 'MangaRockCrawler')
def test_filter_command(crawler_cls, capsys):
    crawler_cls.return_value.get_mangas_for_filters.return_value = []
    assert main.main(['filter', '--status', 'completed']) == 0
    crawler_cls.return_value.get_mangas_for_filters.assert_called_once_with(
        {'order': 'rank', 'rank': 'all', 'status': 'completed'}
    )


@patch.object(main, 'MangaRockCrawler')
def test_api_error_exit_code(crawler_cls, capsys):
    crawler_cls.return_value.get_manga.side_effect = MangaRockError('Error getting manga data: code 104')
    assert main.main(['manga', 'mrs-serie-1']) == 2
    assert 'code 104' in capsys.readouterr().err
