"""
Tests for the client's local cache file.
"""

import json

import sync.local_cache
from sync import LocalCache


class TestLocalCache:

    def test_missing_file(self, local_cache):
        assert local_cache.read() is None

    def test_write_keeps_projection_only(self, local_cache):
        state = {
            'tents': [{'id': 1}],
            'reservations': [],
            'security': {'adminPin': '1234'},
            'logs': [{'message': 'x'}],
            'categories': [],
        }

        assert local_cache.write(state) is True
        assert local_cache.read() == {
            'tents': [{'id': 1}],
            'reservations': [],
            'security': {'adminPin': '1234'},
        }

    def test_value_stored_as_json_string(self, local_cache):
        local_cache.write({'tents': []})
        with open(local_cache.path, encoding='utf-8') as f:
            raw = json.load(f)
        assert json.loads(raw['coralclub:localState']) == {'tents': []}

    def test_other_entries_untouched(self, tmp_path):
        path = str(tmp_path / 'shared.json')
        first = LocalCache(path, 'venue:a')
        second = LocalCache(path, 'venue:b')

        first.write({'tents': [{'id': 1}]})
        second.write({'tents': [{'id': 2}]})
        first.write({'tents': [{'id': 3}]})

        assert first.read() == {'tents': [{'id': 3}]}
        assert second.read() == {'tents': [{'id': 2}]}

    def test_corrupt_file_ignored(self, local_cache):
        with open(local_cache.path, 'w', encoding='utf-8') as f:
            f.write('{not json')

        assert local_cache.read() is None
        assert local_cache.write({'tents': []}) is True
        assert local_cache.read() == {'tents': []}

    def test_unwritable_location(self, tmp_path):
        blocker = tmp_path / 'file'
        blocker.write_text('x')
        cache = LocalCache(str(blocker / 'cache.json'))

        assert cache.write({'tents': []}) is False
        assert cache.read() is None

    def test_failed_write_leaves_no_temp_file(self, local_cache, tmp_path, monkeypatch):
        local_cache.write({'tents': [{'id': 1}]})

        def fail(*args, **kwargs):
            raise TypeError('not serializable')

        monkeypatch.setattr(sync.local_cache.json, 'dump', fail)

        assert local_cache.write({'tents': [{'id': 2}]}) is False
        assert list(tmp_path.glob('*.tmp')) == []
        monkeypatch.undo()
        assert local_cache.read() == {'tents': [{'id': 1}]}
