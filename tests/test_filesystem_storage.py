"""Tests for the local filesystem backend"""

import os
from pathlib import Path, PurePosixPath
from unittest.mock import patch

import pytest

from mountserve.exceptions import (
    ConfigurationException,
    PathTraversalException,
    StorageException,
)
from mountserve.storage.filesystem import FilesystemStorage, canonical_base
from mountserve.storage.paths import ResolvedPath


@pytest.fixture
def site(tmp_path):
    base = tmp_path / 'site'
    base.mkdir()
    (base / 'index.html').write_bytes(b'<h1>hi</h1>')
    (base / 'docs').mkdir()
    (base / 'docs' / 'index.html').write_bytes(b'docs')
    (base / 'docs' / 'guide.txt').write_bytes(b'read me')
    return base


@pytest.fixture
def storage(site):
    return FilesystemStorage(site)


class TestCanonicalBase:

    def test_creates_missing_directory(self, tmp_path):
        base = tmp_path / 'a' / 'b'
        assert canonical_base(base) == base.resolve()
        assert base.is_dir()

    def test_resolves_symlinks(self, tmp_path):
        target = tmp_path / 'real'
        target.mkdir()
        link = tmp_path / 'link'
        link.symlink_to(target)

        assert canonical_base(link) == target.resolve()

    def test_rejects_regular_file(self, tmp_path):
        path = tmp_path / 'file'
        path.write_text('x')

        with pytest.raises(ConfigurationException):
            FilesystemStorage(path)

    def test_rejects_unreadable_directory(self, tmp_path):
        with patch('mountserve.storage.filesystem.os.access', return_value=False):
            with pytest.raises(ConfigurationException) as exc_info:
                canonical_base(tmp_path)
        assert 'cannot be read' in str(exc_info.value)


class TestReads:

    def test_index_document_served_for_root(self, storage):
        path = storage.resolve('')

        assert path.parts == ('index.html',)
        assert storage.metadata(path).size == 11
        with storage.read_stream(path) as stream:
            assert b''.join(stream) == b'<h1>hi</h1>'

    def test_trailing_slash_maps_to_index(self, storage):
        path = storage.resolve('docs/')
        with storage.read_stream(path) as stream:
            assert b''.join(stream) == b'docs'

    def test_stream_length_matches_metadata(self, site):
        payload = bytes(range(256)) * 40
        (site / 'blob.bin').write_bytes(payload)
        storage = FilesystemStorage(site, chunk_size=1000)
        path = storage.resolve('blob.bin')

        stream = storage.read_stream(path)
        chunks = list(stream)

        assert len(chunks) == 11
        assert b''.join(chunks) == payload
        assert storage.metadata(path).size == len(payload)

    def test_missing_file(self, storage):
        path = storage.resolve('nope.txt')
        assert storage.read_stream(path) is None
        assert storage.metadata(path) is None

    def test_file_used_as_directory(self, storage):
        path = storage.resolve('docs/guide.txt/more')
        assert storage.read_stream(path) is None
        assert storage.metadata(path) is None

    def test_directory_without_slash_is_not_a_file(self, storage):
        path = storage.resolve('docs')
        assert storage.read_stream(path) is None
        assert storage.metadata(path) is None

    def test_reads_reflect_changes(self, storage, site):
        path = storage.resolve('docs/guide.txt')
        assert storage.metadata(path).size == 7

        (site / 'docs' / 'guide.txt').write_bytes(b'a longer text')
        assert storage.metadata(path).size == 13

    @pytest.mark.skipif(not hasattr(os, 'mkfifo'), reason='requires os.mkfifo')
    def test_fifo_is_not_a_file(self, storage, site):
        os.mkfifo(site / 'pipe')
        path = storage.resolve('pipe')

        assert storage.read_stream(path) is None
        assert storage.metadata(path) is None

    def test_stream_reports_size(self, storage):
        with storage.read_stream(storage.resolve('docs/guide.txt')) as stream:
            assert stream.size == 7

    def test_permission_error(self, storage):
        path = storage.resolve('index.html')
        with patch('mountserve.storage.filesystem.os.open', side_effect=PermissionError('denied')):
            with pytest.raises(StorageException):
                storage.read_stream(path)


class TestConfinement:

    def test_traversal_rejected_without_io(self, storage, site):
        (site.parent / 'secret').write_text('top secret')

        with patch('mountserve.storage.filesystem.os.open') as mock_open:
            with pytest.raises(PathTraversalException):
                storage.resolve('../secret')
        mock_open.assert_not_called()

    def test_absolute_path_rejected(self, storage):
        with pytest.raises(PathTraversalException):
            storage.resolve('/etc/passwd')

    def test_unresolved_string_rejected(self, storage):
        with pytest.raises(TypeError):
            storage.read_stream('index.html')

    def test_path_from_other_base_rejected(self, storage):
        foreign = ResolvedPath(base=Path('/'), parts=('etc', 'passwd'))
        with pytest.raises(PathTraversalException):
            storage.metadata(foreign)

    def test_object_key_rejected(self, storage):
        key = ResolvedPath(base=PurePosixPath(), parts=('index.html',))
        with pytest.raises(PathTraversalException):
            storage.read_stream(key)
