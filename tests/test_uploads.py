"""Tests for upload validation and storage."""

import io
import os
from unittest.mock import patch

from werkzeug.datastructures import FileStorage

from uploads import discard_uploads, save_uploads, unique_filename, validate_upload


def storage(name, content=b'hello', mimetype='text/plain'):
    return FileStorage(stream=io.BytesIO(content), filename=name, content_type=mimetype)


def test_size_limit():
    assert validate_upload('cv.pdf', 6 * 1024 * 1024, 'application/pdf', max_bytes=5 * 1024 * 1024) == \
        'File size must be less than 5 MB.'


def test_disallowed_extension():
    assert validate_upload('run.exe', 10, 'application/octet-stream') == 'File type not allowed.'


def test_mimetype_must_match_extension():
    assert validate_upload('photo.png', 10, 'application/pdf') == 'File content does not match extension.'
    assert validate_upload('photo.jpg', 10, 'image/pjpeg') is None
    assert validate_upload('notes.txt', 10, 'application/octet-stream') is None


def test_unique_filename_keeps_extension():
    name = unique_filename('../../My CV.PDF')
    assert name.startswith('My_CV_')
    assert name.endswith('.pdf')
    assert '/' not in name


def test_save_uploads_writes_files(tmp_path):
    files = {'resume': storage('resume.txt', b'ten bytes!'), 'empty': FileStorage(filename='')}
    uploaded, error = save_uploads(files, upload_dir=str(tmp_path), base_url='/media')

    assert error is None
    assert list(uploaded) == ['resume']
    info = uploaded['resume']
    assert info['name'] == 'resume.txt'
    assert info['size'] == 10
    assert info['type'] == 'text/plain'
    assert info['url'].startswith('/media/connect2form/resume_')
    assert os.path.exists(info['path'])
    with open(info['path'], 'rb') as f:
        assert f.read() == b'ten bytes!'


def test_save_uploads_rejects_before_writing(tmp_path):
    files = {'ok': storage('a.txt'), 'bad': storage('b.exe', mimetype='application/octet-stream')}
    uploaded, error = save_uploads(files, upload_dir=str(tmp_path))

    assert uploaded == {}
    assert error == 'File type not allowed.'
    assert not os.path.exists(tmp_path / 'connect2form')


def test_failed_write_removes_files_already_stored(tmp_path):
    second = storage('b.txt')
    files = {'first': storage('a.txt'), 'second': second}

    with patch.object(second, 'save', side_effect=OSError('disk full')):
        uploaded, error = save_uploads(files, upload_dir=str(tmp_path))

    assert uploaded == {}
    assert error == 'File upload failed.'
    assert os.listdir(tmp_path / 'connect2form') == []


def test_discard_uploads(tmp_path):
    uploaded, _ = save_uploads({'resume': storage('cv.txt')}, upload_dir=str(tmp_path))
    path = uploaded['resume']['path']

    discard_uploads(uploaded)
    assert not os.path.exists(path)
    # already gone: logged, not raised
    discard_uploads(uploaded)
