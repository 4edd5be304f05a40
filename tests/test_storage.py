import io

import pytest
from werkzeug.datastructures import FileStorage

from educentral.errors import UploadError
from educentral.services import storage


def _image(name='foto.png', mimetype='image/png', data=b'\x89PNG data'):
    return FileStorage(stream=io.BytesIO(data), filename=name, content_type=mimetype)


def test_activity_image_is_public_and_stored_under_activity(bucket):
    url, path = storage.upload_activity_image('act1', _image())

    assert path.startswith('activities/act1/')
    assert path.endswith('.png')
    blob = bucket.blobs[path]
    assert blob.public
    assert blob.data == b'\x89PNG data'
    assert url == blob.public_url


def test_non_images_are_rejected(bucket):
    with pytest.raises(UploadError):
        storage.upload_activity_image('act1', _image('laporan.pdf', 'application/pdf'))
    assert bucket.blobs == {}


def test_oversized_images_are_rejected(bucket):
    with pytest.raises(UploadError):
        storage.upload_activity_image('act1', _image(data=b'x' * 2048), max_size=1024)


def test_missing_activity_or_file(bucket):
    with pytest.raises(UploadError):
        storage.upload_activity_image('', _image())
    with pytest.raises(UploadError):
        storage.upload_activity_image('act1', FileStorage(stream=io.BytesIO(b''), filename=''))


def test_upload_without_bucket_fails_cleanly(db):
    with pytest.raises(UploadError):
        storage.upload_file(b'data', 'x/y.png', 'image/png')


def test_delete_file(bucket):
    storage.upload_file(b'data', 'activities/a/1.png', 'image/png')
    storage.delete_file('activities/a/1.png')
    assert not bucket.blobs['activities/a/1.png'].exists()
