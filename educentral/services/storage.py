import logging
import mimetypes
import os
import time

from educentral.errors import UploadError
from educentral.firebase_init import get_bucket

logger = logging.getLogger(__name__)

IMAGE_CONTENT_TYPES = {
    'image/jpeg': 'jpg',
    'image/png': 'png',
    'image/gif': 'gif',
    'image/webp': 'webp',
}


def upload_file(file_data, destination_path, content_type=None, public=False):
    """Upload file bytes to Firebase Storage.

    Args:
        file_data: bytes or file-like object
        destination_path: path in the bucket (e.g. 'users/uid/profile.png')
        content_type: MIME type
        public: make the object world-readable

    Returns:
        The public URL when ``public`` is set, otherwise the storage path
    """
    bucket = get_bucket()
    if bucket is None:
        raise UploadError('Penyimpanan file belum dikonfigurasi.')
    blob = bucket.blob(destination_path)
    if content_type:
        blob.content_type = content_type
    if isinstance(file_data, bytes):
        blob.upload_from_string(file_data, content_type=content_type)
    else:
        blob.upload_from_file(file_data, content_type=content_type)
    logger.info('Uploaded %s (%s)', destination_path, content_type or 'unknown type')
    if public:
        blob.make_public()
        return blob.public_url
    return destination_path


def delete_file(storage_path):
    """Delete a file from Firebase Storage."""
    bucket = get_bucket()
    if bucket is None:
        return
    blob = bucket.blob(storage_path)
    if blob.exists():
        blob.delete()
        logger.info('Deleted %s', storage_path)


def _image_extension(filename, content_type):
    """Return the file extension for an image upload, or raise UploadError."""
    if not content_type:
        content_type = mimetypes.guess_type(filename or '')[0]
    if content_type not in IMAGE_CONTENT_TYPES:
        raise UploadError('Hanya file gambar (JPG, PNG, GIF, WEBP) yang dapat diunggah.')
    ext = os.path.splitext(filename or '')[1].lstrip('.').lower()
    return ext or IMAGE_CONTENT_TYPES[content_type]


def upload_activity_image(activity_id, file_storage, max_size=None):
    """Upload one activity photo and return ``(public_url, storage_path)``.

    The object lands at ``activities/{activity_id}/{timestamp}.{ext}``.
    """
    if not activity_id:
        raise UploadError('ID kegiatan tidak ditemukan.')
    if file_storage is None or not file_storage.filename:
        raise UploadError('Tidak ada file yang diunggah.')
    ext = _image_extension(file_storage.filename, file_storage.mimetype)

    data = file_storage.read()
    if max_size and len(data) > max_size:
        raise UploadError(f'Ukuran file melebihi {max_size // (1024 * 1024)} MB.')

    path = f'activities/{activity_id}/{int(time.time() * 1000)}.{ext}'
    url = upload_file(data, path, file_storage.mimetype, public=True)
    return url, path


def upload_profile_image(uid, file_storage):
    """Upload a user's profile photo. Returns its public URL."""
    ext = _image_extension(file_storage.filename, file_storage.mimetype)
    path = f'users/{uid}/profile.{ext}'
    return upload_file(file_storage.read(), path, file_storage.mimetype, public=True)
