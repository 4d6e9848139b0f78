"""
Media upload adapter.

Uploads go to Cloudinary when it is configured and to Django's default
storage otherwise; callers only ever see the resulting URL.
"""
import logging
import os
import uuid

import cloudinary.uploader
from django.conf import settings
from django.core.files.storage import default_storage

from .errors import Unavailable

logger = logging.getLogger(__name__)


def _cloudinary_enabled():
    return bool(os.getenv('CLOUDINARY_CLOUD_NAME'))


def upload_image(uploaded_file, folder):
    """Store an uploaded image under folder and return its public URL"""
    try:
        if _cloudinary_enabled():
            response = cloudinary.uploader.upload(
                uploaded_file,
                folder=folder,
                resource_type='image',
                format='webp',
            )
            return response['secure_url']

        ext = os.path.splitext(uploaded_file.name or '')[1].lower() or '.jpg'
        name = default_storage.save(f"{folder}/{uuid.uuid4().hex}{ext}", uploaded_file)
        url = default_storage.url(name)
        if url.startswith('/') and getattr(settings, 'PINGUP_MEDIA_BASE_URL', ''):
            url = settings.PINGUP_MEDIA_BASE_URL.rstrip('/') + url
        return url
    except Exception:
        logger.exception(f"Image upload to {folder} failed")
        raise Unavailable("Could not upload image")
