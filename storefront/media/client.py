"""
Cloudinary media service client.
Uploads and deletes images through the Cloudinary SDK.
"""
import logging
import os
import re
import time
from typing import Optional, Dict
from urllib.parse import urlparse, unquote

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from django.conf import settings

logger = logging.getLogger(__name__)

CLOUDINARY_DELIVERY_HOST = 'res.cloudinary.com'
ALLOWED_FORMATS = ('jpg', 'jpeg', 'png')

_VERSION_SEGMENT = re.compile(r'^v\d+$')


class MediaServiceError(Exception):
    """Raised when the media service rejects or fails a request"""


def build_public_id(filename: str, now: Optional[float] = None) -> str:
    """`<epoch-millis>-<basename without extension>` for an uploaded file"""
    millis = int((now if now is not None else time.time()) * 1000)
    base = os.path.splitext(os.path.basename(filename or ''))[0] or 'image'
    base = re.sub(r'[^A-Za-z0-9_-]+', '-', base).strip('-') or 'image'
    return f"{millis}-{base}"


class CloudinaryClient:
    """Upload and destroy calls on top of cloudinary.uploader"""

    def __init__(self, cloud_name, api_key, api_secret, root_folder='', timeout=30):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.root_folder = root_folder.strip('/')
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    def folder_path(self, folder: str) -> str:
        return '/'.join(part for part in (self.root_folder, folder.strip('/')) if part)

    def configure(self):
        """Point the SDK at this account"""
        if not self.is_configured:
            raise MediaServiceError('Media service is not configured')
        cloudinary.config(
            cloud_name=self.cloud_name,
            api_key=self.api_key,
            api_secret=self.api_secret,
            secure=True,
        )

    def upload(self, fileobj, filename: str, folder: str) -> Dict[str, str]:
        """Upload an image file; returns {'image_url', 'public_id'}"""
        self.configure()
        try:
            result = cloudinary.uploader.upload(
                fileobj,
                folder=self.folder_path(folder),
                public_id=build_public_id(filename),
                allowed_formats=list(ALLOWED_FORMATS),
                resource_type='image',
                timeout=self.timeout,
            )
        except CloudinaryError as e:
            logger.error(f"Media service upload failed for {filename}: {str(e)}")
            raise MediaServiceError(str(e)) from e

        image_url = result.get('secure_url') or result.get('url')
        if not image_url:
            raise MediaServiceError('Media service returned no URL')
        logger.info(f"Image uploaded: {image_url}")
        return {'image_url': image_url, 'public_id': result.get('public_id', '')}

    def destroy(self, public_id: str) -> bool:
        """Delete an image; returns False when the service reports it missing"""
        self.configure()
        try:
            result = cloudinary.uploader.destroy(public_id, invalidate=True, timeout=self.timeout)
        except CloudinaryError as e:
            logger.error(f"Media service destroy failed for {public_id}: {str(e)}")
            raise MediaServiceError(str(e)) from e

        outcome = result.get('result')
        if outcome == 'ok':
            logger.info(f"Deleted image from media service: {public_id}")
            return True
        if outcome == 'not found':
            logger.warning(f"Image not found on media service: {public_id}")
            return False
        raise MediaServiceError(f'Unexpected destroy result: {outcome}')

    def public_id_from_url(self, url: str) -> Optional[str]:
        """Recover the public id (folders included) from a delivery URL

        e.g. https://res.cloudinary.com/<cloud>/image/upload/v17/shop/portfolio/123-a.jpg
        -> shop/portfolio/123-a. Returns None for URLs from elsewhere.
        """
        if not url:
            return None
        parsed = urlparse(url)
        if parsed.netloc != CLOUDINARY_DELIVERY_HOST:
            return None
        parts = [unquote(p) for p in parsed.path.split('/') if p]
        # <cloud>/<resource_type>/<delivery_type>/[transformations/][v<version>/]<public_id>
        if len(parts) < 4 or parts[0] != self.cloud_name:
            return None
        rest = parts[3:]
        for index, part in enumerate(rest):
            if _VERSION_SEGMENT.match(part):
                rest = rest[index + 1:]
                break
        if not rest:
            return None
        rest[-1] = os.path.splitext(rest[-1])[0]
        return '/'.join(rest)


def get_media_client() -> CloudinaryClient:
    """Client configured from Django settings"""
    return CloudinaryClient(
        cloud_name=settings.CLOUDINARY_CLOUD_NAME,
        api_key=settings.CLOUDINARY_API_KEY,
        api_secret=settings.CLOUDINARY_API_SECRET,
        root_folder=settings.CLOUDINARY_ROOT_FOLDER,
        timeout=settings.CLOUDINARY_TIMEOUT,
    )


def destroy_hosted_image(image_url: str) -> bool:
    """Best-effort removal of an image we host; never raises

    Returns True when the media service deleted the image.
    """
    client = get_media_client()
    public_id = client.public_id_from_url(image_url)
    if not public_id:
        return False
    try:
        return client.destroy(public_id)
    except MediaServiceError as e:
        logger.warning(f"Could not delete hosted image {public_id}: {str(e)}")
        return False
