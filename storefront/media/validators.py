"""
Validation of uploaded image files before they are sent to the media service
"""
import os
import re
from PIL import Image, UnidentifiedImageError
from .client import ALLOWED_FORMATS

# Pillow format names for the accepted extensions
PIL_FORMATS = {'JPEG', 'PNG'}
FOLDER_PATTERN = re.compile(r'^[A-Za-z0-9_-]{1,64}$')
DEFAULT_FOLDER = 'products'


class InvalidUpload(Exception):
    """Raised when an uploaded file cannot be accepted"""


def validate_folder(folder):
    """Target folder name; defaults to products"""
    folder = (folder or DEFAULT_FOLDER).strip()
    if not FOLDER_PATTERN.match(folder):
        raise InvalidUpload('Invalid folder name')
    return folder


def validate_image_upload(uploaded_file, max_bytes):
    """Check type, extension, size and image content of an uploaded file

    Leaves the file positioned at its start.
    """
    content_type = getattr(uploaded_file, 'content_type', '') or ''
    if not content_type.startswith('image/'):
        raise InvalidUpload('Only images are accepted')

    extension = os.path.splitext(uploaded_file.name or '')[1].lower().lstrip('.')
    if extension not in ALLOWED_FORMATS:
        raise InvalidUpload(f"Unsupported image format, allowed: {', '.join(ALLOWED_FORMATS)}")

    if uploaded_file.size > max_bytes:
        raise InvalidUpload(f'Image exceeds the {max_bytes // (1024 * 1024)} MB limit')

    try:
        with Image.open(uploaded_file) as image:
            image_format = image.format
            image.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise InvalidUpload('File is not a valid image') from e
    finally:
        uploaded_file.seek(0)

    if image_format not in PIL_FORMATS:
        raise InvalidUpload(f"Unsupported image format, allowed: {', '.join(ALLOWED_FORMATS)}")
    return uploaded_file
