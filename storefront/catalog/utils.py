"""
Utility functions for catalog operations
"""


def normalize_images(images):
    """Normalize a product image list

    Each entry gets `url`, `is_main` and `order` (its position when not given).
    Exactly one image is main: the first one flagged, or the first image
    when none is flagged.

    Args:
        images: iterable of dicts with at least a `url` key

    Returns:
        list of normalized image dicts (empty list for no images)
    """
    normalized = []
    main_found = False
    for index, image in enumerate(images or []):
        is_main = bool(image.get('is_main')) and not main_found
        main_found = main_found or is_main
        order = image.get('order')
        normalized.append({
            'url': image['url'],
            'is_main': is_main,
            'order': index if order is None else order,
        })

    if normalized and not main_found:
        normalized[0]['is_main'] = True
    return normalized


def main_image_of(images):
    """URL of the main image in a normalized list, or '' when there is none"""
    for image in images:
        if image['is_main']:
            return image['url']
    return ''
