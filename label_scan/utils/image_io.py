from io import BytesIO

from PIL import Image, ImageOps, UnidentifiedImageError

from label_scan.core.errors import ScanError


def decode_label_image(image_bytes: bytes, max_bytes: int) -> Image.Image:
    """Decode an uploaded label photo into an upright RGB image."""
    if not image_bytes:
        raise ScanError('MISSING_IMAGE', 'Missing label photo (field name: image).', status_code=400)
    if len(image_bytes) > max_bytes:
        raise ScanError(
            'IMAGE_TOO_LARGE',
            f'Label photo too large. Max {max_bytes} bytes.',
            status_code=413,
            details={'size': len(image_bytes), 'max_bytes': max_bytes},
        )

    try:
        with Image.open(BytesIO(image_bytes)) as opened:
            # Phone cameras store rotation in EXIF; OCR needs the text upright.
            image = ImageOps.exif_transpose(opened)
            image.load()
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise ScanError('IMAGE_DECODE_FAILED', 'Could not decode label photo.', status_code=400) from exc

    if image.mode != 'RGB':
        image = image.convert('RGB')
    return image
