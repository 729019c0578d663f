"""
Shared helpers: QR labels, date parsing and result dictionaries
"""
from datetime import datetime
from io import BytesIO

import qrcode
from django.conf import settings
from django.core.files import File
from django.urls import reverse
from PIL import Image, ImageDraw


def result(success, message, **extra):
    """
    Standard return value for workflow operations.

    Views turn it into a flash message; JSON endpoints return it as-is.
    """
    data = {'success': success, 'message': message}
    data.update(extra)
    return data


def generate_qr_code_with_label(data, label_text, filename_hint=None):
    """
    Build a PNG QR code with a text label underneath.

    Args:
        data: String encoded in the QR code (usually an absolute URL)
        label_text: Text printed under the code, usually the asset tag
        filename_hint: Used for the file name, falls back to ``data``

    Returns:
        django File wrapping the PNG bytes
    """
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_H,
        box_size=10,
        border=2,
    )
    qr.add_data(str(data))
    qr.make(fit=True)

    qr_img = qr.make_image(fill_color="black", back_color="white")
    if qr_img.mode != 'RGB':
        qr_img = qr_img.convert('RGB')

    qr_width, qr_height = qr_img.size
    label_height = 60

    labelled = Image.new('RGB', (qr_width, qr_height + label_height), 'white')
    labelled.paste(qr_img, (0, 0))

    draw = ImageDraw.Draw(labelled)
    text_bbox = draw.textbbox((0, 0), label_text)
    text_width = text_bbox[2] - text_bbox[0]
    draw.text(((qr_width - text_width) // 2, qr_height + 10), label_text, fill='black')

    buffer = BytesIO()
    labelled.save(buffer, format='PNG')
    buffer.seek(0)

    return File(buffer, name=f"qr_{filename_hint or data}.png")


def build_asset_qr_url(qr_code_uuid, request=None):
    """
    Absolute URL encoded into an asset label.
    Uses the request host when available, SITE_DOMAIN otherwise.
    """
    path = reverse('assets:asset_detail_by_qr', kwargs={'qr_code': str(qr_code_uuid)})
    if request is not None:
        return request.build_absolute_uri(path)
    protocol = 'https' if getattr(settings, 'USE_HTTPS', False) else 'http'
    domain = getattr(settings, 'SITE_DOMAIN', 'localhost:8000')
    return f"{protocol}://{domain}{path}"


def parse_date(value, default=None):
    """Parse a YYYY-MM-DD query parameter, returning ``default`` when blank or invalid"""
    if not value:
        return default
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except (TypeError, ValueError):
        return default


def page_size():
    return settings.ASSETDESK.get('DEFAULT_PAGE_SIZE', 25)


def unique_ids(ids):
    """Selected ids in their original order, each once"""
    return list(dict.fromkeys(ids))
