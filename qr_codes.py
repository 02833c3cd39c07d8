import base64
import io

import qrcode
from qrcode.constants import ERROR_CORRECT_M
from qrcode.exceptions import DataOverflowError
from qrcode.image.pil import PilImage
from PIL import Image

DEFAULT_WIDTH = 256
DEFAULT_MARGIN = 2
DEFAULT_DARK = '#dc2626'
DEFAULT_LIGHT = '#ffffff'


class QRCodeError(Exception):
    """Raised when a payload cannot be rendered as a QR image."""


def emergency_url(origin, profile_id):
    """Build the public emergency link encoded into a profile's QR code."""
    if not profile_id:
        raise ValueError('profile_id is required')
    return f"{origin.rstrip('/')}/emergency/{profile_id}"


def encode_png(text, width=DEFAULT_WIDTH, margin=DEFAULT_MARGIN, dark=DEFAULT_DARK, light=DEFAULT_LIGHT):
    """Render ``text`` as a square PNG ``width`` pixels wide and return its bytes."""
    try:
        qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, border=margin)
        qr.add_data(text.encode('utf-8'))
        qr.make(fit=True)
        img = qr.make_image(image_factory=PilImage, fill_color=dark, back_color=light)

        raw = io.BytesIO()
        img.save(raw)
        raw.seek(0)
        scaled = Image.open(raw).convert('RGB').resize((width, width), Image.NEAREST)

        buf = io.BytesIO()
        scaled.save(buf, format='PNG')
    except (DataOverflowError, ValueError, OSError) as e:
        raise QRCodeError(f'Could not encode QR code: {e}') from e
    return buf.getvalue()


def encode_data_url(text, **options):
    """Same as :func:`encode_png` but returns an embeddable ``data:`` URL."""
    png = encode_png(text, **options)
    return 'data:image/png;base64,' + base64.b64encode(png).decode('ascii')
