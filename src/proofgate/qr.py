"""QR rendering of session URLs."""

from __future__ import annotations

import io

import qrcode
from qrcode.constants import ERROR_CORRECT_H


def render_png(data: str, box_size: int = 8) -> bytes:
    """Encode `data` as a PNG QR code with high error correction."""
    code = qrcode.QRCode(error_correction=ERROR_CORRECT_H, box_size=box_size, border=4)
    code.add_data(data)
    code.make(fit=True)
    img = code.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
