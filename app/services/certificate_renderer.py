"""
Certificate Renderer
Draw certificate pages with Pillow and wrap them as PDF
"""

from io import BytesIO
from typing import Tuple

import img2pdf
from PIL import Image, ImageDraw, ImageFont

PAGE_SIZE = (1650, 1275)  # US Letter landscape at 150 dpi
NAVY = "#0C2044"
GOLD = "#B8860B"

FONT_CANDIDATES = {
    "serif": ("DejaVuSerif.ttf", "Georgia.ttf", "times.ttf"),
    "sans": ("DejaVuSans.ttf", "Arial.ttf", "arial.ttf"),
    "sans-bold": ("DejaVuSans-Bold.ttf", "Arial Bold.ttf", "arialbd.ttf"),
}

# Text fields per template: key into the certificate data, position, style
LAYOUTS = {
    "seminar": [
        {"value": "title", "x": 825, "y": 200, "font": "serif", "size": 72, "color": NAVY, "align": "center"},
        {"value": "subtitle", "x": 825, "y": 310, "font": "sans", "size": 30, "color": "#555555", "align": "center"},
        {"value": "attendee_name", "x": 825, "y": 470, "font": "sans-bold", "size": 64, "color": NAVY, "align": "center"},
        {"value": "program", "x": 825, "y": 600, "font": "sans", "size": 34, "color": "#333333", "align": "center"},
        {"value": "period_display", "x": 825, "y": 660, "font": "sans", "size": 30, "color": "#333333", "align": "center"},
        {"value": "credits_line", "x": 825, "y": 760, "font": "sans-bold", "size": 40, "color": GOLD, "align": "center"},
        {"value": "sessions_line", "x": 825, "y": 820, "font": "sans", "size": 28, "color": "#555555", "align": "center"},
        {"value": "issued_line", "x": 200, "y": 1080, "font": "sans", "size": 24, "color": "#555555", "align": "left"},
        {"value": "certificate_code", "x": 1450, "y": 1080, "font": "sans", "size": 24, "color": "#555555", "align": "right"},
    ],
    "course": [
        {"value": "title", "x": 825, "y": 200, "font": "serif", "size": 72, "color": NAVY, "align": "center"},
        {"value": "subtitle", "x": 825, "y": 310, "font": "sans", "size": 30, "color": "#555555", "align": "center"},
        {"value": "attendee_name", "x": 825, "y": 470, "font": "sans-bold", "size": 64, "color": NAVY, "align": "center"},
        {"value": "program", "x": 825, "y": 600, "font": "sans", "size": 34, "color": "#333333", "align": "center"},
        {"value": "credits_line", "x": 825, "y": 720, "font": "sans-bold", "size": 40, "color": GOLD, "align": "center"},
        {"value": "issued_line", "x": 200, "y": 1080, "font": "sans", "size": 24, "color": "#555555", "align": "left"},
        {"value": "certificate_code", "x": 1450, "y": 1080, "font": "sans", "size": 24, "color": "#555555", "align": "right"},
    ],
}


def _hex_to_rgb(hex_color: str) -> Tuple[int, int, int]:
    color = (hex_color or "").strip().lstrip("#")
    if len(color) != 6:
        return (0, 0, 0)
    try:
        return tuple(int(color[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        return (0, 0, 0)


def _load_font(family: str, size: int) -> ImageFont.ImageFont:
    for candidate in FONT_CANDIDATES.get(family, ()):
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            continue
    return ImageFont.load_default()


def _aligned_x(draw: ImageDraw.ImageDraw, text: str, font: ImageFont.ImageFont, x: int, align: str) -> int:
    if align not in {"center", "right"}:
        return x
    bbox = draw.textbbox((0, 0), text, font=font)
    width = bbox[2] - bbox[0]
    return x - width // 2 if align == "center" else x - width


def _field_values(data: dict) -> dict:
    """Derived display strings for a certificate record"""
    credits = data.get("ce_credits")
    sessions = data.get("sessions_attended")
    issued = data.get("generated_at")
    values = dict(data)
    values.setdefault("title", "Certificate of Completion")
    values.setdefault("subtitle", "This certifies that")
    values["credits_line"] = f"{float(credits):g} CE Credits" if credits is not None else ""
    values["sessions_line"] = f"{sessions} sessions attended" if sessions else ""
    values["issued_line"] = f"Issued {issued.strftime('%B %d, %Y')}" if hasattr(issued, "strftime") else ""
    return values


def render(certificate_data: dict, template: str = "seminar") -> bytes:
    """
    Render a certificate to PDF bytes

    Args:
        certificate_data: Certificate fields (attendee_name, program, ce_credits, ...)
        template: Layout name, 'seminar' or 'course'

    Returns:
        Single-page PDF
    """
    layout = LAYOUTS.get(template, LAYOUTS["seminar"])
    values = _field_values(certificate_data)

    image = Image.new("RGB", PAGE_SIZE, "white")
    draw = ImageDraw.Draw(image)

    # Double border
    width, height = PAGE_SIZE
    draw.rectangle([40, 40, width - 40, height - 40], outline=_hex_to_rgb(NAVY), width=8)
    draw.rectangle([60, 60, width - 60, height - 60], outline=_hex_to_rgb(GOLD), width=3)

    for field in layout:
        text = str(values.get(field["value"]) or "")
        if not text:
            continue
        font = _load_font(field["font"], field["size"])
        x = _aligned_x(draw, text, font, field["x"], field["align"])
        draw.text((x, field["y"]), text, fill=_hex_to_rgb(field["color"]), font=font)

    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return img2pdf.convert(buffer.getvalue())
