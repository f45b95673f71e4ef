"""
Tag label generator for individual products.
Renders a QR code of the piece's code next to a Code128 barcode of its
serial number, using qrcode, python-barcode and Pillow.
"""
import base64
import io
import logging
from typing import Optional

import barcode
import qrcode
from barcode.writer import ImageWriter
from PIL import Image, ImageDraw, ImageFont

logger = logging.getLogger(__name__)


def _load_fonts():
    try:
        return (
            ImageFont.truetype('/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf', 18),
            ImageFont.truetype('/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf', 13),
        )
    except (OSError, IOError):
        try:
            return ImageFont.truetype('arial.ttf', 18), ImageFont.truetype('arial.ttf', 13)
        except (OSError, IOError):
            return ImageFont.load_default(), ImageFont.load_default()


def render_qr_code(value: str, size: int) -> Image.Image:
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=4,
        border=1,
    )
    qr.add_data(value)
    qr.make(fit=True)
    image = qr.make_image(fill_color='black', back_color='white').convert('RGB')
    return image.resize((size, size), Image.Resampling.NEAREST)


def render_code128(value: str) -> Image.Image:
    code128 = barcode.get_barcode_class('code128')
    return code128(value, writer=ImageWriter()).render({
        'write_text': False,
        'module_width': 0.3,
        'module_height': 15.0,
        'quiet_zone': 2.0,
        'font_size': 0,
        'text_distance': 0,
        'background': 'white',
        'foreground': 'black',
    })


def generate_label_image(
    product_name: str,
    qr_value: str,
    serial_number: str,
    details: Optional[str] = None,
    width: int = 400,  # 4 inches at 100 DPI
    height: int = 200,  # 2 inches at 100 DPI
) -> str:
    """
    Render a tag label and return it as a base64 PNG data URL.

    Layout: QR code on the left; product name, serial barcode, serial text and
    optional details line on the right.
    """
    max_name_length = 24
    if len(product_name) > max_name_length:
        product_name = product_name[:max_name_length] + '...'

    img = Image.new('RGB', (width, height), color='white')
    draw = ImageDraw.Draw(img)
    font_large, font_small = _load_fonts()

    margin = 10
    qr_size = height - 2 * margin
    img.paste(render_qr_code(qr_value, qr_size), (margin, margin))

    text_x = margin * 2 + qr_size
    text_width = width - text_x - margin
    draw.text((text_x, margin), product_name, fill='black', font=font_large)

    barcode_y = margin + 28
    try:
        barcode_img = render_code128(serial_number)
        scale = text_width / barcode_img.width
        barcode_height = min(int(barcode_img.height * scale), 70)
        barcode_img = barcode_img.resize((text_width, barcode_height), Image.Resampling.BILINEAR)
        img.paste(barcode_img, (text_x, barcode_y))
        serial_y = barcode_y + barcode_height + 4
    except (ValueError, barcode.errors.BarcodeError) as e:
        logger.error(f"Barcode generation failed for '{serial_number}': {str(e)}")
        serial_y = barcode_y

    draw.text((text_x, serial_y), f"S/N: {serial_number}", fill='black', font=font_small)
    if details:
        draw.text((text_x, serial_y + 18), details, fill='black', font=font_small)
    draw.text((text_x, height - margin - 14), qr_value, fill='black', font=font_small)

    buffer = io.BytesIO()
    img.save(buffer, format='PNG', optimize=False, compress_level=1)
    image_base64 = base64.b64encode(buffer.getvalue()).decode('utf-8')
    buffer.close()
    img.close()
    return f'data:image/png;base64,{image_base64}'


def generate_individual_product_label(individual_product) -> str:
    """Label for one piece, with its final dimensions when recorded"""
    product = individual_product.product
    details = None
    if individual_product.final_length and individual_product.final_width:
        details = (
            f"{individual_product.final_length.normalize()} {product.length_unit} x "
            f"{individual_product.final_width.normalize()} {product.width_unit}"
        ).replace('  ', ' ')
    elif product.color or product.pattern:
        details = ' / '.join(value for value in (product.color, product.pattern) if value)

    return generate_label_image(
        product_name=product.name,
        qr_value=individual_product.qr_code,
        serial_number=individual_product.serial_number,
        details=details,
    )
