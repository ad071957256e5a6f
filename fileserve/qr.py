import base64
import io
import os

import qrcode
from PIL import Image
from qrcode.image.pil import PilImage

# kitty accepts at most 4096 bytes of base64 per escape sequence
KITTY_CHUNK = 4096


def _make_qr(text):
    qr = qrcode.QRCode(border=2, error_correction=qrcode.constants.ERROR_CORRECT_M)
    qr.add_data(text)
    qr.make(fit=True)
    return qr


def qr_png(text, size=320):
    """Return PNG bytes of a ``size`` x ``size`` QR code for ``text``."""
    image = _make_qr(text).make_image(image_factory=PilImage).get_image()
    image = image.convert("RGB").resize((size, size), Image.NEAREST)
    output = io.BytesIO()
    image.save(output, format="PNG")
    return output.getvalue()


def image_protocol(environ=None):
    """Return "iterm2" or "kitty" when the terminal can show inline images."""
    environ = os.environ if environ is None else environ
    if environ.get("TERM_PROGRAM") == "iTerm.app":
        return "iterm2"
    if "kitty" in environ.get("TERM", ""):
        return "kitty"
    return None


def iterm2_image(png):
    encoded = base64.b64encode(png).decode("ascii")
    return f"\x1b]1337;File=inline=1;width=auto;height=auto;preserveAspectRatio=1:{encoded}\x07"


def kitty_image(png):
    encoded = base64.b64encode(png).decode("ascii")
    chunks = [encoded[start:start + KITTY_CHUNK] for start in range(0, len(encoded), KITTY_CHUNK)]
    parts = []
    for index, chunk in enumerate(chunks):
        more = 1 if index < len(chunks) - 1 else 0
        control = f"f=100,a=T,m={more}" if index == 0 else f"m={more}"
        parts.append(f"\x1b_G{control};{chunk}\x1b\\")
    return "".join(parts)


def ascii_qr(text):
    """Render ``text`` as a QR code made of block characters."""
    output = io.StringIO()
    _make_qr(text).print_ascii(out=output, invert=True)
    return output.getvalue()


def terminal_qr(text, environ=None):
    """QR code for the console: an inline image where supported, else ASCII."""
    protocol = image_protocol(environ)
    if protocol == "iterm2":
        return iterm2_image(qr_png(text, size=200))
    if protocol == "kitty":
        return kitty_image(qr_png(text, size=200))
    return ascii_qr(text)
