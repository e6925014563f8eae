import base64
import binascii
import mimetypes
import re
from typing import Tuple
from urllib.parse import quote

from .errors import InvalidImageFormat, PayloadTooLarge

DEFAULT_AVATAR = "https://ui-avatars.com/api/?background=random&name="
MAX_PICTURE_BYTES = 5 * 1024 * 1024

_DATA_URI_RE = re.compile(r"^data:(image/(?:png|jpeg|jpg|gif|webp));base64,(.+)$", re.DOTALL)


def default_avatar(name: str) -> str:
    return f"{DEFAULT_AVATAR}{quote(name or '', safe='')}"


def decode_data_uri(data_uri: str) -> Tuple[bytes, str]:
    """
    Decode an inline base64 image.
    Returns (bytes, file extension)
    Raises InvalidImageFormat / PayloadTooLarge
    """
    match = _DATA_URI_RE.match(data_uri or "")
    if not match:
        raise InvalidImageFormat()
    content_type, payload = match.groups()

    # cheap pre-check before decoding, base64 inflates by 4/3
    if len(payload) * 3 // 4 > MAX_PICTURE_BYTES + 3:
        raise PayloadTooLarge()

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidImageFormat()

    if len(data) > MAX_PICTURE_BYTES:
        raise PayloadTooLarge()

    ext = mimetypes.guess_extension(content_type) or "." + content_type.split("/")[1]
    return data, ext
