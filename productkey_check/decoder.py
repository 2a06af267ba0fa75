"""Decode the DigitalProductId registry value into a product key."""
from .errors import MalformedBlob

ALPHABET = 'BCDFGHJKMPQRTVWXY2346789'

# Key data lives in bytes 52..66 of the value
KEY_OFFSET = 52
KEY_LENGTH = 15
MIN_BLOB_LENGTH = KEY_OFFSET + KEY_LENGTH


def decode_product_key(blob):
    """Return the dash-grouped product key encoded in a DigitalProductId value.

    The caller's bytes are never modified; the base-24 long division works on
    a private copy.
    """
    if blob is None or len(blob) < MIN_BLOB_LENGTH:
        size = 0 if blob is None else len(blob)
        raise MalformedBlob(f'DigitalProductId is {size} bytes, need at least {MIN_BLOB_LENGTH}')

    data = bytearray(blob)
    last = KEY_OFFSET + KEY_LENGTH - 1

    # Windows 8 and later flag the new layout in the top key byte
    is_modern = (data[last] // 6) & 1
    data[last] = (data[last] & 0xF7) | ((is_modern & 2) * 4)

    key = ''
    cur = 0
    for _ in range(25):
        cur = 0
        for x in range(last, KEY_OFFSET - 1, -1):
            cur = cur * 256 + data[x]
            data[x] = cur // 24
            cur = cur % 24
        key = ALPHABET[cur] + key

    if is_modern:
        key = key[:cur + 1] + 'N' + key[cur + 1:]

    key = key[1:]
    return '-'.join(key[i:i + 5] for i in range(0, len(key), 5))
