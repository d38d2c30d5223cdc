import base64
import binascii


def is_data_url(data: str) -> bool:
    """
    Check if the provided data is a data URL (``data:<mime>;base64,<payload>``)
    """
    return data.startswith("data:")


def remove_b64_header(data: str) -> str:
    """
    Remove the base64 header from a data URL, strip whitespace and restore padding.
    """
    if is_data_url(data):
        img_b64 = data.split(",", 1)[-1]
        img_b64 = "".join(img_b64.split())
        padding = len(img_b64) % 4
        if padding:
            img_b64 += "=" * (4 - padding)
        return img_b64
    return data


def is_valid_base64(data: str) -> bool:
    """
    Check that data (optionally a data URL) decodes as strict base64.
    """
    payload = remove_b64_header(data)
    if not payload:
        return False
    try:
        base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        return False
    return True
