"""QR payload helpers. The payload is the raw item id; rendering is external."""
from urllib.parse import urlencode

DEFAULT_QR_SERVICE_URL = "https://api.qrserver.com/v1/create-qr-code/"
DEFAULT_QR_SIZE = 300


def qr_payload(item_id: str) -> str:
    return item_id


def qr_image_url(item_id: str, base_url: str = DEFAULT_QR_SERVICE_URL, size: int = DEFAULT_QR_SIZE) -> str:
    """URL of a rendered QR image for any text-accepting QR service."""
    query = urlencode({"size": f"{size}x{size}", "data": qr_payload(item_id)})
    return f"{base_url}?{query}"


def qr_download_name(item_name: str) -> str:
    return f"{item_name}-qr.png"
