"""
eSIM activation codes and their QR rendering.

The activation code is the persisted artefact. The QR image is never stored;
emails embed a URL to a public QR rendering service instead.
"""
from urllib.parse import quote

QR_IMAGE_SERVICE = "https://api.qrserver.com/v1/create-qr-code/"


def build_activation_code(smdp_address: str, matching_id: str) -> str:
    """
    eSIM activation code in the GSMA LPA grammar: LPA:1$<SM-DP+ address>$<matching id>.
    """
    if not smdp_address or not matching_id:
        raise ValueError("Both SM-DP+ address and matching ID are required for an activation code")
    return f"LPA:1${smdp_address}${matching_id}"


def qr_image_url(activation_code: str, size: int = 200) -> str:
    return f"{QR_IMAGE_SERVICE}?size={size}x{size}&data={quote(activation_code, safe='')}"
