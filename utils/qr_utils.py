import base64
import io

import qrcode

_WIFI_SPECIAL = '\\;,:"'


def wifi_payload(network_id: str) -> str:
    """Standard Wi-Fi join string for an open network."""
    escaped = "".join("\\" + ch if ch in _WIFI_SPECIAL else ch for ch in network_id)
    return f"WIFI:S:{escaped};;"


def generate_network_qr(network_id: str) -> str:
    img = qrcode.make(wifi_payload(network_id))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return base64.b64encode(buf.getvalue()).decode("utf-8")
