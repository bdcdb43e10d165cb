# cardledger/services/contact.py

import re
from typing import Optional, Tuple
from urllib.parse import quote

COORDINATES = re.compile(r"@?(-?\d+\.\d+),(-?\d+\.\d+)")


def whatsapp_link(phone: Optional[str], message: str) -> Optional[str]:
    if not phone:
        return None
    digits = re.sub(r"\D", "", phone)
    if not digits:
        return None
    return f"https://wa.me/{digits}?text={quote(message, safe='')}"


def extract_coordinates(maps_url: Optional[str]) -> Tuple[Optional[float], Optional[float]]:
    """Pull a lat,lng pair out of a Google Maps link, if it has one."""
    if not maps_url:
        return None, None
    match = COORDINATES.search(maps_url)
    if not match:
        return None, None
    return float(match.group(1)), float(match.group(2))
