"""Page route selection: the success route shows verification instead of the store."""

from enum import Enum
from urllib.parse import urlparse

SUCCESS_SEGMENT = "success"


class View(str, Enum):
    STOREFRONT = "storefront"
    VERIFICATION = "verification"


def select_view(path: str) -> View:
    """Pick the view for a path or full URL.

    Leading and trailing slashes are ignored, so "/success", "success" and
    "//success/" all select verification. Query strings are ignored too.
    """
    if not path:
        return View.STOREFRONT
    if "://" in path:
        path = urlparse(path).path
    else:
        path = path.split("?", 1)[0].split("#", 1)[0]
    if path.strip().strip("/").lower() == SUCCESS_SEGMENT:
        return View.VERIFICATION
    return View.STOREFRONT
