"""
Static request headers for token exchanges: correlation id and client
identification headers.
"""

import platform
import uuid
from typing import Optional

from .settings import Settings

CORRELATION_ID_HEADER = "client-request-id"
RETURN_CORRELATION_ID_HEADER = "return-client-request-id"
SKU_HEADER = "x-client-SKU"
VERSION_HEADER = "x-client-VER"
OS_HEADER = "x-client-OS"


class RequestHeaders:
    """
    Static headers sent with every token request of one exchange.

    A correlation id is generated when none is given, so every request can be
    traced on the server side.
    """

    def __init__(
        self,
        correlation_id: Optional[str] = None,
        extra: Optional[dict[str, str]] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or Settings()
        self.correlation_id = correlation_id or str(uuid.uuid4())
        self.extra = dict(extra or {})

    def as_dict(self) -> dict[str, str]:
        headers = {
            SKU_HEADER: self.settings.client_sku,
            VERSION_HEADER: self.settings.client_version,
            OS_HEADER: platform.system() or "unknown",
            CORRELATION_ID_HEADER: self.correlation_id,
        }
        if self.settings.return_correlation_id:
            headers[RETURN_CORRELATION_ID_HEADER] = "true"
        headers.update(self.extra)
        return headers
