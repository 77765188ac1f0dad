"""
Client authentication strategies.

Each strategy adds the client's credentials to a request under construction.
Strategies receive pre-built material; creating secrets, certificates or
signed assertions is up to the caller.
"""

from abc import ABC, abstractmethod
from base64 import b64encode
from urllib.parse import quote_plus

from .request import RequestDraft

JWT_BEARER_ASSERTION_TYPE = "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"


class ClientAuthentication(ABC):
    @abstractmethod
    def apply_to(self, request: RequestDraft) -> None:
        """Add credentials to ``request`` in place."""
        raise NotImplementedError()


class NoClientAuthentication(ClientAuthentication):
    def apply_to(self, request: RequestDraft) -> None:
        return None


class PublicClient(ClientAuthentication):
    """Public clients identify themselves but hold no secret."""

    def __init__(self, client_id: str):
        self.client_id = client_id

    def apply_to(self, request: RequestDraft) -> None:
        request.set_parameter("client_id", self.client_id)


class ClientSecretPost(ClientAuthentication):
    def __init__(self, client_id: str, client_secret: str):
        self.client_id = client_id
        self.client_secret = client_secret

    def apply_to(self, request: RequestDraft) -> None:
        request.set_parameter("client_id", self.client_id)
        request.set_parameter("client_secret", self.client_secret)


class ClientSecretBasic(ClientAuthentication):
    """HTTP Basic client authentication (RFC 6749 section 2.3.1)."""

    def __init__(self, client_id: str, client_secret: str):
        self.client_id = client_id
        self.client_secret = client_secret

    def apply_to(self, request: RequestDraft) -> None:
        # Both parts are form-urlencoded before being joined
        credentials = f"{quote_plus(self.client_id)}:{quote_plus(self.client_secret)}"
        encoded = b64encode(credentials.encode()).decode()
        request.set_header("Authorization", f"Basic {encoded}")


class ClientAssertion(ClientAuthentication):
    """Authenticate with an already signed client assertion (e.g. a certificate-signed JWT)."""

    def __init__(
        self,
        client_id: str,
        assertion: str,
        assertion_type: str = JWT_BEARER_ASSERTION_TYPE,
    ):
        self.client_id = client_id
        self.assertion = assertion
        self.assertion_type = assertion_type

    def apply_to(self, request: RequestDraft) -> None:
        request.set_parameter("client_id", self.client_id)
        request.set_parameter("client_assertion", self.assertion)
        request.set_parameter("client_assertion_type", self.assertion_type)
