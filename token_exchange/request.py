"""
Token-endpoint request construction.

``build_request`` turns an authority, a grant, the static request headers and
a client-authentication strategy into an immutable ``TokenExchangeRequest``.
Building a request never touches the network.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional
from urllib.parse import parse_qs, urlencode, urlparse

from .exceptions import ConfigurationError

if TYPE_CHECKING:
    from .authority import Authority
    from .client_auth import ClientAuthentication
    from .grants import Grant
    from .headers import RequestHeaders

FORM_URLENCODED = "application/x-www-form-urlencoded"


@dataclass
class RequestDraft:
    """Mutable request under construction, handed to client authentication strategies."""

    url: str
    headers: dict[str, str] = field(default_factory=dict)
    parameters: dict[str, list[str]] = field(default_factory=dict)

    def set_parameter(self, name: str, *values: str) -> None:
        self.parameters[name] = list(values)

    def set_header(self, name: str, value: str) -> None:
        self.headers[name] = value

    def freeze(self) -> "TokenExchangeRequest":
        return TokenExchangeRequest(
            url=self.url,
            headers=tuple(self.headers.items()),
            body=urlencode(
                [(name, value) for name, values in self.parameters.items() for value in values]
            ),
        )


@dataclass(frozen=True)
class TokenExchangeRequest:
    """A fully built token-endpoint request. Always a form-urlencoded POST."""

    url: str
    headers: tuple[tuple[str, str], ...]
    body: str
    method: str = "POST"
    content_type: str = FORM_URLENCODED

    def headers_dict(self) -> dict[str, str]:
        return dict(self.headers)

    def parameters(self) -> dict[str, list[str]]:
        return parse_qs(self.body, keep_blank_values=True)


def _validate_endpoint(url: Optional[str]) -> str:
    if not url:
        raise ConfigurationError("The token endpoint URL is not specified")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigurationError(f"The token endpoint URL is malformed: {url!r}")
    return url


def build_request(
    authority: "Authority",
    grant: "Grant",
    headers: Optional["RequestHeaders"] = None,
    client_auth: Optional["ClientAuthentication"] = None,
) -> TokenExchangeRequest:
    """
    Build the token-endpoint request for a grant.

    Client authentication is applied last so it can add to or override the
    grant's parameters.

    Raises:
        ConfigurationError: If the authority has no well-formed token endpoint.
    """
    url = _validate_endpoint(authority.token_endpoint_url())

    draft = RequestDraft(url=url)
    if headers is not None:
        draft.headers.update(headers.as_dict())
    draft.set_header("Content-Type", FORM_URLENCODED)

    for name, values in grant.to_parameters().items():
        draft.set_parameter(name, *values)

    if client_auth is not None:
        client_auth.apply_to(draft)

    return draft.freeze()
