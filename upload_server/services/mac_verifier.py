"""HMAC authentication of upload URLs.

The chat server signs every upload slot with a secret it shares with this
service and puts the hex digest in the query string. Three query keys are in
use across XMPP servers:

- ``v``: Prosody/ejabberd v1, signs ``"<path> <length>"``
- ``v2``: Prosody v2, signs ``"<path>\\0<length>\\0<content type>"``
- ``token``: Metronome, same payload as ``v2``

See https://modules.prosody.im/mod_http_upload_external.html
"""
import hashlib
import hmac
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

from upload_server.logger_config import LOGGER_NAME
from upload_server.services.content_types import content_type_for
from upload_server.services.errors import AuthFailure, NoToken

logger = logging.getLogger(LOGGER_NAME)


class MacProtocol(Enum):
    # Declaration order is lookup precedence
    V2 = "v2"
    TOKEN = "token"
    V1 = "v"

    @property
    def query_key(self) -> str:
        return self.value

    def payload(self, relative_path: str, content_length: int, content_type: str) -> bytes:
        """Build the byte string the chat server signed for this protocol."""
        if self is MacProtocol.V1:
            message = f"{relative_path} {content_length}"
        else:
            message = f"{relative_path}\x00{content_length}\x00{content_type}"
        return message.encode("utf-8")


@dataclass(frozen=True)
class AuthToken:
    protocol: MacProtocol
    digest: str


class MacVerifier:
    def __init__(self, secret: bytes):
        self._secret = secret

    def select_token(self, query_params: Mapping[str, str]) -> AuthToken:
        """Pick the token from the query string; ``v2`` wins over ``token`` over ``v``."""
        for protocol in MacProtocol:
            if protocol.query_key in query_params:
                return AuthToken(protocol, query_params[protocol.query_key])

        logger.info("No HMAC attached to URL. Expected URL with v, v2 or token")
        raise NoToken()

    def expected_digest(self, protocol: MacProtocol, relative_path: str, content_length: int,
                        content_type: Optional[str] = None) -> str:
        if content_type is None:
            content_type = content_type_for(relative_path)
        message = protocol.payload(relative_path, content_length, content_type)
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def authenticate(self, relative_path: str, content_length: int,
                     query_params: Mapping[str, str]) -> AuthToken:
        """Check the request's token against the digest its protocol expects.

        ``content_length`` is the length the client declared, which is what the
        chat server signed when it handed out the slot.

        Raises:
            NoToken: no ``v``, ``v2`` or ``token`` parameter is present
            AuthFailure: the digest does not match
        """
        token = self.select_token(query_params)
        content_type = content_type_for(relative_path)
        logger.debug(
            f"Authenticating {relative_path}: length={content_length}, "
            f"type={content_type}, protocol={token.protocol.query_key}"
        )

        expected = self.expected_digest(token.protocol, relative_path, content_length, content_type)
        if not hmac.compare_digest(expected.encode("ascii"), token.digest.encode("utf-8")):
            logger.info(f"Invalid MAC for {relative_path} (protocol {token.protocol.query_key})")
            raise AuthFailure()

        return token
