"""
Request signing.

Every call to the ledger carries `ts`, `nonce` and `sig` so the endpoint can authenticate it without sessions or cookies:
    sig = HMAC(secret, ts + nonce + action + identity)
"""

import hmac
import secrets
import string
import time
from typing import Callable

from ledger_sync.core.logging_utils import get_logger
from ledger_sync.core.models import SignedRequestEnvelope

logger = get_logger(__name__)

NONCE_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
NONCE_LENGTH = 16


class RequestSigner:
    """Derives the MAC and anti-replay nonce for outbound calls, using a secret shared with the endpoint."""

    def __init__(
        self,
        secret: str,
        digest: str = "sha256",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._secret = secret.encode("utf-8")
        self.digest = digest
        self._clock = clock

    def sign(self, action: str, identity: str = "") -> SignedRequestEnvelope:
        timestamp_seconds = str(int(self._clock()))
        nonce = generate_nonce()
        return SignedRequestEnvelope(
            action=action,
            timestamp_seconds=timestamp_seconds,
            nonce=nonce,
            signature=self.signature(timestamp_seconds, nonce, action, identity),
        )

    def signature(
        self, timestamp_seconds: str, nonce: str, action: str, identity: str
    ) -> str:
        """
        Hex MAC over the concatenated fields.
        ---
        An unusable digest yields an empty signature: the endpoint then rejects the call with a regular
        authentication error instead of this side crashing.
        """
        message = f"{timestamp_seconds}{nonce}{action}{identity}".encode("utf-8")
        try:
            return hmac.new(self._secret, message, self.digest).hexdigest()
        except ValueError:
            logger.error("MAC digest %r unavailable, request will be unsigned", self.digest)
            return ""


def generate_nonce(length: int = NONCE_LENGTH) -> str:
    return "".join(secrets.choice(NONCE_ALPHABET) for _ in range(length))
