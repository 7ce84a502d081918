"""PKCE (Proof Key for Code Exchange) manager.

Implements RFC 7636 parameter generation so that an authorization code
can only be redeemed by the client that started the flow.
"""

from __future__ import annotations

import base64
import hashlib

from chatbridge.auth.models.flow import PKCEParameters
from chatbridge.auth.services.security import random_token

CODE_VERIFIER_BYTES = 48


class PKCEManager:
    """Generates PKCE parameters for authorization code flows.

    - Uses the S256 code challenge method (SHA256 + base64url)
    - Draws a fresh verifier from ``secrets`` on every call
    """

    def generate_parameters(self) -> PKCEParameters:
        """Generate a new verifier and its S256 challenge."""
        code_verifier = self._generate_code_verifier()
        return PKCEParameters(
            code_verifier=code_verifier,
            code_challenge=compute_code_challenge(code_verifier),
            code_challenge_method="S256",
        )

    def _generate_code_verifier(self) -> str:
        """Generate a code verifier with 48 bytes of entropy.

        The URL-safe base64 alphabet is a subset of the RFC 7636 unreserved
        characters, and 48 bytes encode to 64 characters.
        """
        return random_token(CODE_VERIFIER_BYTES)


def compute_code_challenge(code_verifier: str) -> str:
    """BASE64URL-ENCODE(SHA256(ASCII(code_verifier))), padding stripped."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")
