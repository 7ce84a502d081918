import base64
import hashlib

import pytest

from chatbridge.auth.models.flow import PKCEParameters
from chatbridge.auth.primitives.pkce import PKCEManager, compute_code_challenge
from chatbridge.auth.services.security import generate_state


class TestPKCEManager:
    def test_generate_parameters_crypto_requirements(self) -> None:
        # Arrange
        pkce_manager = PKCEManager()

        # Act
        params = pkce_manager.generate_parameters()

        # Assert RFC 7636 requirements
        assert 43 <= len(params.code_verifier) <= 128
        assert params.code_challenge_method == "S256"

        # 48 random bytes encode to 64 URL-safe characters
        assert len(params.code_verifier) == 64
        assert "=" not in params.code_verifier

        expected_challenge = (
            base64.urlsafe_b64encode(
                hashlib.sha256(params.code_verifier.encode("ascii")).digest()
            )
            .decode("ascii")
            .rstrip("=")
        )
        assert params.code_challenge == expected_challenge

    def test_generate_parameters_uniqueness(self) -> None:
        # Arrange
        pkce_manager = PKCEManager()

        # Act
        params1 = pkce_manager.generate_parameters()
        params2 = pkce_manager.generate_parameters()

        # Assert
        assert params1.code_verifier != params2.code_verifier
        assert params1.code_challenge != params2.code_challenge

    def test_known_challenge_vector(self) -> None:
        # RFC 7636 Appendix B
        verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
        assert compute_code_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"

    def test_parameters_reject_short_verifier(self) -> None:
        with pytest.raises(ValueError):
            PKCEParameters(code_verifier="short", code_challenge="x" * 43)


class TestStateNonce:
    def test_state_has_24_bytes_of_entropy(self) -> None:
        state = generate_state()
        assert len(state) == 32
        assert "=" not in state

    def test_states_are_unique(self) -> None:
        assert generate_state() != generate_state()
