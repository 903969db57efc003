"""Token issuer and refresh-store unit tests (no HTTP)."""

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
from jose import jwt

from storefront.exceptions import AuthenticationError, AuthorizationError
from storefront.models.refresh_token import RefreshToken
from storefront.services import auth_service, session_service
from storefront.utils.hashing import get_password_hash, verify_password
from storefront.utils.tokenJWT import (
    ACCESS, REFRESH, authenticate, create_access_token, create_refresh_token, decode_token,
)

T0 = datetime(2026, 3, 1, 12, 0, 0)


@pytest.fixture
def principal():
    return SimpleNamespace(id=7, email=" Mixed@Example.COM ", role="client")


class TestAccessToken:

    def test_claims(self, principal, settings):
        token = create_access_token(principal, settings, now=T0)
        claims = decode_token(token, settings.SECRET_KEY, settings.ALGORITHM, ACCESS, now=T0)
        assert claims["principal_id"] == 7
        assert claims["sub"] == "7"
        assert claims["email"] == "mixed@example.com"
        assert claims["role"] == "client"
        assert "password_hash" not in claims

    def test_rejected_exactly_at_expiry(self, principal, settings):
        token = create_access_token(principal, settings, now=T0)
        lifetime = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

        decode_token(token, settings.SECRET_KEY, settings.ALGORITHM, ACCESS,
                     now=T0 + lifetime - timedelta(seconds=1))
        with pytest.raises(AuthenticationError):
            decode_token(token, settings.SECRET_KEY, settings.ALGORITHM, ACCESS, now=T0 + lifetime)

    def test_tampered_signature(self, principal, settings):
        token = create_access_token(principal, settings, now=T0)
        head, body, sig = token.split(".")
        tampered = ".".join([head, body, sig[::-1]])
        with pytest.raises(AuthenticationError):
            decode_token(tampered, settings.SECRET_KEY, settings.ALGORITHM, ACCESS, now=T0)

    def test_wrong_type_rejected(self, principal, settings):
        token = create_access_token(principal, settings, now=T0)
        with pytest.raises(AuthenticationError):
            decode_token(token, settings.SECRET_KEY, settings.ALGORITHM, REFRESH, now=T0)

    def test_token_without_exp_rejected(self, settings):
        token = jwt.encode({"principal_id": 1, "type": ACCESS}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
        with pytest.raises(AuthenticationError):
            decode_token(token, settings.SECRET_KEY, settings.ALGORITHM, ACCESS, now=T0)


class TestRefreshToken:

    def test_claims_and_lifetime(self, principal, settings):
        token, jti, expires_at = create_refresh_token(principal, settings, now=T0)
        claims = decode_token(token, settings.refresh_secret, settings.ALGORITHM, REFRESH, now=T0)
        assert claims["jti"] == jti
        assert claims["role"] == "client"
        assert "email" not in claims
        assert expires_at == T0 + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)

    def test_not_accepted_with_access_secret(self, principal, settings):
        token, _, _ = create_refresh_token(principal, settings, now=T0)
        with pytest.raises(AuthenticationError):
            decode_token(token, settings.SECRET_KEY, settings.ALGORITHM, REFRESH, now=T0)

    def test_refresh_secret_falls_back_to_secret_key(self, settings):
        settings.REFRESH_SECRET_KEY = None
        assert settings.refresh_secret == settings.SECRET_KEY


class TestSessionStore:

    def test_only_digest_is_stored(self, db_session, make_principal, settings):
        principal = auth_service.get_principal(db_session, make_principal("store@example.com"))
        issued = session_service.issue_tokens(db_session, principal, settings)

        record = db_session.query(RefreshToken).one()
        assert record.token_hash == session_service.hash_token(issued.refresh_token)
        assert issued.refresh_token not in record.token_hash

    def test_expired_refresh_rejected(self, db_session, make_principal, settings):
        principal = auth_service.get_principal(db_session, make_principal("old@example.com"))
        issued = session_service.issue_tokens(db_session, principal, settings, now=T0)

        later = issued.refresh_expires_at
        with pytest.raises(AuthenticationError):
            session_service.refresh_session(db_session, issued.refresh_token, settings, now=later)

    def test_refresh_inside_lifetime(self, db_session, make_principal, settings):
        principal = auth_service.get_principal(db_session, make_principal("fresh@example.com"))
        issued = session_service.issue_tokens(db_session, principal, settings, now=T0)

        renewed = session_service.refresh_session(
            db_session, issued.refresh_token, settings, now=T0 + timedelta(days=1))
        assert renewed.refresh_token != issued.refresh_token

    def test_revoke_all_counts_live_tokens(self, db_session, make_principal, settings):
        principal = auth_service.get_principal(db_session, make_principal("many@example.com"))
        first = session_service.issue_tokens(db_session, principal, settings)
        session_service.issue_tokens(db_session, principal, settings)
        session_service.revoke_token(db_session, first.refresh_token)

        assert session_service.revoke_all(db_session, principal.id) == 1
        db_session.commit()
        assert all(t.revoked_at is not None for t in db_session.query(RefreshToken).all())

    def test_revoke_token_reports_owner_once(self, db_session, make_principal, settings):
        principal = auth_service.get_principal(db_session, make_principal("owner@example.com"))
        issued = session_service.issue_tokens(db_session, principal, settings)
        assert issued.principal_id == principal.id

        assert session_service.revoke_token(db_session, issued.refresh_token) == principal.id
        assert session_service.revoke_token(db_session, issued.refresh_token) is None
        assert session_service.revoke_token(db_session, None) is None


class TestAuthenticate:

    def test_unknown_principal_is_401(self, db_session, settings):
        ghost = SimpleNamespace(id=9999, email="ghost@example.com", role="client")
        creds = SimpleNamespace(credentials=create_access_token(ghost, settings))
        with pytest.raises(AuthenticationError):
            authenticate(db_session, creds, settings)

    def test_inactive_principal_is_403(self, db_session, make_principal, settings):
        principal = auth_service.get_principal(db_session, make_principal("sleepy@example.com"))
        auth_service.set_active(db_session, principal, False)
        creds = SimpleNamespace(credentials=create_access_token(principal, settings))
        with pytest.raises(AuthorizationError):
            authenticate(db_session, creds, settings)

    def test_missing_credentials_is_401(self, db_session, settings):
        with pytest.raises(AuthenticationError):
            authenticate(db_session, None, settings)


class TestHashing:

    def test_roundtrip_and_mismatch(self):
        hashed = get_password_hash("correct horse")
        assert verify_password("correct horse", hashed)
        assert not verify_password("wrong horse", hashed)

    def test_malformed_hash_is_a_mismatch(self):
        assert not verify_password("anything", "not-a-bcrypt-hash")

    def test_long_password_is_accepted(self):
        long_password = "x" * 100
        assert verify_password(long_password, get_password_hash(long_password))
