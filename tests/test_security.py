from datetime import timedelta

from blogapi.core.security import TokenService, get_password_hash, now_ts, verify_password
from blogapi.core.text import clean_text


def test_password_hashing():
    hashed = get_password_hash("secret1")
    assert hashed != "secret1"
    assert verify_password("secret1", hashed)
    assert not verify_password("secret2", hashed)


def test_access_token_round_trip(tokens):
    token = tokens.create_access_token("user-1")
    assert tokens.verify_access_token(token) == "user-1"
    # a refresh token is not accepted as an access token and vice versa
    assert tokens.verify_refresh_token(token) is None


def test_refresh_token_claims(tokens):
    issued_at = now_ts()
    token = tokens.create_refresh_token("user-1", "device-1", issued_at)
    claims = tokens.verify_refresh_token(token)
    assert (claims.user_id, claims.device_id, claims.issued_at) == ("user-1", "device-1", issued_at)
    assert tokens.verify_access_token(token) is None


def test_expired_and_foreign_tokens_rejected(tokens, test_settings):
    expired = tokens.create_access_token("user-1", expires_delta=timedelta(seconds=-5))
    assert tokens.verify_access_token(expired) is None

    other = TokenService(test_settings.model_copy(update={"SECRET_KEY": "another-secret"}))
    assert tokens.verify_access_token(other.create_access_token("user-1")) is None
    assert tokens.verify_access_token("not-a-jwt") is None


def test_clean_text_strips_markup():
    assert clean_text("  <script>alert(1)</script><b>hello</b> ") == "alert(1)hello"
