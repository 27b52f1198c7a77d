"""
Tests for bearer JWT verification.
"""
import pytest

from conftest import TEST_JWT_SECRET, make_token
from founderhq.core.auth import extract_bearer_token, verify_jwt
from founderhq.core.errors import UnauthorizedError


def test_valid_token_returns_subject():
    assert verify_jwt(make_token("user-123")) == "user-123"


def test_expired_token_rejected():
    with pytest.raises(UnauthorizedError, match="expired"):
        verify_jwt(make_token("user-123", expires_in=-60))


def test_wrong_secret_rejected():
    with pytest.raises(UnauthorizedError):
        verify_jwt(make_token("user-123", secret="someone-elses-secret"))


def test_wrong_audience_rejected():
    with pytest.raises(UnauthorizedError):
        verify_jwt(make_token("user-123", aud="anon"))


def test_audience_check_can_be_disabled():
    token = make_token("user-123", aud="anything")
    assert verify_jwt(token, secret=TEST_JWT_SECRET, audience="") == "user-123"


def test_token_without_subject_rejected():
    with pytest.raises(UnauthorizedError):
        verify_jwt(make_token(""))


def test_missing_secret_rejects_everything(test_settings):
    test_settings.AUTH_JWT_SECRET = None
    with pytest.raises(UnauthorizedError):
        verify_jwt(make_token("user-123"))


@pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer", "Bearer   "])
def test_malformed_authorization_header(header):
    with pytest.raises(UnauthorizedError):
        extract_bearer_token(header)


def test_bearer_scheme_is_case_insensitive():
    assert extract_bearer_token("bearer tok") == "tok"
