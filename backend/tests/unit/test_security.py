"""
Unit Tests for identity token verification
"""
from datetime import timedelta

import jwt
import pytest

from app.core.config import settings
from app.core.security import Principal, Role, create_access_token, get_user_from_token


@pytest.mark.unit
class TestTokens:

    def test_token_names_the_profile(self):
        assert get_user_from_token(create_access_token(42)) == 42

    def test_expired_token_rejected(self):
        token = create_access_token(42, expires_delta=timedelta(minutes=-1))
        assert get_user_from_token(token) is None

    def test_token_signed_with_other_key_rejected(self):
        token = jwt.encode({"sub": "42", "type": "access"}, "some-other-key", algorithm="HS256")
        assert get_user_from_token(token) is None

    def test_non_numeric_subject_rejected(self):
        token = jwt.encode({"sub": "not-a-number", "type": "access"}, settings.SECRET_KEY, algorithm="HS256")
        assert get_user_from_token(token) is None

    def test_wrong_token_type_rejected(self):
        token = jwt.encode({"sub": "42", "type": "refresh"}, settings.SECRET_KEY, algorithm="HS256")
        assert get_user_from_token(token) is None


@pytest.mark.unit
def test_principal_role_flags():
    admin = Principal(user_id=1, role=Role.ADMIN)
    operator = Principal(user_id=2, role=Role.OPERATOR)

    assert admin.is_admin and not admin.is_operator
    assert operator.is_operator and not operator.is_admin
