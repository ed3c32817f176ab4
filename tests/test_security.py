import uuid
from datetime import timedelta

from jose import jwt

from chatforge.core.config import settings
from chatforge.core.security import (
    create_access_token,
    decode_token,
    get_password_hash,
    verify_password,
)


def test_password_hash_verifies_only_the_original_password():
    hashed = get_password_hash("correct horse")

    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)


def test_long_passwords_are_truncated_to_bcrypt_limit():
    long_password = "p" * 100
    hashed = get_password_hash(long_password)

    assert verify_password(long_password, hashed)
    assert verify_password("p" * 72, hashed)


def test_token_carries_identity_for_seven_days():
    user_id = uuid.uuid4()
    token = create_access_token({"sub": str(user_id), "email": "a@example.com"})

    identity = decode_token(token)
    assert identity.user_id == user_id
    assert identity.email == "a@example.com"

    claims = jwt.get_unverified_claims(token)
    assert claims["exp"] - claims["iat"] == 7 * 24 * 60 * 60


def test_invalid_tokens_decode_to_none():
    user_id = str(uuid.uuid4())

    assert decode_token("garbage") is None
    assert decode_token(create_access_token({"sub": user_id}, expires_delta=timedelta(seconds=-5))) is None
    assert decode_token(jwt.encode({"sub": user_id}, "other-secret", algorithm=settings.ALGORITHM)) is None
    assert decode_token(create_access_token({"sub": "not-a-uuid"})) is None
