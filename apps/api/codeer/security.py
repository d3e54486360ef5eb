from __future__ import annotations

from jose import JWTError, jwt

from codeer.config import JWT_ALGORITHM, JWT_SECRET_KEY


def decode_access_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as exc:
        raise ValueError("Invalid token") from exc

    token_type = payload.get("token_type")
    if token_type and token_type != "access":
        raise ValueError("Invalid token")
    return payload
