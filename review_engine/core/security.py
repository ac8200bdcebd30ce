# review_engine/core/security.py
from fastapi import Header, HTTPException, status


def get_current_reviewer(x_reviewer: str | None = Header(default=None)) -> str:
    """
    Reviewer identity is resolved by the upstream auth gateway and forwarded
    in the X-Reviewer header; it is only used as an attribution string.
    """
    if x_reviewer is None or not x_reviewer.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing reviewer identity",
        )
    return x_reviewer.strip()
