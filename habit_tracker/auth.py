from fastapi import Header, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from habit_tracker.constants import API_KEY

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(api_key: str = Security(api_key_header)):
    """Verify API key for authentication"""
    if not api_key or api_key != API_KEY:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API Key"
        )
    return api_key


async def get_owner_id(x_owner_id: str = Header(..., min_length=1)) -> str:
    """Owner the request acts for (identity is established upstream)"""
    return x_owner_id
