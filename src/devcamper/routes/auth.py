from fastapi import APIRouter
from fastapi.responses import JSONResponse

TOKEN_COOKIE = "token"

router = APIRouter(tags=["auth"])


@router.get("/logout")
async def logout() -> JSONResponse:
    """Overwrite the session cookie with an immediately expiring value."""
    response = JSONResponse({"success": True, "data": {}})
    response.set_cookie(TOKEN_COOKIE, "none", max_age=10, httponly=True)
    return response
