from fastapi import HTTPException


def abort(status_code: int, code: str, message: str) -> None:
    raise HTTPException(status_code=status_code, detail={"code": code, "message": message})


def _auth_401(code: str, message: str) -> HTTPException:
    # keep WWW-Authenticate for bearer clients
    return HTTPException(
        status_code=401,
        detail={"code": code, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )
