from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from ..settings import settings

# Tokens are issued by the account service; this side only verifies them
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


class Owner(BaseModel):
	owner_id: str


def get_current_owner(token: str = Depends(oauth2_scheme)) -> Owner:
	credentials_exception = HTTPException(status_code=401, detail="Could not validate credentials")
	try:
		payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
		owner_id: str | None = payload.get("sub")
		if not owner_id:
			raise credentials_exception
	except JWTError:
		raise credentials_exception
	return Owner(owner_id=str(owner_id))
