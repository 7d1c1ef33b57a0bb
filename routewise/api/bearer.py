from fastapi.security import APIKeyCookie, HTTPBearer

from routewise.src.constants import ADMIN_SESSION_COOKIE

# Credentials are optional at this layer, the validators answer 401 themselves
cookie_admin = APIKeyCookie(
    name=ADMIN_SESSION_COOKIE, scheme_name="Admin Session Cookie", auto_error=False
)
bearer_api = HTTPBearer(scheme_name="API HTTPBearer", auto_error=False)
