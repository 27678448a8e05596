from fastapi.security import HTTPBearer

# Bearer scheme shared by every role, the role is read from the account.
# Missing credentials are reported by `validators.accountToken` as InvalidToken.
bearer_account = HTTPBearer(scheme_name="Account HTTPBearer", auto_error=False)
