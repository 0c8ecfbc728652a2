# companion/api/routes/auth.py
from fastapi import APIRouter, Depends, status

from companion.schemas.practice import SessionOut, SignInIn, SignUpIn, SignUpOut, UserProfile
from companion.api.deps import get_account_service, get_current_profile
from companion.services.identity import AccountService, Session

router = APIRouter(prefix="/auth", tags=["auth"])


def _session_out(session: Session) -> SessionOut:
    return SessionOut(
        access_token=session.access_token,
        user_id=session.user_id,
        email=session.email,
        expires_at=session.expires_at,
    )


@router.post("/sign-up", response_model=SignUpOut, status_code=status.HTTP_201_CREATED)
async def sign_up_ep(payload: SignUpIn, accounts: AccountService = Depends(get_account_service)):
    profile, confirmed = await accounts.register(payload.email, payload.password, payload.full_name)
    if not confirmed:
        # no session until the address is verified
        return SignUpOut(session=None, user=profile, verification_pending=True)
    return SignUpOut(session=_session_out(accounts.issue_session(profile)), user=profile)


@router.post("/sign-in", response_model=SessionOut)
async def sign_in_ep(payload: SignInIn, accounts: AccountService = Depends(get_account_service)):
    profile = await accounts.authenticate(payload.email, payload.password)
    return _session_out(accounts.issue_session(profile))


@router.get("/me", response_model=UserProfile)
async def me_ep(profile: UserProfile = Depends(get_current_profile)):
    return profile
