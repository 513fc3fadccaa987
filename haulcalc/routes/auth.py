import logging
from fastapi import APIRouter, HTTPException, status, Depends
from pymongo.errors import DuplicateKeyError
from haulcalc.models.user import UserCreate, UserLogin, UserResponse, TokenResponse
from haulcalc.db.mongo import get_db
from haulcalc.repositories.user_repo import UserRepository
from haulcalc.core.auth import create_access_token, get_current_user
from haulcalc.core.security import verify_password

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger("haulcalc.auth")

@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def signup(user_data: UserCreate, db = Depends(get_db)):
    """Create a new user account."""
    user_repo = UserRepository(db)

    existing_user = await user_repo.get_user_by_username(user_data.username)
    if existing_user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already exists"
        )

    try:
        user = await user_repo.create_user(user_data)
    except DuplicateKeyError:
        # Lost a race with a concurrent signup for the same name
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already exists"
        )

    logger.info("Registered user %s", user.username)
    return TokenResponse(
        access_token=create_access_token(str(user.id)),
        user=user.to_response()
    )

@router.post("/login", response_model=TokenResponse)
async def login(credentials: UserLogin, db = Depends(get_db)):
    """Login with username and password."""
    user_repo = UserRepository(db)

    user = await user_repo.get_user_by_username(credentials.username)
    if not user or not verify_password(credentials.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password"
        )

    return TokenResponse(
        access_token=create_access_token(str(user.id)),
        user=user.to_response()
    )

@router.get("/me", response_model=UserResponse)
async def get_me(current_user: UserResponse = Depends(get_current_user)):
    """Get current user details."""
    return current_user
