from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.dependencies import get_db
from app.core.jwt import create_access_token
from app.core.logging_config import get_logger
from app.core.security import hash_password, verify_and_upgrade
from app.models.enums import UserRole
from app.models.user import User
from app.schemas.user import TokenOut, UserCreate, UserLogin, UserOut

router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = get_logger()


# =====================================================================
#                           USER REGISTER
# =====================================================================
@router.post("/register", response_model=UserOut, status_code=201)
def user_register(data: UserCreate, db: Session = Depends(get_db)):
    if db.query(User).filter(User.email == data.email).first():
        raise HTTPException(status_code=400, detail="User already exists")

    user = User(
        name=data.name,
        email=data.email,
        password_hash=hash_password(data.password),
        role=UserRole.USER.value,
    )

    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info(f"User registered | {user.email}")
    return user


# =====================================================================
#                           LOGIN
# =====================================================================
@router.post("/login", response_model=TokenOut)
def login(data: UserLogin, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == data.email).first()

    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    valid, upgraded_hash = verify_and_upgrade(data.password, user.password_hash)
    if not valid:
        logger.warning(f"Failed login | {data.email}")
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if upgraded_hash:
        user.password_hash = upgraded_hash
        db.commit()

    token = create_access_token(user.email, user.role)

    return TokenOut(access_token=token, role=user.role)
