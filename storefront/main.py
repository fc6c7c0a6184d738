import logging
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import crud, schemas
from .auth import InvalidToken, PasswordHashError, TokenService, pwd_context, verify_password
from .config import OrderAccess, Settings, configure_logging, load_settings
from .db import Base, make_engine, make_session_factory

logger = logging.getLogger(__name__)

router = APIRouter()


# Dependency to get DB session per request

def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_tokens(request: Request) -> TokenService:
    return request.app.state.tokens


def get_current_user(
    authorization: Optional[str] = Header(default=None),
    tokens: TokenService = Depends(get_tokens),
) -> schemas.Claims:
    """Bearer token gate for protected routes.

    Only the token is checked; the user row is not looked up, so a token
    keeps working until it expires even if its account has been deleted.
    """
    if not authorization:
        raise HTTPException(status_code=401, detail="No token, authorization denied")
    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        logger.info("Token verification error: malformed authorization header")
        raise HTTPException(status_code=401, detail="Token is not valid")
    try:
        return tokens.verify(token)
    except InvalidToken as e:
        logger.info("Token verification error: %s", e)
        raise HTTPException(status_code=401, detail="Token is not valid")


def get_order_viewer(
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
    tokens: TokenService = Depends(get_tokens),
) -> Optional[schemas.Claims]:
    # OPEN: order listing and cancellation are public, no identity needed
    if settings.order_access is OrderAccess.OPEN:
        return None
    return get_current_user(authorization, tokens)


@router.get("/health")
async def health():
    return {"status": "ok"}


# -------------------- users --------------------

@router.post("/register", response_model=schemas.Message, status_code=201)
def register(user: schemas.UserCreate, db: Session = Depends(get_db)):
    try:
        created = crud.create_user(db, user)
    except crud.DuplicateEmailError:
        raise HTTPException(status_code=400, detail="User already exists")
    logger.info("registered user %s", created.id)
    return {"message": "User registered successfully"}


@router.post("/login", response_model=schemas.TokenResponse)
def login(
    credentials: schemas.LoginRequest,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_tokens),
):
    user = crud.get_user_by_email(db, credentials.email)
    if not user:
        # unknown emails cost one hash check too, so timing matches a wrong password
        pwd_context.dummy_verify()
    # same message for unknown email and wrong password
    if not user or not verify_password(credentials.password, user.password_hash):
        logger.info("failed login attempt")
        raise HTTPException(status_code=400, detail="Invalid credentials")
    claims = schemas.Claims(id=user.id, email=user.email, username=user.username, role=user.role)
    return {"token": tokens.issue(claims), "role": user.role}


@router.get("/user/details", response_model=schemas.UserDetails)
def user_details(current: schemas.Claims = Depends(get_current_user), db: Session = Depends(get_db)):
    user = crud.get_user(db, current.id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return {"name": user.username, "address": user.address}


# -------------------- products --------------------

@router.post("/products", response_model=schemas.ProductResult, status_code=201)
def create_product(
    product: schemas.ProductIn,
    db: Session = Depends(get_db),
    current: schemas.Claims = Depends(get_current_user),
):
    created = crud.create_product(db, product)
    return {"message": "Product added successfully", "product": schemas.ProductRead.model_validate(created)}


@router.get("/products", response_model=List[schemas.ProductRead])
def list_products(db: Session = Depends(get_db)):
    return crud.list_products(db)


@router.get("/products/{product_id}", response_model=schemas.ProductRead)
def get_product(product_id: int, db: Session = Depends(get_db)):
    product = crud.get_product(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.put("/products/{product_id}", response_model=schemas.ProductResult)
def update_product(
    product_id: int,
    changes: schemas.ProductIn,
    db: Session = Depends(get_db),
    current: schemas.Claims = Depends(get_current_user),
):
    updated = crud.update_product(db, product_id, changes)
    if not updated:
        raise HTTPException(status_code=404, detail="Product not found")
    return {"message": "Product updated successfully", "product": schemas.ProductRead.model_validate(updated)}


@router.delete("/products/{product_id}", response_model=schemas.ProductResult)
def delete_product(
    product_id: int,
    db: Session = Depends(get_db),
    current: schemas.Claims = Depends(get_current_user),
):
    deleted = crud.delete_product(db, product_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Product not found")
    return {"message": "Product deleted successfully", "product": deleted}


# -------------------- orders --------------------

@router.post("/orders", response_model=schemas.OrderResult, status_code=201)
def place_order(
    order: schemas.OrderCreate,
    db: Session = Depends(get_db),
    current: schemas.Claims = Depends(get_current_user),
):
    try:
        created = crud.create_order(db, order, user_id=current.id)
    except crud.DuplicateOrderError:
        logger.warning("duplicate order id %r from user %s", order.order_id, current.id)
        raise HTTPException(status_code=409, detail="Order already exists")
    logger.info("order %s placed by user %s", created.order_id, current.id)
    return {"message": "Order placed successfully", "order": schemas.OrderRead.model_validate(created)}


@router.get("/orders", response_model=List[schemas.OrderRead])
def list_orders(db: Session = Depends(get_db), viewer: Optional[schemas.Claims] = Depends(get_order_viewer)):
    if viewer is None:
        return crud.list_orders(db)
    return crud.list_orders_for_user(db, viewer.id)


@router.get("/orders/user", response_model=List[schemas.OrderRead])
def my_orders(db: Session = Depends(get_db), current: schemas.Claims = Depends(get_current_user)):
    return crud.list_orders_for_user(db, current.id)


@router.delete("/orders/{order_id}", response_model=schemas.OrderResult)
def cancel_order(
    order_id: str,
    db: Session = Depends(get_db),
    viewer: Optional[schemas.Claims] = Depends(get_order_viewer),
):
    order = crud.get_order(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    if viewer is not None and order.user_id != viewer.id:
        raise HTTPException(status_code=403, detail="Not authorized to cancel this order")
    deleted = crud.delete_order(db, order_id)
    return {"message": "Order canceled successfully", "order": deleted}


# -------------------- single-page app --------------------

# GET only: unmatched POST/PUT/DELETE paths get 405 instead of the bundle
@router.get("/{full_path:path}", include_in_schema=False)
def spa_fallback(full_path: str, settings: Settings = Depends(get_settings)):
    root = Path(settings.static_dir).resolve()
    if full_path:
        candidate = (root / full_path).resolve()
        # never serve anything outside the bundle directory
        if candidate.is_relative_to(root) and candidate.is_file():
            return FileResponse(candidate)
    index = root / "index.html"
    if index.is_file():
        return FileResponse(index)
    raise HTTPException(status_code=404, detail="Not Found")


async def server_error(request: Request, exc: Exception):
    # real cause stays in the server log, client gets a generic message
    logger.error("%s %s failed", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Server Error"})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    if settings is None:
        settings = load_settings()

    engine = make_engine(settings.database_url)
    # Create tables if not existing. There is no migration tooling.
    Base.metadata.create_all(bind=engine)
    logger.info("database ready at %s", engine.url.render_as_string(hide_password=True))

    app = FastAPI(title="Storefront API")
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.tokens = TokenService(settings.jwt_secret, ttl_seconds=settings.token_ttl_seconds)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(SQLAlchemyError, server_error)
    app.add_exception_handler(PasswordHashError, server_error)
    app.include_router(router)
    return app


if __name__ == "__main__":
    import uvicorn

    settings = load_settings()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)
