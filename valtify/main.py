import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Annotated, Optional

from fastapi import Depends, FastAPI, Header, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from valtify import auth
from valtify.accounts import AccountStore
from valtify.config import Settings, setup_logging
from valtify.crypto import PayloadCodec, resolve_master_key
from valtify.database import build_engine, build_session_factory
from valtify.errors import InvalidInput, PayloadError, VaultError
from valtify.hashing import CredentialHasher
from valtify.models import Account, VaultItem, base
from valtify.schemas import (
    AccountDetail,
    AccountOut,
    AuthResponse,
    ItemCreate,
    ItemEnvelope,
    ItemList,
    ItemOut,
    ItemUpdate,
    LoginRequest,
    Message,
    RegisterRequest,
)
from valtify.tokens import SessionIssuer
from valtify.vault import VaultStore

logger = logging.getLogger(__name__)


# ── Dependencies ───────────────────────────────────────────────────────────────

def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


DbSession = Annotated[Session, Depends(get_db)]


def get_accounts(db: DbSession) -> AccountStore:
    return AccountStore(db)


def get_vault(db: DbSession) -> VaultStore:
    return VaultStore(db)


Accounts = Annotated[AccountStore, Depends(get_accounts)]
Vault = Annotated[VaultStore, Depends(get_vault)]


def current_account(
    request: Request,
    accounts: Accounts,
    authorization: Annotated[Optional[str], Header()] = None,
) -> Account:
    return request.app.state.gate.resolve(authorization, accounts)


CurrentAccount = Annotated[Account, Depends(current_account)]


def _seal(request: Request, account_id: str, data: str) -> str:
    if not data.strip():
        raise InvalidInput("data must not be empty")
    return request.app.state.codec.encode(account_id, data)


def _item_out(request: Request, item: VaultItem) -> ItemOut:
    codec: PayloadCodec = request.app.state.codec
    try:
        data = codec.decode(item.owner_id, item.payload)
    except PayloadError:
        logger.error("Payload of item %s failed to decrypt", item.id)
        raise
    return ItemOut(
        id=item.id,
        category=item.category,
        title=item.title,
        data=data,
        created_at=item.created_at,
        updated_at=item.updated_at,
    )


# ── Error handlers ─────────────────────────────────────────────────────────────

async def vault_error_handler(request: Request, exc: VaultError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.detail},
        headers=exc.headers(),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Submitted values are left out on purpose: they may be passwords or item data.
    errors = [
        {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=InvalidInput.status_code,
        content={"error": InvalidInput.code, "detail": "Invalid request", "errors": errors},
    )


# ── Routes ─────────────────────────────────────────────────────────────────────

def register_routes(app: FastAPI) -> None:

    @app.post("/api/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
    def register(body: RegisterRequest, request: Request, accounts: Accounts):
        state = request.app.state
        account, token = auth.register(
            accounts,
            state.hasher,
            state.issuer,
            body.email,
            body.password,
            min_password_length=state.settings.min_password_length,
        )
        return AuthResponse(user=AccountOut.model_validate(account), token=token)

    @app.post("/api/login", response_model=AuthResponse)
    def login(body: LoginRequest, request: Request, accounts: Accounts):
        state = request.app.state
        account, token = auth.login(accounts, state.hasher, state.issuer, body.email, body.password)
        return AuthResponse(user=AccountOut.model_validate(account), token=token)

    @app.get("/api/me", response_model=AccountDetail)
    def me(account: CurrentAccount):
        return AccountDetail.model_validate(account)

    @app.get("/api/vault", response_model=ItemList)
    def list_items(request: Request, account: CurrentAccount, vault: Vault):
        return ItemList(items=[_item_out(request, item) for item in vault.list(account.id)])

    @app.post("/api/vault", response_model=ItemEnvelope, status_code=status.HTTP_201_CREATED)
    def add_item(body: ItemCreate, request: Request, account: CurrentAccount, vault: Vault):
        payload = _seal(request, account.id, body.data)
        item = vault.add(account.id, body.category, body.title, payload)
        return ItemEnvelope(item=_item_out(request, item))

    @app.get("/api/vault/{item_id}", response_model=ItemEnvelope)
    def get_item(item_id: str, request: Request, account: CurrentAccount, vault: Vault):
        return ItemEnvelope(item=_item_out(request, vault.get(account.id, item_id)))

    @app.put("/api/vault/{item_id}", response_model=ItemEnvelope)
    def update_item(
        item_id: str,
        body: ItemUpdate,
        request: Request,
        account: CurrentAccount,
        vault: Vault,
    ):
        payload = None
        if body.data is not None:
            payload = _seal(request, account.id, body.data)
        item = vault.update(
            account.id,
            item_id,
            category=body.category,
            title=body.title,
            payload=payload,
        )
        return ItemEnvelope(item=_item_out(request, item))

    @app.delete("/api/vault/{item_id}", response_model=Message)
    def delete_item(item_id: str, account: CurrentAccount, vault: Vault):
        vault.delete(account.id, item_id)
        return Message(message="Item deleted successfully")

    @app.get("/api/health")
    def health():
        return {
            "status": "ok",
            "service": "Valtify",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }


# ── App factory ────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Valtify API starting up...")
    yield
    app.state.engine.dispose()
    logger.info("Valtify API shutting down...")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the API with every collaborator wired from ``settings``."""
    settings = settings or Settings.from_env()

    engine = build_engine(settings.database_url, settings.database_timeout)
    base.metadata.create_all(bind=engine)

    app = FastAPI(
        title="Valtify API",
        description="Personal vault for small sensitive records, encrypted per account.",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.hasher = CredentialHasher(
        time_cost=settings.argon2_time_cost,
        memory_cost=settings.argon2_memory_cost,
        parallelism=settings.argon2_parallelism,
    )
    app.state.issuer = SessionIssuer(settings.secret_key, ttl_minutes=settings.token_ttl_minutes)
    app.state.gate = auth.AuthorizationGate(app.state.issuer)
    app.state.codec = PayloadCodec(resolve_master_key(settings.vault_key, settings.key_file))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(VaultError, vault_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    register_routes(app)
    return app


def run_server(host: str | None = None, port: int | None = None) -> None:
    import uvicorn

    settings = Settings.from_env()
    setup_logging(settings.log_level)
    uvicorn.run(
        "valtify.main:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=False,
    )


if __name__ == "__main__":
    run_server()
