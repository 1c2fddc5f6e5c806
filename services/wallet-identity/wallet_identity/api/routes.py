"""HTTP route definitions for the wallet identity service."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request, status
from fastapi.responses import JSONResponse
from prometheus_client import Counter
from pydantic import BaseModel, EmailStr
from wallet_schemas import CustomerBalance, CustomerProfile, CustomerRole

from ..domain.auth import Authenticator
from ..domain.contracts import CreateCustomerInput, CustomerFilter
from ..domain.customer import Customer
from ..domain.errors import AuthFailed, Forbidden, TokenInvalid, WalletError
from ..domain.service import CustomerService
from ..security.tokens import TokenIssuer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1")

AUTH_ATTEMPTS = Counter(
    "wallet_identity_auth_attempts_total",
    "Authentication attempts grouped by outcome.",
    ["outcome"],
)


def to_profile(customer: Customer) -> CustomerProfile:
    """Build the public profile view from the domain aggregate."""
    return CustomerProfile(
        id=customer.customer_id,
        account_number=customer.account_number,
        name=customer.name,
        email=customer.email,
        role=CustomerRole(customer.role.value),
        created_at=customer.created_at,
    )


def to_balance(customer: Customer) -> CustomerBalance:
    return CustomerBalance(
        **to_profile(customer).model_dump(),
        balance=customer.balance,
    )


class CreateCustomerRequest(BaseModel):
    """Payload accepted when registering a customer."""

    email: EmailStr
    # Length rules live in the domain so they surface as 400 validation errors.
    password: str
    name: str | None = None


class TokenRequest(BaseModel):
    """Credentials exchanged for a bearer token."""

    email: str | None = None
    password: str | None = None


class TokenResponse(BaseModel):
    """Authenticated customer plus the bearer token and its lifetime."""

    customer: CustomerProfile
    access_token: str
    token_type: str = "bearer"
    expires_in: int


def get_service(request: Request) -> CustomerService:
    """Resolve the `CustomerService` stored on the FastAPI application state."""
    service: CustomerService = request.app.state.customer_service
    return service


def get_authenticator(request: Request) -> Authenticator:
    authenticator: Authenticator = request.app.state.authenticator
    return authenticator


def get_token_issuer(request: Request) -> TokenIssuer:
    issuer: TokenIssuer = request.app.state.token_issuer
    return issuer


def current_customer_id(
    authorization: str | None = Header(default=None),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> str:
    """Validate the bearer token and return its subject."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise TokenInvalid()
    return issuer.validate(token.strip())


@router.post("/customers", response_model=CustomerProfile, status_code=status.HTTP_201_CREATED)
def create_customer(
    payload: CreateCustomerRequest,
    service: CustomerService = Depends(get_service),
) -> CustomerProfile:
    """Register a customer; the response never includes credential material."""
    customer = service.create_customer(
        CreateCustomerInput(email=payload.email, password=payload.password, name=payload.name)
    )
    return to_profile(customer)


@router.post("/auth/token", response_model=TokenResponse)
def issue_token(
    payload: TokenRequest,
    authenticator: Authenticator = Depends(get_authenticator),
) -> TokenResponse:
    """Exchange email and password for a bearer token."""
    try:
        result = authenticator.authenticate(payload.email, payload.password)
    except AuthFailed:
        AUTH_ATTEMPTS.labels(outcome="failure").inc()
        raise
    AUTH_ATTEMPTS.labels(outcome="success").inc()
    return TokenResponse(
        customer=to_profile(result.customer),
        access_token=result.token.token,
        expires_in=result.token.expires_in,
    )


@router.get("/customers", response_model=list[CustomerProfile])
def list_customers(
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=30, ge=1, le=100),
    name: str | None = Query(default=None),
    email: str | None = Query(default=None),
    role: CustomerRole | None = Query(default=None),
    service: CustomerService = Depends(get_service),
) -> list[CustomerProfile]:
    """Return one page of customers filtered by the supplied fields."""
    customers = service.list_customers(
        CustomerFilter(
            name=name,
            email=email,
            role=role.value if role is not None else None,
            page=page,
            per_page=per_page,
        )
    )
    return [to_profile(customer) for customer in customers]


@router.get("/customers/{customer_id}", response_model=CustomerProfile)
def get_customer(
    customer_id: str,
    service: CustomerService = Depends(get_service),
) -> CustomerProfile:
    return to_profile(service.get_customer(customer_id))


@router.get("/customers/{customer_id}/balance", response_model=CustomerBalance)
def get_customer_balance(
    customer_id: str,
    caller_id: str = Depends(current_customer_id),
    service: CustomerService = Depends(get_service),
) -> CustomerBalance:
    """Return the balance view to the customer themselves or to an admin."""
    if caller_id != customer_id:
        caller = service.get_customer(caller_id)
        if not caller.is_admin:
            raise Forbidden()
    return to_balance(service.get_customer(customer_id))


async def _wallet_error_handler(request: Request, exc: WalletError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    if exc.status_code >= 500:
        logger.error("request failed path=%s error=%s", request.url.path, exc.__class__.__name__)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=headers,
    )


def install_error_handlers(app: FastAPI) -> None:
    """Render every domain error as ``{"detail": message}`` with its status code."""
    app.add_exception_handler(WalletError, _wallet_error_handler)
