"""HTTP API for alumni registration, login, the job board and the alumni tracer."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Callable, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ConfigDict, Field

from .accounts import AccountService, Registration
from .config import Settings, load_settings
from .directory import MAX_PAGE_SIZE, DirectoryService
from .errors import PortalError, portal_error_handler, request_validation_handler
from .models import Account, AlumniRecord, JobPosting
from .passwords import PasswordHasher
from .sessions import SESSION_COOKIE_NAME, SessionManager
from .storage import RecordStore, open_store

logger = logging.getLogger("alumni.service")


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RegisterRequest(_CamelModel):
    name: Optional[str] = Field(default=None, max_length=200)
    email: Optional[str] = Field(default=None, max_length=320)
    password: Optional[str] = Field(default=None, max_length=1024)
    graduation_year: Optional[int] = Field(default=None, alias="graduationYear", ge=1900, le=2100)
    major: Optional[str] = Field(default=None, max_length=200)


class RegisterResponse(BaseModel):
    message: str
    id: int


class LoginRequest(BaseModel):
    email: Optional[str] = Field(default=None, max_length=320)
    password: Optional[str] = Field(default=None, max_length=1024)


class LoginResponse(_CamelModel):
    message: str
    expires_at: datetime = Field(..., alias="expiresAt")


class MessageResponse(BaseModel):
    message: str


class AccountView(_CamelModel):
    id: int
    name: str
    email: str
    graduation_year: Optional[int] = Field(default=None, alias="graduationYear")
    major: Optional[str] = None


class JobPostingView(_CamelModel):
    id: int
    title: str
    company: str
    location: str
    posted_date: date = Field(..., alias="postedDate")


class AlumniRecordView(_CamelModel):
    id: int
    name: str
    graduation_year: Optional[int] = Field(default=None, alias="graduationYear")
    major: Optional[str] = None


def _account_to_view(account: Account) -> AccountView:
    return AccountView(**account.public_view())


def _job_to_view(job: JobPosting) -> JobPostingView:
    return JobPostingView(
        id=job.id,
        title=job.title,
        company=job.company,
        location=job.location,
        posted_date=job.posted_date,
    )


def _alumni_to_view(record: AlumniRecord) -> AlumniRecordView:
    return AlumniRecordView(
        id=record.id,
        name=record.name,
        graduation_year=record.graduation_year,
        major=record.major,
    )


def _build_session_dependency(accounts: AccountService):
    def dependency(request: Request) -> Account:
        account = accounts.current_account(request.cookies.get(SESSION_COOKIE_NAME))
        if account is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not signed in")
        return account

    return dependency


def register_api_routes(
    app: FastAPI,
    accounts: AccountService,
    directory: DirectoryService,
    *,
    current_account: Callable[..., Account],
    settings: Settings,
) -> None:
    """Expose the JSON API endpoints on the provided FastAPI application."""

    def _issue_session_cookie(response: Response, token: str) -> None:
        response.set_cookie(
            SESSION_COOKIE_NAME,
            token,
            max_age=accounts.sessions.cookie_max_age,
            secure=settings.secure_cookies,
            httponly=True,
            samesite=settings.same_site,
            path="/",
        )

    @app.get("/healthz")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/auth/register", status_code=status.HTTP_201_CREATED, response_model=RegisterResponse)
    def register(payload: RegisterRequest) -> RegisterResponse:
        account = accounts.register(
            Registration(
                name=payload.name,
                email=payload.email,
                password=payload.password,
                graduation_year=payload.graduation_year,
                major=payload.major,
            )
        )
        return RegisterResponse(message="Registration successful", id=account.id)

    @app.post("/auth/login", response_model=LoginResponse)
    def login(payload: LoginRequest, request: Request, response: Response) -> LoginResponse:
        existing_token = request.cookies.get(SESSION_COOKIE_NAME)
        session = accounts.login(payload.email, payload.password)
        if existing_token:
            accounts.logout(existing_token)
        _issue_session_cookie(response, session.token)
        return LoginResponse(message="Login successful", expires_at=session.expires_at)

    @app.get("/auth/session", response_model=AccountView)
    def current_session(account: Account = Depends(current_account)) -> AccountView:
        return _account_to_view(account)

    @app.post("/auth/logout", response_model=MessageResponse)
    def logout(request: Request, response: Response) -> MessageResponse:
        accounts.logout(request.cookies.get(SESSION_COOKIE_NAME))
        response.delete_cookie(SESSION_COOKIE_NAME, path="/")
        return MessageResponse(message="Signed out")

    @app.get("/job-board", response_model=List[JobPostingView])
    def job_board(
        limit: Optional[int] = Query(default=None, ge=1, le=MAX_PAGE_SIZE),
        offset: int = Query(default=0, ge=0),
    ) -> List[JobPostingView]:
        return [_job_to_view(job) for job in directory.list_jobs(limit=limit, offset=offset)]

    @app.get("/alumni-tracer", response_model=List[AlumniRecordView])
    def alumni_tracer(query: str = Query(default="", max_length=200)) -> List[AlumniRecordView]:
        return [_alumni_to_view(record) for record in directory.search_alumni(query)]


def create_app(
    *,
    settings: Settings | None = None,
    store: RecordStore | None = None,
    hasher: PasswordHasher | None = None,
    session_manager: SessionManager | None = None,
) -> FastAPI:
    """Instantiate the FastAPI application for the alumni portal.

    A store passed in by the caller stays open after shutdown; a store the
    factory opens itself is closed when the application's lifespan ends.
    """

    app_settings = settings or load_settings()

    owns_store = store is None
    record_store = store if store is not None else open_store(app_settings)
    if not record_store.is_open:
        record_store.open()

    if not app_settings.secure_cookies:
        logger.warning(
            "Session cookies are not marked as secure. Only disable secure cookies for"
            " local development."
        )

    accounts = AccountService(
        record_store,
        hasher or PasswordHasher(rounds=app_settings.hash_rounds),
        session_manager or SessionManager(ttl=app_settings.session_ttl),
    )
    directory = DirectoryService(record_store)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        try:
            yield
        finally:
            if owns_store:
                record_store.close()

    app = FastAPI(
        title="Alumni Portal API",
        version="0.1.0",
        description="Registration, login, job board and alumni directory search.",
        lifespan=lifespan,
    )
    app.add_exception_handler(PortalError, portal_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.state.settings = app_settings
    app.state.store = record_store
    app.state.accounts = accounts
    app.state.directory = directory

    register_api_routes(
        app,
        accounts,
        directory,
        current_account=_build_session_dependency(accounts),
        settings=app_settings,
    )

    return app


__all__ = ["create_app", "register_api_routes"]
