import ipaddress
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import APIRouter, Body, Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from auth.middleware import current_subject, require_identity
from auth.password import dummy_verify, hash_password, verify_password
from auth.users import UserStore
from config.context import AppContext, build_context, get_context, get_db
from config.logging_config import LoggingConfig
from config.settings import get_settings
from forms.ingestion import SubmissionPipeline
from forms.store import FormStore, IPAddress
from models.errors import EmailExistsError, NotFoundError
from models.schemas import (CreateFormPayload, FormOut, LoginPayload, LoginResponse,
                            SignupPayload, SubmissionOut)
from models.session import create_schema

logger = LoggingConfig.get_logger(__name__)

public = APIRouter(prefix="/api")
# every route on this router runs require_identity first
protected = APIRouter(prefix="/api", dependencies=[Depends(require_identity)])


def parse_id(value: str, detail: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=detail)


def get_client_address(request: Request) -> IPAddress:
    host = request.client.host if request.client else None
    try:
        return ipaddress.ip_address(host)
    except ValueError:
        logger.warning("Rejected submission from unparseable peer address %r", host)
        raise HTTPException(status_code=400, detail="Invalid client address")


@public.post("/auth/signup", status_code=201, response_class=PlainTextResponse,
             tags=["Authentication"])
async def signup(payload: SignupPayload, db: AsyncSession = Depends(get_db)):
    password_hash = await run_in_threadpool(hash_password, payload.password)
    try:
        await UserStore(db).create_user(payload.email, password_hash)
    except EmailExistsError:
        raise HTTPException(status_code=409, detail="Email already exists")
    return PlainTextResponse("User created successfully", status_code=201)


@public.post("/auth/login", response_model=LoginResponse, tags=["Authentication"])
async def login(payload: LoginPayload, db: AsyncSession = Depends(get_db),
                context: AppContext = Depends(get_context)):
    user = await UserStore(db).get_by_email(payload.email)
    if user is None:
        # unknown and registered emails cost the same argon2 work
        await run_in_threadpool(dummy_verify)
        logger.info("Login failed: unknown email %s", payload.email)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if not await run_in_threadpool(verify_password, payload.password, user.password_hash):
        logger.info("Login failed: wrong password for %s", payload.email)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return LoginResponse(token=context.tokens.issue(str(user.id)))


@protected.post("/forms", status_code=201, response_model=FormOut, tags=["Forms"])
async def create_form(payload: CreateFormPayload, db: AsyncSession = Depends(get_db),
                      subject: uuid.UUID = Depends(current_subject)):
    return await FormStore(db).create_form(subject, payload.name)


@protected.get("/forms", response_model=List[FormOut], tags=["Forms"])
async def list_forms(db: AsyncSession = Depends(get_db),
                     subject: uuid.UUID = Depends(current_subject)):
    return await FormStore(db).list_forms(subject)


@protected.get("/forms/{form_id}", response_model=FormOut, tags=["Forms"])
async def get_form(form_id: str, db: AsyncSession = Depends(get_db),
                   subject: uuid.UUID = Depends(current_subject)):
    form_uuid = parse_id(form_id, "Invalid form ID format")
    try:
        return await FormStore(db).get_form(subject, form_uuid)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Form not found")


@protected.delete("/forms/{form_id}", response_class=PlainTextResponse, tags=["Forms"])
async def delete_form(form_id: str, db: AsyncSession = Depends(get_db),
                      subject: uuid.UUID = Depends(current_subject)):
    form_uuid = parse_id(form_id, "Invalid form ID format")
    try:
        await FormStore(db).delete_form(subject, form_uuid)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Form not found")
    return PlainTextResponse("Form deleted successfully")


@protected.get("/forms/{form_id}/submissions", response_model=List[SubmissionOut],
               tags=["Form Submissions"])
async def list_submissions(form_id: str, db: AsyncSession = Depends(get_db),
                           subject: uuid.UUID = Depends(current_subject)):
    form_uuid = parse_id(form_id, "Invalid form ID format")
    try:
        return await FormStore(db).list_submissions(subject, form_uuid)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Form not found")


@protected.delete("/submissions/{submission_id}", response_class=PlainTextResponse,
                  tags=["Form Submissions"])
async def delete_submission(submission_id: str, db: AsyncSession = Depends(get_db),
                            subject: uuid.UUID = Depends(current_subject)):
    submission_uuid = parse_id(submission_id, "Invalid submission ID format")
    try:
        await FormStore(db).delete_submission(subject, submission_uuid)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Submission not found")
    return PlainTextResponse("Submission deleted successfully")


# public: the secret is the only locator accepted here, never the form id
@public.post("/submit/{secret}", response_class=PlainTextResponse, tags=["Form Submissions"])
async def submit(secret: str, payload: Dict[str, Any] = Body(...),
                 db: AsyncSession = Depends(get_db),
                 context: AppContext = Depends(get_context),
                 client_address: IPAddress = Depends(get_client_address)):
    pipeline = SubmissionPipeline(FormStore(db), context.dispatcher, context.settings.mail_from)
    try:
        await pipeline.ingest(secret, payload, client_address)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Form not found")
    return PlainTextResponse("Form submission received")


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc,
                 exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc,
                 exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@asynccontextmanager
async def lifespan(app: FastAPI):
    context: AppContext = app.state.context
    await create_schema(context.engine)
    logger.info("Database schema ready")
    yield
    await context.dispatcher.drain()
    await context.engine.dispose()


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    """Build the application; without a context, settings are read from the environment"""
    if context is None:
        context = build_context(get_settings())
    LoggingConfig.configure(context.settings)

    app = FastAPI(
        title="Forms API",
        description="Self-hostable form backend",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=context.settings.allowed_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(public)
    app.include_router(protected)
    return app


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run("main:create_app", factory=True, host=settings.api_host, port=settings.api_port)
