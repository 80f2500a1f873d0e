"""
Process-wide application context, built once at startup
"""
from dataclasses import dataclass
from datetime import timedelta

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from auth.tokens import TokenService
from config.settings import Settings
from forms.notifications import NotificationDispatcher, SmtpMailer
from models.session import build_engine, build_session_factory


@dataclass(frozen=True)
class AppContext:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker
    tokens: TokenService
    dispatcher: NotificationDispatcher


def build_context(settings: Settings) -> AppContext:
    engine = build_engine(
        settings.database_url,
        pool_size=settings.database_pool_size,
        echo=settings.log_sqlalchemy,
    )
    mailer = SmtpMailer(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
    )
    return AppContext(
        settings=settings,
        engine=engine,
        session_factory=build_session_factory(engine),
        tokens=TokenService(settings.jwt_secret, ttl=timedelta(hours=settings.token_ttl_hours)),
        dispatcher=NotificationDispatcher(mailer),
    )


def get_context(request: Request) -> AppContext:
    return request.app.state.context


async def get_db(request: Request):
    """
    Dependency for getting a database session
    """
    async with get_context(request).session_factory() as db:
        yield db
