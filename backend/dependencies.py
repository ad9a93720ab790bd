"""Request-scoped access to process-wide handles.

Client handles (database, LLM, Stripe, storage, broadcaster) are created once
in the server lifespan and stored on ``app.state``. Routes receive them via
``Depends`` so tests can swap any of them with ``app.dependency_overrides``.
"""
from fastapi import Depends
from fastapi.requests import HTTPConnection

from database import database
from services.portfolio_service import PortfolioService
from services.realtime import ContentBroadcaster, content_broadcaster
from services.storage_adapter import GridFSStorageAdapter, StorageAdapter
from services.stripe_service import StripeGateway
from services.user_service import UserService
from utils.llm_chat import LlmClient


def get_db():
    return database.get_db()


def get_llm(conn: HTTPConnection) -> LlmClient:
    llm = getattr(conn.app.state, "llm", None)
    if llm is None:
        llm = conn.app.state.llm = LlmClient.from_env()
    return llm


def get_stripe(conn: HTTPConnection) -> StripeGateway:
    gateway = getattr(conn.app.state, "stripe", None)
    if gateway is None:
        gateway = conn.app.state.stripe = StripeGateway.from_env()
    return gateway


def get_storage(conn: HTTPConnection, db=Depends(get_db)) -> StorageAdapter:
    storage = getattr(conn.app.state, "storage", None)
    if storage is None:
        storage = conn.app.state.storage = GridFSStorageAdapter.from_env(db)
    return storage


def get_broadcaster(conn: HTTPConnection) -> ContentBroadcaster:
    return getattr(conn.app.state, "broadcaster", None) or content_broadcaster


def get_portfolio_service(
    db=Depends(get_db),
    broadcaster: ContentBroadcaster = Depends(get_broadcaster),
) -> PortfolioService:
    return PortfolioService(db, broadcaster)


def get_user_service(db=Depends(get_db)) -> UserService:
    return UserService(db)
