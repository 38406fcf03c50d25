from __future__ import annotations

import logging

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import sessionmaker

from roomchat.api.routers import auth, messages, rooms
from roomchat.core.config import Settings, settings as default_settings
from roomchat.core.errors import install_error_handlers
from roomchat.core.logging_config import setup_logging
from roomchat.db.session import Base, SessionLocal, build_engine, db_session, engine, make_session_factory
from roomchat.realtime.socketio import RealtimeGateway, SocketIOTransport, create_server
from roomchat.services.fanout import FanoutChannel, Transport
from roomchat.services.identity import TokenIssuer
from roomchat.services.membership import MembershipRegistry
from roomchat.services.store import ChatStore

logger = logging.getLogger(__name__)


def seed_default_room(name: str, factory: sessionmaker | None = None) -> None:
    with db_session(factory) as session:
        store = ChatStore(session)
        if store.find_room_by_name(name) is None:
            store.create_room(name)
            logger.info("Seeded default room: %s", name)


def create_app(config: Settings | None = None, transport: Transport | None = None) -> FastAPI:
    """Build the HTTP app and its realtime collaborators.

    Each app owns one registry, one Socket.IO server and one fan-out channel,
    reachable through ``app.state``. Pass ``transport`` to capture pushes
    instead of emitting them over Socket.IO.
    """
    config = config or default_settings
    setup_logging(config.log_level, config.log_file)

    app = FastAPI(title=config.app_name)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)

    sio = create_server(config)
    registry = MembershipRegistry()
    socket_transport = SocketIOTransport(sio)
    app.state.settings = config
    app.state.sio = sio
    app.state.registry = registry
    app.state.gateway = RealtimeGateway(sio, registry, socket_transport)
    app.state.fanout = FanoutChannel(registry, transport or socket_transport)
    app.state.token_issuer = TokenIssuer(config)

    if config.database_url == default_settings.database_url:
        app_engine, session_factory = engine, SessionLocal
    else:
        app_engine = build_engine(config.database_url)
        session_factory = make_session_factory(app_engine)
        logger.info("App bound to its own database: %s", app_engine.url.render_as_string(hide_password=True))
    app.state.engine = app_engine
    app.state.session_factory = session_factory

    @app.on_event("startup")
    def on_startup() -> None:
        Base.metadata.create_all(bind=app_engine)
        if config.default_room:
            seed_default_room(config.default_room, session_factory)

    @app.on_event("shutdown")
    def on_shutdown() -> None:
        if app_engine is not engine:
            app_engine.dispose()

    @app.get("/", response_class=PlainTextResponse)
    def index() -> str:
        return "API is running. Try GET /health, /rooms, or /messages?roomId=..."

    @app.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(auth.router)
    app.include_router(rooms.router)
    app.include_router(messages.router)
    return app


def create_asgi_app(app: FastAPI) -> socketio.ASGIApp:
    # Socket.IO answers on its own path and hands everything else to FastAPI
    return socketio.ASGIApp(
        app.state.sio,
        other_asgi_app=app,
        socketio_path=app.state.settings.socketio_path,
    )


app = create_app()
asgi_app = create_asgi_app(app)
