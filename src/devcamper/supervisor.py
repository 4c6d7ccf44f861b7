import asyncio
import socket

import structlog
import uvicorn

from devcamper.config import Settings, load_settings
from devcamper.database import connect_database
from devcamper.faults import FaultSink
from devcamper.main import configure_logging, create_app

log = structlog.get_logger()


class DevcamperServer(uvicorn.Server):
    """uvicorn server that announces itself once its socket is bound."""

    def __init__(self, config: uvicorn.Config, settings: Settings) -> None:
        super().__init__(config)
        self.settings = settings

    async def startup(self, sockets: list[socket.socket] | None = None) -> None:
        await super().startup(sockets=sockets)
        if self.started:
            log.info("server_running", mode=self.settings.node_env, port=self.settings.port)


async def serve(settings: Settings, *, fault_sink: FaultSink | None = None) -> None:
    """Connect the store, then bind the listener.

    A store that cannot be reached aborts startup before anything is bound.
    """
    database = await connect_database(settings)

    sink = fault_sink or FaultSink()
    sink.install(asyncio.get_running_loop())

    app = create_app(settings, database=database, fault_sink=sink)
    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_config=None,
        server_header=False,
    )
    await DevcamperServer(config, settings).serve()


def run() -> None:
    settings = load_settings()
    configure_logging(settings)
    asyncio.run(serve(settings))
