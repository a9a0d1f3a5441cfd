import asyncio
import contextlib
from contextlib import asynccontextmanager

from fastapi import FastAPI

from assist_bridge.api.routes import assist, health, slack
from assist_bridge.core.config import Settings, get_settings
from assist_bridge.core.logging import configure_logging, init_tracer, shutdown_tracer
from assist_bridge.notifications import Notifier, SlackNotifier
from assist_bridge.tickets import TicketCoordinator, TicketStore


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    settings.ensure_configured()
    tracer_provider = init_tracer(settings)
    app.state.tracer_provider = tracer_provider

    coordinator: TicketCoordinator = app.state.coordinator
    sweeper = asyncio.create_task(
        coordinator.run_sweeper(
            interval=settings.sweep_interval_seconds,
            max_age=settings.ticket_ttl_seconds,
        ),
        name="ticket-sweeper",
    )
    app.state.logger.info("%s started (%s)", settings.app_name, settings.environment)
    try:
        yield
    finally:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
        await coordinator.aclose()
        await coordinator.notifier.aclose()
        shutdown_tracer(tracer_provider)


def build_notifier(settings: Settings) -> SlackNotifier:
    return SlackNotifier(
        token=settings.slack_bot_token,
        channel=settings.slack_channel_id,
        api_url=settings.slack_api_url,
        answer_command=settings.slack_answer_command,
        timeout=settings.notify_timeout_seconds,
    )


def create_app(settings: Settings | None = None, *, notifier: Notifier | None = None) -> FastAPI:
    settings = settings or get_settings()
    logger = configure_logging(settings)

    store = TicketStore()
    coordinator = TicketCoordinator(
        store,
        notifier or build_notifier(settings),
        default_timeout=settings.wait_default_timeout_seconds,
        min_timeout=settings.wait_min_timeout_seconds,
        max_timeout=settings.wait_max_timeout_seconds,
    )

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    app.state.logger = logger
    app.state.store = store
    app.state.coordinator = coordinator
    app.include_router(health.router)
    app.include_router(assist.router)
    app.include_router(slack.router)
    return app


app = create_app()
