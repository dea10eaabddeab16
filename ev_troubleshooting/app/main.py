import hmac
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.responses import PlainTextResponse
from fastapi.staticfiles import StaticFiles

from ..config import Settings, settings
from ..domain.models import Manufacturer
from ..rendering.images import IMAGES_ROUTE
from ..repositories.fault_packs import FaultPackRepository, YamlFaultPackRepository
from ..services.exceptions import UnknownManufacturerError
from ..transport.bot import TelegramBot
from .dependencies import get_fault_pack_repository, get_settings, get_telegram_bot
from .schemas import DebugPackResponse, HealthResponse, WebhookAck

logger = logging.getLogger(__name__)

DEBUG_TITLE_LIMIT = 30


def _pack_counts(repository: FaultPackRepository) -> dict[str, int]:
    return {m.value: len(repository.get_pack(m).faults) for m in Manufacturer}


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    counts = _pack_counts(get_fault_pack_repository())
    logger.info(f"Fault packs loaded from {settings.FAULTS_DIR}: {counts}")

    bot = get_telegram_bot()
    await bot.start()
    try:
        yield
    finally:
        await bot.stop()


app = FastAPI(title="EV Charger Troubleshooting Bot", lifespan=lifespan)

if settings.IMAGES_DIR is not None and settings.IMAGES_DIR.is_dir():
    app.mount(IMAGES_ROUTE, StaticFiles(directory=settings.IMAGES_DIR), name="images")

# --- Endpoints ---

@app.get("/", response_class=PlainTextResponse)
def root():
    return "EVBot OK"


@app.get("/health", response_model=HealthResponse)
def health(
    config: Settings = Depends(get_settings),
    repository: FaultPackRepository = Depends(get_fault_pack_repository),
    bot: TelegramBot = Depends(get_telegram_bot),
):
    return HealthResponse(
        status="ok",
        mode="webhook" if config.use_webhook else "polling",
        bot_running=bot.is_running,
        public_url=config.PUBLIC_URL or None,
        webhook_url=config.webhook_url or None,
        secret_enabled=bool(config.TELEGRAM_WEBHOOK_SECRET),
        packs=_pack_counts(repository),
    )


@app.get("/debug/{pack}", response_model=DebugPackResponse)
def debug_pack(
    pack: str,
    repository: FaultPackRepository = Depends(get_fault_pack_repository),
):
    """
    Shows what the bot actually loaded for one pack, so YAML edits can be
    checked without walking every tree in Telegram.
    """
    try:
        manufacturer = Manufacturer.parse(pack)
    except UnknownManufacturerError as e:
        raise HTTPException(status_code=404, detail=str(e))

    source, exists = None, False
    if isinstance(repository, YamlFaultPackRepository):
        path = repository.source_path(manufacturer)
        source, exists = str(path), path.exists()

    faults = repository.get_pack(manufacturer).faults
    return DebugPackResponse(
        pack=manufacturer.value,
        source=source,
        exists=exists,
        fault_count=len(faults),
        titles=[fault.title for fault in faults[:DEBUG_TITLE_LIMIT]],
    )


@app.post(settings.WEBHOOK_PATH, response_model=WebhookAck)
async def telegram_webhook(
    request: Request,
    bot: TelegramBot = Depends(get_telegram_bot),
    x_telegram_bot_api_secret_token: str = Header(default=""),
):
    if bot.webhook_secret and not hmac.compare_digest(
        x_telegram_bot_api_secret_token, bot.webhook_secret
    ):
        logger.warning("Rejected webhook call with a bad secret token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Bad secret token")

    payload = await request.json()
    handled = await bot.process_webhook_update(payload)
    return WebhookAck(ok=handled)
