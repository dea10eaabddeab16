"""
Dependency Injection Wiring (Composition Root).

Every long-lived object the bot needs is built here, once per process:
1. The key-value stores behind session, message-bound and report state.
2. The fault pack repository and the services layered on it (menus, the
   Decision Tree Engine, the report wizard, the ChatService dispatcher).
3. The TelegramBot that feeds updates into the ChatService.

Each getter is wrapped in @lru_cache, so the in-memory stores are shared by
every update and HTTP request. FastAPI endpoints reach them via Depends, and
tests swap them through `app.dependency_overrides`.
"""


from functools import lru_cache

from ..config import Settings, settings
from ..execution.engine import DecisionTreeEngine
from ..infrastructure.kv_store import InMemoryKeyValueStore, LRUKeyValueStore
from ..rendering.images import ImageResolver
from ..repositories.fault_packs import FaultPackRepository, YamlFaultPackRepository
from ..repositories.session import MessageStateRepository, SessionRepository
from ..services.chat import ChatService
from ..services.dedupe import CallbackDeduplicator
from ..services.menus import MenuService
from ..services.report import ReportService
from ..transport.bot import TelegramBot


# Settings (Singleton)
@lru_cache()
def get_settings() -> Settings:
    return settings

# Fault Pack Repository (Singleton)
@lru_cache()
def get_fault_pack_repository() -> FaultPackRepository:
    return YamlFaultPackRepository(get_settings().FAULTS_DIR)

# Session Repository (Singleton)
# Note: In-memory storage must be a singleton so state persists across updates!
@lru_cache()
def get_session_repository() -> SessionRepository:
    config = get_settings()
    message_states = MessageStateRepository(
        LRUKeyValueStore(max_entries=config.MESSAGE_STATE_MAX_ENTRIES)
    )
    return SessionRepository(
        store=InMemoryKeyValueStore(idle_timeout=config.SESSION_IDLE_TIMEOUT_SECONDS),
        message_states=message_states,
    )

@lru_cache()
def get_image_resolver() -> ImageResolver:
    config = get_settings()
    return ImageResolver(config.IMAGES_DIR, public_url=config.PUBLIC_URL)

@lru_cache()
def get_menu_service() -> MenuService:
    return MenuService(
        repository=get_fault_pack_repository(),
        sessions=get_session_repository(),
        menu_size=get_settings().PACK_MENU_SIZE,
    )

# The Engine (Singleton Service)
@lru_cache()
def get_decision_tree_engine() -> DecisionTreeEngine:
    return DecisionTreeEngine(
        repository=get_fault_pack_repository(),
        sessions=get_session_repository(),
        menus=get_menu_service(),
        images=get_image_resolver(),
    )

@lru_cache()
def get_report_service() -> ReportService:
    return ReportService(
        store=InMemoryKeyValueStore(idle_timeout=get_settings().REPORT_IDLE_TIMEOUT_SECONDS),
        repository=get_fault_pack_repository(),
        sessions=get_session_repository(),
    )

# The Chat Service (Singleton Service)
@lru_cache()
def get_chat_service() -> ChatService:
    """
    Injects all necessary components into the ChatService.
    """
    return ChatService(
        engine=get_decision_tree_engine(),
        menus=get_menu_service(),
        reports=get_report_service(),
    )

# The Telegram Bot (Singleton)
@lru_cache()
def get_telegram_bot() -> TelegramBot:
    config = get_settings()
    return TelegramBot(
        token=config.TELEGRAM_BOT_TOKEN,
        service=get_chat_service(),
        dedupe=CallbackDeduplicator(window_ms=config.CALLBACK_DEDUPE_WINDOW_MS),
        webhook_url=config.webhook_url if config.use_webhook else "",
        webhook_secret=config.TELEGRAM_WEBHOOK_SECRET,
    )
