"""
Service container and wiring for the chat application
"""
import logging
from typing import Dict, Any, Optional

from config_loader import get_database_config, get_gemini_config, get_image_detection_config
from gemini_client import GeminiClient
from image_detection_client import ImageDetectionClient
from internal.database import create_backend
from message_storage import MessageStorage
from profile_storage import ProfileStorage
from repositories import MessageRepository, ProfileRepository, SettingsRepository
from services.message_service import MessageService
from services.profile_service import ProfileService
from services.settings_service import SettingsService

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Holds references to the process-wide services.

    Services are registered by name and mirrored as attributes, so route
    handlers can write ``services.message_service``. New services can be
    added without changing the constructor signature.
    """
    def __init__(self, services: Optional[Dict[str, Any]] = None, **kwargs):
        # Internal service registry
        self._services: Dict[str, Any] = {}

        if services:
            if not isinstance(services, dict):
                raise TypeError("services must be a dict[str, Any]")
            self._services.update(services)

        # allow passing services as keyword args (e.g., message_service=...)
        self._services.update(kwargs)

        for name, svc in self._services.items():
            setattr(self, name, svc)

    # --- Dynamic service registry API -------------------------------------------------
    def register_service(self, name: str, service: Any) -> None:
        """Register a service under a string name and mirror it as an attribute."""
        if not name or not isinstance(name, str):
            raise ValueError("service name must be a non-empty string")
        self._services[name] = service
        setattr(self, name, service)

    def get_service(self, name: str, default: Any = None) -> Any:
        """Retrieve a registered service by name."""
        return self._services.get(name, default)

    def unregister_service(self, name: str) -> None:
        """Remove a service from the registry and delete attribute mirror."""
        if name in self._services:
            del self._services[name]
        if name in self.__dict__:
            delattr(self, name)

    def list_services(self) -> Dict[str, Any]:
        """Return a shallow copy of registered services."""
        return dict(self._services)


def build_services(config: Dict[str, Any], backend: Optional[Dict[str, Any]] = None) -> ServiceContainer:
    """Create the database backend and every service on top of it.

    Args:
        config: Loaded configuration dictionary.
        backend: Already created backend (tests pass an in-memory one).

    Returns:
        ServiceContainer with backend, engine and the domain services.
    """
    if not config:
        raise ValueError("Configuration not loaded")

    backend = backend or create_backend(get_database_config(config))
    engine = backend["engine"]
    get_connection = backend.get("get_connection")

    message_storage = MessageStorage(engine, get_connection)
    profile_storage = ProfileStorage(engine, get_connection)

    container = ServiceContainer(
        backend=backend,
        engine=engine,
        message_service=MessageService(MessageRepository(message_storage)),
        profile_service=ProfileService(ProfileRepository(profile_storage)),
        settings_service=SettingsService(SettingsRepository(profile_storage)),
        image_detection_client=ImageDetectionClient(get_image_detection_config(config)),
    )

    gemini_config = get_gemini_config(config)
    if gemini_config.get("api_key"):
        container.register_service("gemini_client", GeminiClient(gemini_config))
    else:
        logger.warning("GEMINI_API_KEY not set; assistant replies are disabled")
        container.register_service("gemini_client", None)

    logger.info("Services initialized")
    return container
