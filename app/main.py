import signal
import threading

from dotenv import load_dotenv

from infrastructure.logging import configure_logging, get_module_logger
from infrastructure.services import get_notification_service, get_settings

load_dotenv()

logger = get_module_logger()


def main(stop_event=None):
    """Start the notification engine and block until SIGINT/SIGTERM."""
    configure_logging()
    settings = get_settings()
    logger.info("application_startup", git_sha=settings.GIT_SHA)
    list_configs(settings)

    service = get_notification_service()

    if stop_event is None:
        stop_event = threading.Event()

        def _shutdown(signum, frame):
            logger.info("application_shutdown_requested", signal=signum)
            stop_event.set()

        signal.signal(signal.SIGINT, _shutdown)
        signal.signal(signal.SIGTERM, _shutdown)

    try:
        service.start()
        stop_event.wait()
    finally:
        service.stop()
        logger.info("application_stopped")
    return service


def list_configs(settings):
    """List all configuration settings keys"""
    config_settings = {"settings": []}

    for key, value in settings.model_dump().items():
        if isinstance(value, dict):
            config_settings[key] = list(value.keys())
        else:
            config_settings["settings"].append({key: value})

    logger.info("configuration_initialized", base_settings=config_settings["settings"])
    for key, value in config_settings.items():
        if key != "settings":
            logger.info("configuration_loaded", config_setting=key, keys=value)


if __name__ == "__main__":
    main()
