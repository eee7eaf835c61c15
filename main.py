# main.py
import sys
import logging
from pathlib import Path
from dotenv import load_dotenv


def setup_logging(config):
    """Настраивает логирование ДО всех операций с ротацией"""
    from core.config_manager import get_app_data_dir
    from logging.handlers import RotatingFileHandler

    logs_dir = Path(config.get('logging.dir') or get_app_data_dir() / "logs")
    logs_dir.mkdir(parents=True, exist_ok=True)

    log_file = logs_dir / "creaturerealm_server.log"

    # Ротирующий обработчик: макс 5MB, 5 резервных копий
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=5 * 1024 * 1024,  # 5MB
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setFormatter(
        logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(
        logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    )

    logging.basicConfig(
        level=config.get('logging.level', 'INFO'),
        handlers=[console_handler, file_handler]
    )


logger = logging.getLogger(__name__)


def setup_exception_handler():
    """Настраивает глобальный обработчик исключений"""

    def exception_handler(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return

        logger.critical("Unhandled exception:",
                        exc_info=(exc_type, exc_value, exc_traceback))

    sys.excepthook = exception_handler


def main():
    """Точка входа сервера"""
    # .env до чтения конфигурации
    load_dotenv()

    from core.config_manager import get_config
    config = get_config()

    setup_logging(config)
    setup_exception_handler()

    from core.server import run_server
    from utils.port_utils import check_port_availability

    host = config.get('server.host')
    port = config.get('server.port')

    port_available, port_message = check_port_availability(port, host)
    if not port_available:
        logger.error(f"❌ {port_message}")
        return 1

    if not config.get_secret(config.get('nookipedia.api_key_env')):
        logger.warning("⚠️ NOOKIPEDIA_API_KEY is not set, proxy requests will fail until it is")

    try:
        run_server(config)
    except Exception as e:
        logger.critical(f"Failed to start server: {e}", exc_info=True)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
