import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional
import os

logger = logging.getLogger(__name__)


def get_app_data_dir():
    """Возвращает путь для хранения данных сервера (логи, config.json)"""
    override = os.getenv('CREATUREREALM_DATA_DIR')
    if override:
        app_data_dir = Path(override)
    else:
        # Dev режим
        app_data_dir = Path(__file__).parent.parent / 'app_data'

    app_data_dir.mkdir(parents=True, exist_ok=True)
    return app_data_dir


class ConfigManager:
    def __init__(self, config_path: Optional[Path] = None, environ: Optional[Dict[str, str]] = None):
        """
        Args:
            config_path: Путь к JSON файлу конфигурации (None = по умолчанию)
            environ: Окружение для переопределений (None = os.environ)
        """
        self.environ = os.environ if environ is None else environ
        self.config_path = config_path or self._get_config_path()
        self.config = self._load_config()

    def _get_config_path(self) -> Path:
        """Возвращает путь к файлу конфигурации"""
        explicit = self.environ.get('CREATUREREALM_CONFIG')
        if explicit:
            return Path(explicit)
        return get_app_data_dir() / 'config.json'

    def _get_default_config(self) -> dict:
        """Возвращает конфигурацию по умолчанию"""
        return {
            'server': {
                'host': '0.0.0.0',
                'port': 8000,
            },

            'nookipedia': {
                'base_url': 'https://api.nookipedia.com',
                'accept_version': '1.7.0',
                'mount_prefix': '/nookipedia',
                'api_key_env': 'NOOKIPEDIA_API_KEY',  # Сам ключ в конфиг не попадает
            },

            'resend': {
                'base_url': 'https://api.resend.com',
            },

            'logging': {
                'level': 'INFO',
                'dir': None,  # None = <app data dir>/logs
            }
        }

    def _load_config(self) -> Dict[str, Any]:
        """Загружает конфигурацию из файла и применяет переменные окружения"""
        config = self._get_default_config()

        try:
            if self.config_path.exists():
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    loaded_config = json.load(f)
                    # Объединяем с дефолтными значениями
                    config = self._deep_merge(config, loaded_config)
        except (OSError, ValueError) as e:
            logger.error(f"❌ Failed to load config {self.config_path}: {e}")

        return self._apply_env_overrides(config)

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """PORT / HOST из окружения имеют приоритет над файлом"""
        port = self.environ.get('PORT', '').strip()
        if port:
            try:
                config['server']['port'] = int(port)
            except ValueError:
                logger.warning(f"⚠️ Ignoring invalid PORT value: {port!r}")

        host = self.environ.get('HOST', '').strip()
        if host:
            config['server']['host'] = host

        return config

    def _deep_merge(self, base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
        """Рекурсивное объединение словарей"""
        result = base.copy()

        for key, value in update.items():
            if (key in result and
                    isinstance(result[key], dict) and
                    isinstance(value, dict)):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def get(self, key: str, default: Any = None) -> Any:
        """Получает значение по ключу (dot notation)"""
        value = self.config

        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Устанавливает значение по ключу (dot notation)"""
        keys = key.split('.')
        config_ref = self.config

        for k in keys[:-1]:
            if k not in config_ref or not isinstance(config_ref[k], dict):
                config_ref[k] = {}
            config_ref = config_ref[k]

        config_ref[keys[-1]] = value

    def get_secret(self, name: str) -> str:
        """
        Читает секрет из окружения в момент запроса.

        Returns:
            str: Значение без пробелов по краям ('' если не задано)
        """
        return str(self.environ.get(name) or '').strip()

    def get_nookipedia_config(self) -> Dict[str, Any]:
        """Возвращает настройки прокси Nookipedia"""
        return self.get('nookipedia', {})

    def get_server_config(self) -> Dict[str, Any]:
        """Возвращает настройки HTTP сервера"""
        return self.get('server', {})


# Синглтон для глобального доступа
_config_instance = None


def get_config() -> ConfigManager:
    """Возвращает глобальный экземпляр ConfigManager"""
    global _config_instance
    if _config_instance is None:
        _config_instance = ConfigManager()
    return _config_instance
