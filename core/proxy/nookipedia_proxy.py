# core/proxy/nookipedia_proxy.py
import asyncio
import logging
from aiohttp import web, ClientSession, TCPConnector, ClientError
from yarl import URL
from core.config_manager import ConfigManager
from core.errors import ConfigurationError, TransportError

logger = logging.getLogger(__name__)

PROXY_ERROR_TITLE = "Proxy Error"
DEFAULT_CONTENT_TYPE = "application/json"


class NookipediaProxy:
    def __init__(self, config: ConfigManager):
        """
        Args:
            config: ConfigManager с секцией 'nookipedia'
        """
        nookipedia = config.get_nookipedia_config()

        self.config = config
        self.base_url = nookipedia['base_url'].rstrip('/')
        self.accept_version = str(nookipedia['accept_version']).strip()
        self.mount_prefix = nookipedia['mount_prefix'].rstrip('/')
        self.api_key_env = nookipedia['api_key_env']

        # Connection pool для переиспользования соединений
        self.connector = None
        self.session = None
        self._init_lock = asyncio.Lock()

        # Статистика, на ответы не влияет
        self.stats = {
            'total_requests': 0,
            'total_responses': 0,
            'errors': 0
        }

    async def ensure_initialized(self):
        """Создает connection pool к upstream ровно один раз"""
        if self.session is not None:
            return

        async with self._init_lock:
            if self.session is not None:
                return

            self.connector = TCPConnector(
                limit=100,
                ttl_dns_cache=300,
                enable_cleanup_closed=True
            )
            self.session = ClientSession(connector=self.connector)
            logger.debug(f"Upstream session ready for {self.base_url}")

    async def cleanup(self):
        """Очистка ресурсов"""
        if self.session:
            await self.session.close()
            self.session = None
        if self.connector:
            await self.connector.close()
            self.connector = None

    def get_api_key(self) -> str:
        key = self.config.get_secret(self.api_key_env)
        if not key:
            raise ConfigurationError(f"Missing API key: {self.api_key_env} is not set on server.")
        return key

    def upstream_url(self, request) -> str:
        """
        Base + everything after the mount prefix, taken from the raw request target.

            /nookipedia/nh/art?x=y  ->  https://api.nookipedia.com/nh/art?x=y
        """
        raw = request.raw_path
        if raw.startswith(self.mount_prefix):
            tail = raw[len(self.mount_prefix):]
        else:
            tail = request.path_qs[len(self.mount_prefix):]
        return f"{self.base_url}{tail}"

    async def handle(self, request):
        """Проксирует GET запрос на Nookipedia с X-API-KEY"""
        self.stats['total_requests'] += 1

        if request.method != 'GET':
            return web.json_response(
                {"title": "Method Not Allowed", "details": "Only GET is supported."},
                status=405
            )

        try:
            return await self._forward(request)
        except Exception as e:
            self.stats['errors'] += 1
            logger.warning(f"⚠️ [nookipedia-proxy] Error: {e}")
            return web.json_response(
                {"title": PROXY_ERROR_TITLE, "details": str(e) or e.__class__.__name__},
                status=500
            )

    async def _forward(self, request):
        api_key = self.get_api_key()
        url = self.upstream_url(request)

        headers = {
            'Accept': 'application/json',
            'X-API-KEY': api_key,
            'Accept-Version': self.accept_version,
        }

        await self.ensure_initialized()
        logger.debug(f"🔐 Proxying to upstream: {url}")

        try:
            async with self.session.get(
                URL(url, encoded=True),
                headers=headers
            ) as upstream_response:
                content = await upstream_response.read()
                status = upstream_response.status
                content_type = upstream_response.headers.get('Content-Type') or DEFAULT_CONTENT_TYPE
        except (ClientError, asyncio.TimeoutError) as e:
            raise TransportError(e) from e

        self.stats['total_responses'] += 1
        logger.debug(f"Upstream response: {status}")

        # Только status, content-type и тело, остальные заголовки upstream не копируем
        return web.Response(
            body=content,
            status=status,
            headers={'Content-Type': content_type}
        )

    def register(self, app):
        """Mounts the catch-all routes on an aiohttp application"""
        app.router.add_route('*', self.mount_prefix, self.handle)
        app.router.add_route('*', self.mount_prefix + '/{tail:.*}', self.handle)

    def get_full_stats(self):
        """Получить статистику прокси"""
        return {
            'requests': self.stats['total_requests'],
            'responses': self.stats['total_responses'],
            'errors': self.stats['errors']
        }
