# core/server.py
import logging
from aiohttp import web
from core.config_manager import ConfigManager, get_config
from core.proxy.nookipedia_proxy import NookipediaProxy
from core.universe_request import UniverseRequestHandler

logger = logging.getLogger(__name__)

PROXY_KEY = web.AppKey("nookipedia_proxy", NookipediaProxy)

CORS_HEADERS = {
    'Access-Control-Allow-Methods': 'GET, HEAD, PUT, PATCH, POST, DELETE',
}


@web.middleware
async def cors_middleware(request, handler):
    """Разрешаем запросы с любого origin (мобильный и web клиент)"""
    if request.method == 'OPTIONS' and 'Access-Control-Request-Method' in request.headers:
        response = web.Response(status=204)
        response.headers.update(CORS_HEADERS)
        requested = request.headers.get('Access-Control-Request-Headers')
        if requested:
            response.headers['Access-Control-Allow-Headers'] = requested
    else:
        try:
            response = await handler(request)
        except web.HTTPException as ex:
            ex.headers["Access-Control-Allow-Origin"] = "*"
            raise

    response.headers['Access-Control-Allow-Origin'] = '*'
    return response


async def index(request):
    return web.Response(text="You might not be in the right place")


async def _on_startup(app):
    await app[PROXY_KEY].ensure_initialized()
    logger.info("✅ Upstream connection pool initialized")


async def _on_cleanup(app):
    proxy = app[PROXY_KEY]
    await proxy.cleanup()

    stats = proxy.get_full_stats()
    logger.info(
        f"📊 Session statistics:\n"
        f"   Total requests: {stats.get('requests', 0)}\n"
        f"   Total responses: {stats.get('responses', 0)}\n"
        f"   Errors: {stats.get('errors', 0)}"
    )


def create_app(config: ConfigManager = None, mail_transport=None) -> web.Application:
    """
    Собирает aiohttp приложение со всеми маршрутами.

    Args:
        config: ConfigManager (None = глобальный)
        mail_transport: Подменный транспорт httpx для Resend (тесты)
    """
    config = config or get_config()

    app = web.Application(middlewares=[cors_middleware])

    proxy = NookipediaProxy(config)
    app[PROXY_KEY] = proxy

    universe_request = UniverseRequestHandler(config, transport=mail_transport)

    app.router.add_get('/', index)
    proxy.register(app)
    app.router.add_post('/feedback/universe-request', universe_request.handle)

    app.on_startup.append(_on_startup)
    app.on_cleanup.append(_on_cleanup)

    return app


def run_server(config: ConfigManager = None):
    """Запускает сервер и блокирует до остановки"""
    config = config or get_config()
    host = config.get('server.host')
    port = config.get('server.port')

    app = create_app(config)
    logger.info(f"🚀 Starting server on {host}:{port}")
    web.run_app(app, host=host, port=port, access_log=None, print=None)
    logger.info("🛑 Server stopped")
