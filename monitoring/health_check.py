"""
Health Check Server
HTTP endpoint reporting database and scheduler status
"""

import os
import logging
from datetime import datetime

from aiohttp import web
import psutil

from monitoring.metrics import get_metrics_text, update_memory

logger = logging.getLogger(__name__)


class HealthCheckServer:
    """HTTP server for health check and metrics endpoints."""

    def __init__(self, db, supervisor, port: int = 8080, host: str = '0.0.0.0'):
        self.db = db
        self.supervisor = supervisor
        self.port = port
        self.host = host
        self.start_time = datetime.now()
        self.runner = None

    def build_app(self) -> web.Application:
        web_app = web.Application()
        web_app.router.add_get('/health', self.health_handler)
        web_app.router.add_get('/metrics', self.metrics_handler)
        return web_app

    async def start(self):
        """Start health check HTTP server."""
        self.runner = web.AppRunner(self.build_app())
        await self.runner.setup()
        site = web.TCPSite(self.runner, self.host, self.port)
        await site.start()
        logger.info(f"Health check server started on port {self.port}")

    async def stop(self):
        """Stop server."""
        if self.runner:
            await self.runner.cleanup()
            self.runner = None
            logger.info("Health check server stopped")

    async def health_handler(self, request):
        """Handle /health requests."""
        db_ok = await self.db.health_check()
        scheduler_status = self.supervisor.status()

        uptime = datetime.now() - self.start_time
        uptime_str = f"{uptime.days}d {uptime.seconds // 3600}h {(uptime.seconds % 3600) // 60}m"

        process = psutil.Process(os.getpid())
        memory_bytes = process.memory_info().rss
        update_memory(memory_bytes)

        healthy = (
            db_ok
            and scheduler_status['reminders']['running']
            and scheduler_status['token_cleanup']['running']
        )

        return web.json_response({
            'status': 'healthy' if healthy else 'degraded',
            'app_name': os.getenv('APP_NAME', 'CRAPP'),
            'uptime': uptime_str,
            'uptime_seconds': int(uptime.total_seconds()),
            'memory_mb': round(memory_bytes / 1024 / 1024, 2),
            'database': 'connected' if db_ok else 'disconnected',
            'scheduler': scheduler_status,
        }, status=200 if healthy else 503)

    async def metrics_handler(self, request):
        """Handle /metrics requests (Prometheus format)."""
        return web.Response(text=get_metrics_text(), content_type='text/plain')
