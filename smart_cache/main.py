import math
import os
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict, Optional

import structlog
import uvicorn
from fastapi import FastAPI, HTTPException, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST
from pydantic import BaseModel, validator

from smart_cache.config.settings import CacheSettings, create_settings_from_env
from smart_cache.core.cache_engine import MISSING, SmartCacheManager
from smart_cache.core.errors import CacheError

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


class CacheEntryWrite(BaseModel):
    """Cache write request model"""
    value: Any
    ttl: Optional[float] = None

    @validator('ttl')
    def validate_ttl(cls, v):
        if v is not None and not (math.isfinite(v) and v > 0):
            raise ValueError('ttl must be a positive finite number')
        return v


def _manager(request: Request) -> SmartCacheManager:
    manager = getattr(request.app.state, "cache_manager", None)
    if manager is None:
        raise HTTPException(status_code=500, detail="Cache manager not initialized")
    return manager


def create_app(settings: Optional[CacheSettings] = None) -> FastAPI:
    """Build the ops API around a fresh cache manager"""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager"""
        logger.info("Starting smart cache service")
        manager = SmartCacheManager(settings or create_settings_from_env())
        await manager.initialize()
        app.state.cache_manager = manager

        yield

        logger.info("Shutting down smart cache service")
        await manager.close()
        app.state.cache_manager = None

    app = FastAPI(
        title="Smart Cache",
        description="In-process TTL cache with access-temperature tuning",
        version="1.0.0",
        lifespan=lifespan
    )

    @app.get("/health")
    async def health_check(request: Request) -> Dict[str, Any]:
        """Health check endpoint"""
        manager = _manager(request)
        return {
            "status": "healthy",
            "optimizer_running": manager.optimizer.running,
            "timestamp": datetime.utcnow().isoformat()
        }

    @app.get("/stats")
    async def get_stats(request: Request) -> Dict[str, Any]:
        """Cache statistics for dashboards and bot commands"""
        return {
            "cache_stats": _manager(request).get_stats(),
            "timestamp": datetime.utcnow().isoformat()
        }

    @app.get("/status")
    async def get_status(request: Request) -> Dict[str, Any]:
        return _manager(request).stats.get_system_status()

    @app.get("/metrics")
    async def get_metrics(request: Request) -> Response:
        """Prometheus scrape endpoint"""
        collector = _manager(request).metrics_collector
        return Response(content=collector.export(), media_type=CONTENT_TYPE_LATEST)

    @app.post("/optimize")
    async def force_optimization(request: Request) -> Dict[str, Any]:
        """Manually trigger an optimization pass"""
        report = _manager(request).force_optimization()
        return {
            "report": report.to_dict(),
            "timestamp": datetime.utcnow().isoformat()
        }

    @app.get("/caches/{name}/{key}")
    async def get_entry(name: str, key: str, request: Request) -> Dict[str, Any]:
        value = _manager(request).get(name, key, MISSING)
        if value is MISSING:
            raise HTTPException(status_code=404, detail="Entry not found")
        return {"cache": name, "key": key, "value": value}

    @app.put("/caches/{name}/{key}")
    async def put_entry(name: str, key: str, entry: CacheEntryWrite, request: Request) -> Dict[str, Any]:
        """Warm a cache entry from an operator tool"""
        try:
            _manager(request).set(name, key, entry.value, entry.ttl)
        except CacheError as e:
            logger.error("Cache write failed", cache=name, key=key, error=str(e))
            raise HTTPException(status_code=400, detail=str(e))

        logger.info("Cache entry stored via API", cache=name, key=key)
        return {"message": "Entry stored", "cache": name, "key": key}

    @app.delete("/caches/{name}/{key}")
    async def delete_entry(name: str, key: str, request: Request) -> Dict[str, str]:
        if not _manager(request).delete(name, key):
            raise HTTPException(status_code=404, detail="Entry not found")

        logger.info("Cache entry deleted via API", cache=name, key=key)
        return {"message": "Entry deleted", "cache": name, "key": key}

    @app.delete("/caches/{name}")
    async def clear_cache(name: str, request: Request) -> Dict[str, str]:
        _manager(request).clear(name)
        return {"message": "Cache cleared", "cache": name}

    @app.delete("/caches")
    async def clear_all(request: Request) -> Dict[str, str]:
        _manager(request).clear()
        return {"message": "All caches cleared"}

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "smart_cache.main:app",
        host=os.getenv("SMART_CACHE_HOST", "0.0.0.0"),
        port=int(os.getenv("SMART_CACHE_PORT", "8000")),
        log_config=None,  # Use structlog instead
        access_log=False
    )
