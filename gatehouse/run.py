"""
Bastion HTTP service.

Builds the FastAPI app around one FileGateway and one shared RateLimiter.
Run with ``python -m gatehouse.run`` or the ``bastion-server`` script.
"""

from __future__ import annotations

from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bastion import Config, __version__
from bastion.shared.gate import GateLogger
from bastion.FileSystemGate import FileGateway
from bastion.GuardGate import GatewayConfig
from bastion.RateGate import RateLimiter, from_config as rate_limiter_from_config

from gatehouse.api import files as files_api
from gatehouse.api import health as health_api
from gatehouse.middleware.security import SecurityMiddleware

_log = GateLogger.get("Server")


def create_app(
    config: Optional[GatewayConfig] = None,
    rate_limiter: Optional[RateLimiter] = None,
    cors_origins: Optional[list] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        config: Gateway configuration (default: loaded through Config)
        rate_limiter: Shared limiter (default: built from ``config``)
        cors_origins: Allowed CORS origins (default: BASTION_CORS_ORIGINS)

    Returns:
        Configured FastAPI app
    """
    if config is None:
        config = Config.load_gateway_config()
    if rate_limiter is None:
        rate_limiter = rate_limiter_from_config(config)
    if cors_origins is None:
        cors_origins = Config.get("BASTION_CORS_ORIGINS", [])

    gateway = FileGateway(config, rate_limiter=rate_limiter)

    app = FastAPI(title="Bastion", version=__version__)
    app.state.gateway = gateway

    app.add_middleware(
        SecurityMiddleware,
        rate_limiter=rate_limiter,
        max_file_size=config.max_file_size,
    )
    # Added last so it wraps SecurityMiddleware and answers preflights first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(files_api.create_router(gateway))
    app.include_router(health_api.create_router(gateway, __version__))

    _log.info(f"Serving files below {gateway.default_path()}")
    return app


def main():
    """Validate configuration and serve."""
    manager = Config.get_manager()
    GateLogger.set_level(manager.get("BASTION_LOG_LEVEL", "INFO"))

    is_valid, errors = manager.validate()
    if not is_valid:
        for error in errors:
            _log.error(error)
        raise SystemExit(1)

    app = create_app(manager.to_gateway_config())
    uvicorn.run(
        app,
        host=manager.get("BASTION_HOST", "127.0.0.1"),
        port=manager.get("BASTION_PORT", 5120),
    )


if __name__ == "__main__":
    main()
