"""Run the TaskOps server: ``python -m app``.

uvicorn owns the signal handling; SIGINT/SIGTERM drain in-flight requests
before the process exits.
"""

from __future__ import annotations

import structlog
import uvicorn

from app.config import get_settings
from app.main import app
from app.observability.logging import configure_logging


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)

    base_url = f"http://localhost:{settings.port}"
    structlog.get_logger("app").info(
        "server.starting",
        host=settings.host,
        port=settings.port,
        healthz=f"{base_url}/healthz",
        metrics=f"{base_url}/metrics",
        api=f"{base_url}/api/todos",
    )

    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
