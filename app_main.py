from __future__ import annotations

import logging

from deploydeck.app import create_app
from deploydeck.env_loader import load_local_env
from deploydeck.settings import get_settings


load_local_env()
settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = create_app(settings)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app_main:app", host="0.0.0.0", port=settings.port, reload=not settings.is_production)
