from __future__ import annotations

import uvicorn

from wallpaper_api.core.config import load_settings
from wallpaper_api.main import create_app


def main() -> None:
    settings = load_settings()
    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
