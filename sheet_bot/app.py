from __future__ import annotations

import uvicorn

from sheet_bot.config import load_config
from sheet_bot.logging import configure_logging


def main() -> None:
    config = load_config()
    configure_logging(config)
    server = config.get("server", {})
    uvicorn.run(
        "services.webhook:create_app",
        factory=True,
        host=str(server.get("host", "0.0.0.0")),
        port=int(server.get("port", 3000)),
        log_config=None,
    )


if __name__ == "__main__":
    main()
