import logging

import uvicorn

from src.api import config


def main() -> None:
    logging.basicConfig(
        level=config.log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    port = config.port()
    logging.getLogger(__name__).info("Started on port %s", port)
    uvicorn.run(
        "src.api.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=port,
        log_level=config.log_level().lower(),
    )


if __name__ == "__main__":
    main()
