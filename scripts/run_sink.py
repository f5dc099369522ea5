#!/usr/bin/env python3
import uvicorn

from evsink.api.server import create_app
from evsink.config.config import SinkConfig
from evsink.utils.logging import configure_logging


def main() -> None:
    config = SinkConfig.from_env()
    configure_logging(level=config.log_level, json_output=config.log_json)
    uvicorn.run(create_app(config), host=config.host, port=config.port, log_config=None)


if __name__ == "__main__":
    main()
