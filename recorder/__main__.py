"""
Entry point for running the application with `python -m recorder`.

Startup is fatal when a required transport cannot connect: uvicorn runs the
lifespan before binding the socket, and ``lifespan="on"`` turns a failed
startup into a process exit.
"""
import logging

import uvicorn

from recorder.settings import get_settings


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "recorder.main:app",
        host=settings.host,
        port=settings.port,
        lifespan="on",
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
