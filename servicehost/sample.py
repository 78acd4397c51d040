"""Sample hosted object: servicehost run servicehost.sample:SampleService -- -c"""

from typing import Sequence

from loguru import logger


class SampleService:
    """Logs each lifecycle step."""

    def __init__(self):
        self.args: list[str] | None = None

    def with_args(self, args: Sequence[str]) -> None:
        self.args = list(args)

    def start(self) -> None:
        logger.info("Sample service started")
        if self.args:
            logger.info(f"args: {', '.join(self.args)}")

    def stop(self) -> None:
        logger.info("Sample service stopped")

    def close(self) -> None:
        logger.info("Sample service disposed")
