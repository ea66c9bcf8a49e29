"""
Readiness polling for service dependencies

Used at startup, before a service binds its port, to wait until the service
it depends on answers.
"""

import asyncio
from typing import Awaitable, Callable, Optional

import httpx
import structlog

logger = structlog.get_logger(__name__)

Probe = Callable[[], Awaitable[bool]]


class DependencyUnavailableError(RuntimeError):
    """Raised when a dependency never became ready"""

    def __init__(self, dependency: str, attempts: int):
        super().__init__(f"{dependency} did not become ready after {attempts} attempts")
        self.dependency = dependency
        self.attempts = attempts


async def wait_until_ready(
    dependency: str,
    probe: Probe,
    interval: float,
    max_attempts: Optional[int] = None
) -> int:
    """
    Poll a probe until it reports ready

    Args:
        dependency: Name used in log events
        probe: Async callable returning True once the dependency is ready
        interval: Seconds to sleep between attempts
        max_attempts: Attempt budget, None to poll forever

    Returns:
        Number of attempts it took

    Raises:
        DependencyUnavailableError: the budget was exhausted
    """
    attempt = 0
    while max_attempts is None or attempt < max_attempts:
        attempt += 1
        try:
            ready = await probe()
        except Exception as e:
            logger.debug("Readiness probe raised", dependency=dependency, error=str(e))
            ready = False

        if ready:
            logger.info("Dependency is ready", dependency=dependency, attempts=attempt)
            return attempt

        logger.info(
            "Dependency not ready, waiting",
            dependency=dependency,
            attempt=attempt,
            max_attempts=max_attempts
        )
        if max_attempts is None or attempt < max_attempts:
            await asyncio.sleep(interval)

    logger.error("Dependency did not become ready in time", dependency=dependency, attempts=attempt)
    raise DependencyUnavailableError(dependency, attempt)


def http_probe(
    url: str,
    expected_status: int = 200,
    timeout: float = 5.0,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> Probe:
    """Build a probe that GETs url and expects a specific status code"""

    async def probe() -> bool:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            try:
                response = await client.get(url)
                return response.status_code == expected_status
            except httpx.HTTPError:
                return False

    return probe
