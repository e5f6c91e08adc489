"""Readiness probes and port checks.

A readiness probe is a liveness signal only: a service counts as ready as
soon as its endpoint accepts a connection (TCP, gRPC) or answers any HTTP
request, whatever the status code.
"""

from collections.abc import AsyncIterator, Iterable  # noqa: TC003
from contextlib import asynccontextmanager

import anyio
import httpx
from tenacity import AsyncRetrying, retry_if_result, stop_after_attempt, wait_fixed

from weedctl.config import PortBinding  # noqa: TC001
from weedctl.exceptions import PortInUseError

from ._models import ProbeKind, ProbeResult, ProbeSpec

PORT_CHECK_TIMEOUT = 0.5
PORT_RELEASE_POLL = 0.1


async def tcp_reachable(host: str, port: int, timeout: float) -> bool:
    """Return True if a TCP connection to ``host:port`` can be opened."""
    try:
        with anyio.fail_after(timeout):
            stream = await anyio.connect_tcp(host, port)
    except (OSError, TimeoutError):
        return False
    await stream.aclose()
    return True


async def _http_responds(client: httpx.AsyncClient, probe: ProbeSpec) -> bool:
    for path in probe.paths():
        try:
            _ = await client.get(f"http://{probe.target}{path}")
        except httpx.HTTPError:
            continue
        return True
    return False


@asynccontextmanager
async def _http_client(
    client: httpx.AsyncClient | None,
) -> AsyncIterator[httpx.AsyncClient]:
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(follow_redirects=False) as owned:
        yield owned


async def probe_once(probe: ProbeSpec, client: httpx.AsyncClient) -> bool:
    """Make a single probe attempt, bounded by ``probe.attempt_timeout``."""
    with anyio.move_on_after(probe.attempt_timeout):
        if probe.kind is ProbeKind.HTTP:
            return await _http_responds(client, probe)
        return await tcp_reachable(probe.host, probe.port, probe.attempt_timeout)
    return False


async def wait_until_ready(
    probe: ProbeSpec,
    *,
    client: httpx.AsyncClient | None = None,
) -> ProbeResult:
    """Poll ``probe`` until it succeeds or its attempts run out.

    The first successful attempt returns immediately. Attempts are spaced
    ``poll_interval`` apart and the whole probe never takes longer than
    ``probe.deadline``.

    Args:
        probe: What to poll.
        client: HTTP client to reuse. A private one is opened if omitted.

    Returns:
        The outcome, including the number of attempts made.
    """
    attempts = 0
    started = anyio.current_time()

    async def attempt(http: httpx.AsyncClient) -> bool:
        nonlocal attempts
        attempts += 1
        return await probe_once(probe, http)

    retrying = AsyncRetrying(
        stop=stop_after_attempt(probe.max_attempts),
        wait=wait_fixed(probe.poll_interval),
        retry=retry_if_result(lambda ready: not ready),
        retry_error_callback=lambda _state: False,
        sleep=anyio.sleep,
    )

    ready = False
    async with _http_client(client) as http:
        with anyio.move_on_after(probe.deadline):
            ready = bool(await retrying(attempt, http))

    return ProbeResult(
        ready=ready,
        attempts=attempts,
        elapsed=anyio.current_time() - started,
    )


async def check_cluster_health(host: str, port: int, timeout: float) -> bool:
    """Ask the master for ``/cluster/health``.

    Returns:
        True if the master answered with a 2xx status in time.
    """
    url = f"http://{host}:{port}/cluster/health"
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.get(url)
    except httpx.HTTPError:
        return False
    return response.is_success


async def ensure_ports_available(
    bindings: Iterable[PortBinding],
    host: str,
    *,
    timeout: float = PORT_CHECK_TIMEOUT,
) -> None:
    """Fail if any port the cluster needs is already accepting connections.

    Raises:
        PortInUseError: For the first busy port.
    """
    for binding in bindings:
        if await tcp_reachable(host, binding.port, timeout):
            msg = (
                f"Port {binding.port} needed by {binding.name} is already in use "
                f"on {host}"
            )
            raise PortInUseError(msg, port=binding.port, host=host, binding=binding.name)


async def wait_for_ports_released(
    bindings: Iterable[PortBinding],
    host: str,
    timeout: float,
) -> None:
    """Wait until none of ``bindings`` accepts connections any more.

    Raises:
        PortInUseError: If a port is still accepting after ``timeout``.
    """
    pending = list(bindings)
    with anyio.move_on_after(timeout):
        while pending:
            still_open: list[PortBinding] = []
            for binding in pending:
                if await tcp_reachable(host, binding.port, PORT_CHECK_TIMEOUT):
                    still_open.append(binding)
            pending = still_open
            if pending:
                await anyio.sleep(PORT_RELEASE_POLL)

    if pending:
        binding = pending[0]
        msg = (
            f"Port {binding.port} of {binding.name} was not released within "
            f"{timeout:g}s"
        )
        raise PortInUseError(msg, port=binding.port, host=host, binding=binding.name)
