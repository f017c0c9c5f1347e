"""Gateway readiness polling.

The gateway process itself is started and stopped elsewhere; this module only
waits until it answers HTTP requests.
"""

from autoinvest.gateway.client import GatewayClient
from autoinvest.utils.logging import get_logger
from autoinvest.utils.polling import PollOutcome, poll_until

logger = get_logger(__name__)


def wait_for_gateway(
    client: GatewayClient,
    interval: float = 1.0,
    timeout: float = 30.0,
    **poll_kwargs,
) -> PollOutcome:
    """Poll the gateway until it answers or the timeout passes.

    Args:
        client: Gateway client to probe
        interval: Seconds between probes
        timeout: Overall deadline in seconds
        **poll_kwargs: Passed through to poll_until (sleep, clock)

    Returns:
        PollOutcome; ``met`` is True once the gateway answered
    """
    logger.info("Waiting for gateway at %s (timeout %.0fs)", client.base_url, timeout)
    outcome = poll_until(client.check_health, interval=interval, timeout=timeout, **poll_kwargs)

    if outcome.met:
        logger.info("Gateway is up after %d probe(s)", outcome.attempts)
    else:
        logger.warning("Gateway did not answer within %.0fs", timeout)

    return outcome
