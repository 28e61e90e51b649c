"""
Health Monitor - on-demand probes of provider reachability

A probe issues one minimal, real completion (10 tokens, temperature 0, a
fixed benign prompt) and turns the outcome into a HealthStatus:

    success within threshold -> healthy
    success above threshold  -> degraded
    RateLimitError           -> degraded (reachable and authorized, throttled)
    any other error          -> unhealthy, with the error text

The probe is the single place in the gateway that absorbs an error instead
of propagating it.
"""

import asyncio
import time
from typing import TYPE_CHECKING, Callable

from promptcraft_gateway.core.exceptions import GatewayError, RateLimitError
from promptcraft_gateway.models.domain import HealthState, HealthStatus, ProviderType
from promptcraft_gateway.models.requests import CompletionRequest
from promptcraft_gateway.observability.logging import get_logger

if TYPE_CHECKING:
    from promptcraft_gateway.providers.base import LLMProvider
    from promptcraft_gateway.providers.registry import ProviderRegistry

logger = get_logger(__name__)

PROBE_SYSTEM_PROMPT = "You are a test assistant."
PROBE_USER_PROMPT = 'Respond with "OK" if you can read this.'
PROBE_MAX_TOKENS = 10
DEFAULT_DEGRADED_AFTER_MS = 5000.0


def build_probe_request(model: str) -> CompletionRequest:
    """Build the fixed, low-cost probe request for a model."""
    return CompletionRequest(
        model=model,
        system=PROBE_SYSTEM_PROMPT,
        user=PROBE_USER_PROMPT,
        max_tokens=PROBE_MAX_TOKENS,
        temperature=0.0,
    )


def _elapsed_ms(timer: Callable[[], float], start: float) -> float:
    return max(0.0, (timer() - start) * 1000.0)


async def probe(
    provider: "LLMProvider",
    *,
    degraded_after_ms: float = DEFAULT_DEGRADED_AFTER_MS,
    timer: Callable[[], float] = time.perf_counter,
) -> HealthStatus:
    """
    Probe one provider. Never raises a gateway error.

    Args:
        provider: The provider to probe.
        degraded_after_ms: Latency above which a successful probe reports
            degraded instead of healthy.
        timer: Monotonic clock in seconds (injectable for tests).

    Returns:
        A fresh HealthStatus; the caller (the provider) stores it.
    """
    request = build_probe_request(provider.get_default_model())
    label = provider.get_type().value
    start = timer()

    try:
        await provider.complete(request)
    except RateLimitError as e:
        logger.warning("health_probe_throttled", provider=label, error=str(e))
        return HealthStatus(
            state=HealthState.DEGRADED,
            latency_ms=_elapsed_ms(timer, start),
            error=str(e),
        )
    except GatewayError as e:
        logger.warning(
            "health_probe_failed",
            provider=label,
            error_code=e.error_code.value,
            error=str(e),
        )
        return HealthStatus(state=HealthState.UNHEALTHY, error=str(e))
    except Exception as e:
        logger.error("health_probe_crashed", provider=label, exc_info=True)
        return HealthStatus(state=HealthState.UNHEALTHY, error=str(e) or type(e).__name__)

    latency_ms = _elapsed_ms(timer, start)
    state = HealthState.DEGRADED if latency_ms > degraded_after_ms else HealthState.HEALTHY
    logger.info("health_probe_finished", provider=label, state=state.value, latency_ms=latency_ms)
    return HealthStatus(state=state, latency_ms=latency_ms)


class HealthMonitor:
    """
    Runs health probes against providers with a shared threshold.

    Args:
        degraded_after_ms: Latency above which a successful probe reports
            degraded instead of healthy.
        timer: Monotonic clock in seconds (injectable for tests).
    """

    def __init__(
        self,
        degraded_after_ms: float = DEFAULT_DEGRADED_AFTER_MS,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._degraded_after_ms = degraded_after_ms
        self._timer = timer

    @property
    def degraded_after_ms(self) -> float:
        return self._degraded_after_ms

    async def probe(self, provider: "LLMProvider") -> HealthStatus:
        return await probe(
            provider, degraded_after_ms=self._degraded_after_ms, timer=self._timer
        )

    async def check_all(
        self, registry: "ProviderRegistry"
    ) -> dict[ProviderType, HealthStatus]:
        """
        Probe every registered provider concurrently.

        Each provider records its own status through check_health().

        Returns:
            Mapping of provider type to its new HealthStatus.
        """
        providers = registry.get_all()
        results = await asyncio.gather(*(p.check_health() for p in providers))
        return {p.get_type(): status for p, status in zip(providers, results)}
