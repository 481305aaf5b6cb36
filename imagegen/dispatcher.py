# imagegen/dispatcher.py

import asyncio
import logging
from typing import Awaitable, Callable, List

from .errors import PlatformTimeout, TransportFailure
from .model import ProviderFailure, ProviderResult
from .normalizer import ProviderPayload
from .retry import RetryPolicy
from .vertex_client import VertexClient

logger = logging.getLogger(__name__)


class Dispatcher:
    """
    Sends a normalized payload to its model endpoint.

    - single-shot families: one call, the provider returns every image
    - fan-out families: requested_count independent calls, slot i starts
      after i * stagger seconds, every slot has its own retry budget
    Results always come back in slot order and every slot settles before
    dispatch returns.
    """

    def __init__(
        self,
        client: VertexClient,
        retry_policy: RetryPolicy,
        stagger: float = 0.8,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.retry_policy = retry_policy
        self.stagger = stagger
        self._sleep = sleep

    async def dispatch(self, payload: ProviderPayload, token: str) -> List[ProviderResult]:
        family = payload.family
        url = self.client.endpoint(family)

        if not family.fan_out:
            logger.info("[Dispatcher] %s -> %s (single call, %d image(s))", family.name, family.model_id, payload.requested_count)
            return [await self._run_slot(0, url, payload, token)]

        logger.info("[Dispatcher] %s -> %s (fan-out x%d)", family.name, family.model_id, payload.requested_count)
        slots = [
            self._run_slot(index, url, payload, token, delay=index * self.stagger)
            for index in range(payload.requested_count)
        ]
        # gather keeps argument order, so completion order never leaks out
        return list(await asyncio.gather(*slots))

    async def _run_slot(
        self,
        index: int,
        url: str,
        payload: ProviderPayload,
        token: str,
        delay: float = 0.0,
    ) -> ProviderResult:
        if delay > 0:
            await self._sleep(delay)

        family = payload.family

        async def attempt() -> ProviderResult:
            data = await self.client.post_json(url, payload.body, token)
            try:
                return family.parse_result(data)
            except (KeyError, TypeError, AttributeError, IndexError) as e:
                raise TransportFailure(f"{family.model_id} returned an unexpected body: {e!r}") from e

        try:
            return await self.retry_policy.run(attempt, label=f"{family.name} slot {index}")
        except TransportFailure as e:
            logger.error("[Dispatcher] slot %d gave up: %s", index, e.message)
            return ProviderFailure(message=e.message, timed_out=isinstance(e, PlatformTimeout))
