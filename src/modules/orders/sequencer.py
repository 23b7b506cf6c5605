"""Order number allocation.

Numbers look like ``MDD25060001``: prefix, two-digit
year, two-digit month, then a four-digit sequence that restarts every
month.  Allocation is optimistic: read the highest number in the
current bucket, propose the next one and retry with a short randomised
backoff when a concurrent writer got there first.  A lost race shows
up either as an existing row (pre-check) or as a unique-constraint
violation on insert (``claim``).
"""

from __future__ import annotations

import random
import time
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Optional, TypeVar

import structlog
from django.db import IntegrityError, transaction
from django.utils import timezone

from modules.core.exceptions import SequenceExhausted
from modules.orders.constants import ORDER_NUMBER_SEQUENCE_DIGITS

if TYPE_CHECKING:
    from modules.core.conf import CommerceConfig
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_MAX_SEQUENCE = 10**ORDER_NUMBER_SEQUENCE_DIGITS - 1


class OrderNumberSequencer:
    """Allocates ``<prefix><YY><MM><NNNN>`` order numbers.

    ``clock`` and ``sleep`` are injectable so tests can pin the bucket
    and skip the backoff.
    """

    def __init__(
        self,
        repository: IOrderRepository,
        prefix: str = "MDD",
        max_attempts: int = 5,
        backoff_seconds: float = 0.05,
        clock: Callable[[], datetime] = timezone.now,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._repo = repository
        self.prefix = prefix
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self._clock = clock
        self._sleep = sleep

    @classmethod
    def from_config(cls, repository: IOrderRepository, config: CommerceConfig, **kwargs) -> OrderNumberSequencer:
        return cls(
            repository,
            prefix=config.order_number_prefix,
            max_attempts=config.order_number_max_attempts,
            backoff_seconds=config.order_number_backoff_seconds,
            **kwargs,
        )

    def bucket(self) -> str:
        now = self._clock()
        if timezone.is_aware(now):
            now = timezone.localtime(now)
        return f"{self.prefix}{now:%y%m}"

    def next_order_number(self) -> str:
        """Return an order number that was free when checked.

        Raises:
            SequenceExhausted: every attempt collided.
        """
        bucket = self.bucket()
        for attempt in range(1, self.max_attempts + 1):
            candidate = self._propose(bucket)
            if not self._repo.order_number_exists(candidate):
                return candidate
            logger.warning("order_number.collision", candidate=candidate, attempt=attempt)
            self._backoff(attempt)
        return self._exhausted(bucket)

    def claim(self, persist: Callable[[str], T]) -> T:
        """Allocate a number and insert with it, retrying lost races.

        ``persist`` receives the candidate and performs the insert inside a
        savepoint; a unique violation on ``order_number`` rolls back only
        that attempt.  Any other integrity error propagates.
        """
        bucket = self.bucket()
        for attempt in range(1, self.max_attempts + 1):
            candidate = self._propose(bucket)
            if self._repo.order_number_exists(candidate):
                logger.warning("order_number.collision", candidate=candidate, attempt=attempt)
                self._backoff(attempt)
                continue
            try:
                with transaction.atomic():
                    result = persist(candidate)
            except IntegrityError as exc:
                if "order_number" not in str(exc):
                    raise
                logger.warning(
                    "order_number.insert_conflict", candidate=candidate, attempt=attempt
                )
                self._backoff(attempt)
                continue
            logger.info("order_number.allocated", order_number=candidate, attempt=attempt)
            return result
        return self._exhausted(bucket)

    # ------------------------------------------------------------------

    def _propose(self, bucket: str) -> str:
        latest: Optional[str] = self._repo.latest_order_number(bucket)
        sequence = 1
        if latest:
            sequence = int(latest[-ORDER_NUMBER_SEQUENCE_DIGITS:]) + 1
        if sequence > _MAX_SEQUENCE:
            raise SequenceExhausted(f"Order numbers for {bucket} are used up.")
        return f"{bucket}{sequence:0{ORDER_NUMBER_SEQUENCE_DIGITS}d}"

    def _backoff(self, attempt: int) -> None:
        if attempt >= self.max_attempts:
            return
        self._sleep(self.backoff_seconds * random.uniform(0.5, 1.5))

    def _exhausted(self, bucket: str):
        logger.error("order_number.exhausted", bucket=bucket, attempts=self.max_attempts)
        raise SequenceExhausted()
