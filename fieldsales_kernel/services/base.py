"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor for every service in the kernel layer.
    All concrete services receive a ``WorkforceRepository`` (the only path
    to stored state) and a ``Clock`` (the only source of "today").

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Services never hold a store reference of their own; every read and
      write goes through the injected repository.
    - ``today`` is sampled from the clock at the start of each operation
      and never cached on the service.

Audit relevance:
    BaseService itself emits no log events, but every concrete subclass
    that mutates state logs significant operations via the structured
    logging infrastructure.
"""

from abc import ABC
from datetime import date

from fieldsales_kernel.domain.clock import Clock, SystemClock
from fieldsales_kernel.services.repository import WorkforceRepository


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Non-goals:
        - Does NOT manage store transactions; the repository writes through
          on every save.
    """

    def __init__(self, repository: WorkforceRepository, clock: Clock | None = None):
        """
        Initialize the service.

        Args:
            repository: Workforce repository for the console/season scope.
            clock: Clock for "today".  Defaults to the system clock.
        """
        self.repository = repository
        self._clock = clock or SystemClock()

    @property
    def clock(self) -> Clock:
        return self._clock

    def today(self) -> date:
        return self._clock.today()
