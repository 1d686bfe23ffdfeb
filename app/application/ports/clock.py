from abc import ABC, abstractmethod
from datetime import date, datetime, tzinfo


class ClockPort(ABC):
    @property
    @abstractmethod
    def timezone(self) -> tzinfo:
        raise NotImplementedError

    @abstractmethod
    def now(self) -> datetime:
        """Timezone-aware current time in the business timezone."""
        raise NotImplementedError

    def today(self) -> date:
        return self.now().date()
