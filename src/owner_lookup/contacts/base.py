from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol


@dataclass
class ContactMatch:
    phones: List[str] = field(default_factory=list)
    emails: List[str] = field(default_factory=list)
    source: Optional[str] = None
    raw: Any = None

    @property
    def found(self) -> bool:
        return bool(self.phones or self.emails)


class PeopleSearchProvider(Protocol):
    name: str

    def search(
        self,
        owner_name: Optional[str],
        mailing_address: Optional[str],
    ) -> ContactMatch:
        """Look up contact points for a person at a mailing address.

        Raises PeopleSearchError on transport or HTTP failure.
        """
        raise NotImplementedError


class NoopPeopleSearch:
    name = "noop"

    def search(self, *args, **kwargs) -> ContactMatch:  # pragma: no cover - trivial
        return ContactMatch()
