"""Allocation configuration store.

The store owns the user's target allocation, the safety buffer and the
selected account. All validation happens here, at the write boundary, so the
planning engine never sees an invalid allocation set.
"""

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from autoinvest.utils.exceptions import AllocationError, ConfigurationError
from autoinvest.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_BUFFER_PERCENT = 0.05

# Float sums such as 33.3 + 33.3 + 33.4 must still pass
PERCENT_TOLERANCE = 1e-9


@dataclass
class Allocation:
    """Target weight for one symbol.

    Attributes:
        symbol: Ticker symbol (stored upper-case)
        target_percent: Target share of the portfolio, in (0, 100]
        instrument_id: Cached contract id, if known
    """

    symbol: str
    target_percent: float
    instrument_id: Optional[int] = None

    def __post_init__(self):
        """Normalize and validate fields."""
        self.symbol = str(self.symbol or "").strip().upper()
        if not self.symbol:
            raise AllocationError("Allocation symbol must not be empty")
        try:
            self.target_percent = float(self.target_percent)
        except (TypeError, ValueError) as e:
            raise AllocationError(
                f"target_percent for {self.symbol} must be a number, got {self.target_percent!r}"
            ) from e
        if not 0 < self.target_percent <= 100:
            raise AllocationError(
                f"target_percent for {self.symbol} must be in (0, 100], got {self.target_percent}"
            )
        if self.instrument_id is not None:
            try:
                self.instrument_id = int(self.instrument_id) or None
            except (TypeError, ValueError) as e:
                raise AllocationError(
                    f"instrument_id for {self.symbol} must be an integer, got {self.instrument_id!r}"
                ) from e

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Allocation":
        if not isinstance(data, dict):
            raise AllocationError(f"Allocation entry must be a mapping, got {data!r}")
        return cls(
            symbol=data.get("symbol"),
            target_percent=data.get("target_percent"),
            instrument_id=data.get("instrument_id"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"symbol": self.symbol, "target_percent": self.target_percent}
        if self.instrument_id is not None:
            data["instrument_id"] = self.instrument_id
        return data


def validate_allocations(allocations: List[Allocation]) -> None:
    """Validate an allocation set as a whole.

    Raises:
        AllocationError: On duplicate symbols or a total above 100%
    """
    seen = set()
    for allocation in allocations:
        if allocation.symbol in seen:
            raise AllocationError(f"Duplicate allocation for {allocation.symbol}")
        seen.add(allocation.symbol)

    total = sum(a.target_percent for a in allocations)
    if total > 100 + PERCENT_TOLERANCE:
        raise AllocationError(
            f"Allocation percentages sum to {total:g}%, which exceeds 100%"
        )


def validate_buffer_percent(percent: Any) -> float:
    """Validate a buffer fraction.

    Returns:
        The buffer as float

    Raises:
        AllocationError: If not a number in [0, 1]
    """
    try:
        value = float(percent)
    except (TypeError, ValueError) as e:
        raise AllocationError(f"Buffer percent must be a number, got {percent!r}") from e
    if not 0 <= value <= 1:
        raise AllocationError(f"Buffer percent must be between 0 and 1, got {value}")
    return value


class AllocationStore(ABC):
    """Abstract allocation repository.

    Subclasses only persist a plain state dictionary; reading, validation
    and merging live here.

    State keys:
        allocations: list of {symbol, target_percent, instrument_id}
        buffer_percent: safety buffer fraction
        selected_account_id: account chosen by the user
        last_updated: ISO timestamp of the last allocation change
    """

    @abstractmethod
    def _load(self) -> Dict[str, Any]:
        """Return the persisted state (empty dict when nothing is stored)."""
        pass

    @abstractmethod
    def _save(self, state: Dict[str, Any]) -> None:
        """Persist the full state."""
        pass

    def _update(self, **changes: Any) -> None:
        state = self._load()
        state.update(changes)
        self._save(state)

    def get_allocations(self) -> List[Allocation]:
        """Read the allocation set.

        Raises:
            ConfigurationError: If the stored set is invalid
        """
        raw = self._load().get("allocations") or []
        if not isinstance(raw, list):
            raise ConfigurationError(f"Stored allocations must be a list, got {raw!r}")
        allocations = [Allocation.from_dict(item) for item in raw]
        validate_allocations(allocations)
        return allocations

    def set_allocations(self, allocations: List[Allocation]) -> None:
        """Replace the allocation set.

        Raises:
            AllocationError: If the set is invalid; nothing is written
        """
        allocations = [
            a if isinstance(a, Allocation) else Allocation.from_dict(a) for a in allocations
        ]
        validate_allocations(allocations)
        self._update(
            allocations=[a.to_dict() for a in allocations],
            last_updated=datetime.now().isoformat(timespec="seconds"),
        )
        logger.info(
            "Saved %d allocation(s) totalling %.2f%%",
            len(allocations),
            sum(a.target_percent for a in allocations),
        )

    def upsert_allocation(self, allocation: Allocation) -> None:
        """Add an allocation or update the one with the same symbol."""
        allocations = self.get_allocations()
        for index, existing in enumerate(allocations):
            if existing.symbol == allocation.symbol:
                allocations[index] = Allocation(
                    symbol=allocation.symbol,
                    target_percent=allocation.target_percent,
                    instrument_id=allocation.instrument_id or existing.instrument_id,
                )
                break
        else:
            allocations.append(allocation)
        self.set_allocations(allocations)

    def remove_allocation(self, symbol: str) -> None:
        """Remove the allocation for ``symbol`` (case-insensitive)."""
        key = symbol.strip().upper()
        self.set_allocations([a for a in self.get_allocations() if a.symbol != key])

    def get_buffer_percent(self) -> float:
        """Read the safety buffer fraction (default 0.05).

        Raises:
            ConfigurationError: If the stored value is invalid
        """
        value = self._load().get("buffer_percent")
        if value is None:
            return DEFAULT_BUFFER_PERCENT
        return validate_buffer_percent(value)

    def set_buffer_percent(self, percent: float) -> None:
        """Set the safety buffer fraction.

        Raises:
            AllocationError: If outside [0, 1]
        """
        self._update(buffer_percent=validate_buffer_percent(percent))

    def get_selected_account_id(self) -> str:
        return str(self._load().get("selected_account_id") or "")

    def set_selected_account_id(self, account_id: str) -> None:
        self._update(selected_account_id=account_id)

    def get_settings(self) -> Dict[str, Any]:
        """All stored settings as plain data."""
        return {
            "allocations": [a.to_dict() for a in self.get_allocations()],
            "buffer_percent": self.get_buffer_percent(),
            "last_updated": str(self._load().get("last_updated") or ""),
            "selected_account_id": self.get_selected_account_id(),
        }


class InMemoryAllocationStore(AllocationStore):
    """Allocation store kept in process memory."""

    def __init__(self, state: Optional[Dict[str, Any]] = None):
        self._state = copy.deepcopy(state) if state else {}

    def _load(self) -> Dict[str, Any]:
        return copy.deepcopy(self._state)

    def _save(self, state: Dict[str, Any]) -> None:
        self._state = copy.deepcopy(state)
