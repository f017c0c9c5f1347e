"""Unit tests for allocation stores."""

from pathlib import Path

import pytest
import yaml

from autoinvest.store.base import (
    DEFAULT_BUFFER_PERCENT,
    Allocation,
    InMemoryAllocationStore,
    validate_allocations,
)
from autoinvest.store.yaml_store import YamlAllocationStore
from autoinvest.utils.exceptions import AllocationError, ConfigurationError


@pytest.fixture(params=["memory", "yaml"])
def store(request, tmp_path: Path):
    """Run every store test against both implementations."""
    if request.param == "memory":
        return InMemoryAllocationStore()
    return YamlAllocationStore(tmp_path / "nested" / "allocations.yaml")


class TestAllocation:
    """Test Allocation validation."""

    def test_symbol_normalized(self) -> None:
        """Test symbol is trimmed and upper-cased."""
        assert Allocation(" voo ", 50).symbol == "VOO"

    @pytest.mark.parametrize("target", [0, -5, 100.5])
    def test_target_out_of_range(self, target) -> None:
        """Test targets outside (0, 100] are rejected."""
        with pytest.raises(AllocationError, match="target_percent"):
            Allocation("VOO", target)

    def test_empty_symbol(self) -> None:
        """Test empty symbol is rejected."""
        with pytest.raises(AllocationError, match="symbol"):
            Allocation("  ", 10)

    def test_non_numeric_target(self) -> None:
        """Test non-numeric target is rejected."""
        with pytest.raises(AllocationError, match="must be a number"):
            Allocation("VOO", "lots")

    def test_non_numeric_instrument_id(self) -> None:
        """Test a corrupt instrument id is an allocation error."""
        with pytest.raises(AllocationError, match="instrument_id for VOO"):
            Allocation("VOO", 10, instrument_id="abc")

    def test_dict_round_trip(self) -> None:
        """Test to_dict/from_dict keep instrument id."""
        allocation = Allocation("VOO", 60, instrument_id=97907157)
        assert Allocation.from_dict(allocation.to_dict()) == allocation


class TestValidateAllocations:
    """Test collection-level validation."""

    def test_sum_above_100_rejected(self) -> None:
        """Test a 100.1% set fails."""
        with pytest.raises(AllocationError, match="exceeds 100%"):
            validate_allocations([Allocation("VOO", 60), Allocation("BND", 40.1)])

    def test_sum_exactly_100_with_float_noise(self) -> None:
        """Test thirds that sum to 100 pass."""
        validate_allocations([Allocation("A", 33.3), Allocation("B", 33.3), Allocation("C", 33.4)])

    def test_duplicate_symbols_case_insensitive(self) -> None:
        """Test duplicates differing only by case fail."""
        with pytest.raises(AllocationError, match="Duplicate"):
            validate_allocations([Allocation("voo", 10), Allocation("VOO", 20)])


class TestAllocationStore:
    """Test store operations on both implementations."""

    def test_empty_defaults(self, store) -> None:
        """Test defaults before anything is stored."""
        assert store.get_allocations() == []
        assert store.get_buffer_percent() == DEFAULT_BUFFER_PERCENT
        assert store.get_selected_account_id() == ""

    def test_set_and_get_allocations(self, store) -> None:
        """Test allocations persist."""
        store.set_allocations([Allocation("VOO", 60), Allocation("BND", 40)])

        assert store.get_allocations() == [Allocation("VOO", 60), Allocation("BND", 40)]
        assert store.get_settings()["last_updated"] != ""

    def test_invalid_set_not_persisted(self, store) -> None:
        """Test a 100.1% set is rejected and the old set kept."""
        store.set_allocations([Allocation("VOO", 100)])

        with pytest.raises(AllocationError):
            store.set_allocations([Allocation("VOO", 60), Allocation("BND", 40.1)])

        assert store.get_allocations() == [Allocation("VOO", 100)]

    def test_upsert_updates_case_insensitive(self, store) -> None:
        """Test upsert replaces by symbol regardless of case."""
        store.set_allocations([Allocation("VOO", 50, instrument_id=97907157)])

        store.upsert_allocation(Allocation("voo", 70))

        assert store.get_allocations() == [Allocation("VOO", 70, instrument_id=97907157)]

    def test_upsert_adds(self, store) -> None:
        """Test upsert appends unknown symbols."""
        store.set_allocations([Allocation("VOO", 50)])
        store.upsert_allocation(Allocation("BND", 50))

        assert [a.symbol for a in store.get_allocations()] == ["VOO", "BND"]

    def test_upsert_over_100_rejected(self, store) -> None:
        """Test upsert is validated as a whole set."""
        store.set_allocations([Allocation("VOO", 80)])

        with pytest.raises(AllocationError):
            store.upsert_allocation(Allocation("BND", 30))

    def test_remove(self, store) -> None:
        """Test removal by symbol."""
        store.set_allocations([Allocation("VOO", 50), Allocation("BND", 50)])

        store.remove_allocation("bnd")

        assert store.get_allocations() == [Allocation("VOO", 50)]

    def test_buffer(self, store) -> None:
        """Test buffer set/get and validation."""
        store.set_buffer_percent(0.1)
        assert store.get_buffer_percent() == 0.1

        with pytest.raises(AllocationError):
            store.set_buffer_percent(1.5)
        with pytest.raises(AllocationError):
            store.set_buffer_percent(-0.01)
        assert store.get_buffer_percent() == 0.1

    def test_selected_account(self, store) -> None:
        """Test selected account persistence."""
        store.set_selected_account_id("U1234567")
        assert store.get_selected_account_id() == "U1234567"

    def test_settings_kept_independently(self, store) -> None:
        """Test writes do not clobber each other."""
        store.set_allocations([Allocation("VOO", 100)])
        store.set_buffer_percent(0.2)
        store.set_selected_account_id("U1")

        settings = store.get_settings()

        assert settings["allocations"] == [{"symbol": "VOO", "target_percent": 100.0}]
        assert settings["buffer_percent"] == 0.2
        assert settings["selected_account_id"] == "U1"


class TestInvalidStoredData:
    """Test corrupt stored data is reported on read."""

    def test_memory_store_invalid_sum(self) -> None:
        """Test invalid seeded allocations raise ConfigurationError."""
        store = InMemoryAllocationStore(
            {"allocations": [{"symbol": "VOO", "target_percent": 80}, {"symbol": "BND", "target_percent": 30}]}
        )

        with pytest.raises(ConfigurationError):
            store.get_allocations()

    def test_memory_store_invalid_buffer(self) -> None:
        """Test invalid seeded buffer raises ConfigurationError."""
        store = InMemoryAllocationStore({"buffer_percent": 3})

        with pytest.raises(ConfigurationError):
            store.get_buffer_percent()

    def test_yaml_not_a_mapping(self, tmp_path: Path) -> None:
        """Test YAML file with a list raises ConfigurationError."""
        path = tmp_path / "allocations.yaml"
        path.write_text("- VOO\n- BND\n")

        with pytest.raises(ConfigurationError, match="must contain a mapping"):
            YamlAllocationStore(path).get_allocations()

    def test_yaml_malformed(self, tmp_path: Path) -> None:
        """Test malformed YAML raises ConfigurationError."""
        path = tmp_path / "allocations.yaml"
        path.write_text("allocations: [unclosed")

        with pytest.raises(ConfigurationError, match="not valid YAML"):
            YamlAllocationStore(path).get_allocations()

    def test_yaml_bad_instrument_id(self, tmp_path: Path) -> None:
        """Test a non-numeric stored instrument id raises ConfigurationError."""
        path = tmp_path / "allocations.yaml"
        path.write_text(
            yaml.safe_dump({"allocations": [{"symbol": "VOO", "target_percent": 50, "instrument_id": "n/a"}]})
        )

        with pytest.raises(ConfigurationError, match="must be an integer"):
            YamlAllocationStore(path).get_allocations()

    def test_yaml_allocations_not_list(self, tmp_path: Path) -> None:
        """Test allocations key with wrong type raises ConfigurationError."""
        path = tmp_path / "allocations.yaml"
        path.write_text(yaml.safe_dump({"allocations": {"VOO": 100}}))

        with pytest.raises(ConfigurationError, match="must be a list"):
            YamlAllocationStore(path).get_allocations()


class TestYamlFile:
    """Test YAML file layout."""

    def test_file_contents(self, tmp_path: Path) -> None:
        """Test the file is plain YAML readable by other tools."""
        path = tmp_path / "allocations.yaml"
        store = YamlAllocationStore(path)
        store.set_allocations([Allocation("VOO", 60, instrument_id=97907157)])
        store.set_buffer_percent(0.05)

        data = yaml.safe_load(path.read_text())

        assert data["allocations"] == [{"symbol": "VOO", "target_percent": 60.0, "instrument_id": 97907157}]
        assert data["buffer_percent"] == 0.05
        assert list(tmp_path.glob("*.tmp")) == []

    def test_failed_write_leaves_no_temp_file(self, tmp_path: Path) -> None:
        """Test a serialization failure keeps the old file and cleans up."""
        path = tmp_path / "allocations.yaml"
        store = YamlAllocationStore(path)
        store.set_buffer_percent(0.1)

        with pytest.raises(yaml.YAMLError):
            store.set_selected_account_id(object())

        assert list(tmp_path.glob("*.tmp")) == []
        assert store.get_buffer_percent() == 0.1
        assert store.get_selected_account_id() == ""
