"""
Tests for StateStore persistence in port_leases.functions.state.

Covers the empty-state default, schema validation of the JSON layout, and
atomic writes through a temporary file in the state directory.
"""

import json
import os
from unittest.mock import patch

import pytest

from port_leases.errors import CorruptStateError, StorageError
from port_leases.functions.state import StateStore, state_from_json, state_to_json
from port_leases.models.models import AllocationRecord, RootState


@pytest.fixture
def store(state_dir):
    return StateStore(state_dir, low=10000)


class TestStateStoreRead:
    @pytest.mark.light
    def test_missing_file_returns_empty_state(self, store):
        state = store.read()
        assert state.next_hint == 10000
        assert state.allocations == {}

    @pytest.mark.light
    def test_reads_persisted_layout(self, store):
        store.path.write_text(
            json.dumps(
                {
                    "next_hint": 10003,
                    "allocations": {"10000": {"size": 3, "expires_at": 1700000120}},
                }
            )
        )

        state = store.read()

        assert state.next_hint == 10003
        assert state.allocations == {10000: AllocationRecord(10000, 3, 1700000120)}

    @pytest.mark.light
    @pytest.mark.parametrize(
        ("content", "expected_error"),
        [
            ("{not json", "not valid JSON"),
            ("[]", "must contain a JSON object"),
            ('{"allocations": {}}', "next_hint"),
            ('{"next_hint": "10000", "allocations": {}}', "next_hint"),
            ('{"next_hint": 10000}', "allocations must be a JSON object"),
            ('{"next_hint": 10000, "allocations": []}', "allocations must be a JSON object"),
            ('{"next_hint": 10000, "allocations": {"abc": {"size": 1, "expires_at": 1}}}', "not a port number"),
            ('{"next_hint": 10000, "allocations": {"10000": 5}}', "must be an object"),
            ('{"next_hint": 10000, "allocations": {"10000": {"size": 0, "expires_at": 1}}}', "invalid size"),
            ('{"next_hint": 10000, "allocations": {"10000": {"size": 2}}}', "invalid expires_at"),
            ('{"next_hint": 10000, "allocations": {"10000": {"size": true, "expires_at": 1}}}', "invalid size"),
            (
                '{"next_hint": 10000, "allocations": {'
                '"10000": {"size": 4, "expires_at": 1}, "10002": {"size": 2, "expires_at": 1}}}',
                "overlaps allocation 10000-10003",
            ),
        ],
    )
    def test_corrupt_file_raises_error(self, store, content, expected_error):
        """A present but unparsable state file is never silently reset."""
        store.path.write_text(content)

        with pytest.raises(CorruptStateError, match=expected_error):
            store.read()

        assert store.path.read_text() == content

    @pytest.mark.light
    def test_invalid_utf8_raises_corrupt_state(self, store):
        content = b"\xff\xfe{garbage"
        store.path.write_bytes(content)

        with pytest.raises(CorruptStateError, match="not valid UTF-8"):
            store.read()

        assert store.path.read_bytes() == content

    @pytest.mark.light
    def test_adjacent_allocations_are_valid(self, store):
        store.path.write_text(
            json.dumps(
                {
                    "next_hint": 10006,
                    "allocations": {
                        "10000": {"size": 4, "expires_at": 1},
                        "10004": {"size": 2, "expires_at": 1},
                    },
                }
            )
        )

        assert sorted(store.read().allocations) == [10000, 10004]

    @pytest.mark.light
    def test_corrupt_state_is_storage_error(self, store):
        store.path.write_text("")
        with pytest.raises(StorageError):
            store.read()

    @pytest.mark.light
    def test_unreadable_path_raises_storage_error(self, store):
        """A directory where the state file should be is an I/O failure, not corruption."""
        store.path.mkdir()
        with pytest.raises(StorageError, match="Failed to read state file") as exc_info:
            store.read()
        assert not isinstance(exc_info.value, CorruptStateError)


class TestStateStoreWrite:
    @pytest.mark.light
    def test_write_then_read(self, store):
        state = RootState(
            next_hint=10007,
            allocations={
                10003: AllocationRecord(10003, 4, 200),
                10000: AllocationRecord(10000, 3, 100),
            },
        )

        store.write(state)

        assert store.read() == state

    @pytest.mark.light
    def test_written_layout_orders_bases(self, store):
        store.write(
            RootState(
                next_hint=10007,
                allocations={
                    10003: AllocationRecord(10003, 4, 200),
                    10000: AllocationRecord(10000, 3, 100),
                },
            )
        )

        data = json.loads(store.path.read_text())

        assert data["next_hint"] == 10007
        assert list(data["allocations"]) == ["10000", "10003"]
        assert data["allocations"]["10003"] == {"size": 4, "expires_at": 200}

    @pytest.mark.light
    def test_write_leaves_no_temp_files(self, store, state_dir):
        store.write(RootState(next_hint=10000))
        assert os.listdir(state_dir) == ["allocations.json"]

    @pytest.mark.light
    def test_failed_rename_keeps_previous_file(self, store, state_dir):
        """If the rename fails, the old state survives and the temp file is removed."""
        store.write(RootState(next_hint=10001))

        with patch("port_leases.functions.state.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StorageError, match="disk full"):
                store.write(RootState(next_hint=10005))

        assert store.read().next_hint == 10001
        assert os.listdir(state_dir) == ["allocations.json"]

    @pytest.mark.light
    def test_missing_directory_raises_storage_error(self, tmp_path):
        store = StateStore(tmp_path / "missing", low=10000)
        with pytest.raises(StorageError, match="Failed to write state file"):
            store.write(RootState(next_hint=10000))


class TestJsonCodec:
    @pytest.mark.pure
    def test_round_trip(self):
        state = RootState(next_hint=10010, allocations={10000: AllocationRecord(10000, 10, 5)})
        assert state_from_json(state_to_json(state)) == state
