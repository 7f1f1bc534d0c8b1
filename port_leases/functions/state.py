import json
import logging
import os
import tempfile
from pathlib import Path

from ..constants import STATE_FILE_NAME
from ..errors import CorruptStateError, StorageError
from ..models.models import AllocationRecord, RootState


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _parse_record(key: str, entry) -> AllocationRecord:
    """Build a record from one `allocations` entry of the state file."""
    try:
        base = int(key)
    except ValueError as err:
        raise CorruptStateError(f"Allocation key {key!r} is not a port number") from err

    if not isinstance(entry, dict):
        raise CorruptStateError(f"Allocation {key} must be an object, got {type(entry).__name__}")

    size = entry.get("size")
    expires_at = entry.get("expires_at")
    if not _is_int(size) or size <= 0:
        raise CorruptStateError(f"Allocation {key} has invalid size {size!r}")
    if not _is_int(expires_at):
        raise CorruptStateError(f"Allocation {key} has invalid expires_at {expires_at!r}")

    return AllocationRecord(base=base, size=size, expires_at=expires_at)


def state_from_json(raw: str) -> RootState:
    """
    Parse the persisted layout into a RootState.

    Raises:
        CorruptStateError: If the text is not JSON or does not match
            {"next_hint": int, "allocations": {"<base>": {"size": int, "expires_at": int}}},
            or two allocations overlap
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as err:
        raise CorruptStateError(f"State file is not valid JSON: {err}") from err

    if not isinstance(data, dict):
        raise CorruptStateError("State file must contain a JSON object")

    next_hint = data.get("next_hint")
    if not _is_int(next_hint):
        raise CorruptStateError(f"State next_hint {next_hint!r} is not an integer")

    allocations = data.get("allocations")
    if not isinstance(allocations, dict):
        raise CorruptStateError("State allocations must be a JSON object")

    records = {}
    for key, entry in allocations.items():
        record = _parse_record(key, entry)
        records[record.base] = record

    ordered = sorted(records.values(), key=lambda record: record.base)
    for previous, current in zip(ordered, ordered[1:]):
        if current.base < previous.end:
            raise CorruptStateError(
                f"Allocation {current.base} overlaps allocation {previous.base}-{previous.end - 1}"
            )

    return RootState(next_hint=next_hint, allocations=records)


def state_to_json(state: RootState) -> str:
    payload = {
        "next_hint": state.next_hint,
        "allocations": {
            str(record.base): {"size": record.size, "expires_at": record.expires_at}
            for record in state.records()
        },
    }
    return json.dumps(payload, indent=2)


class StateStore:
    """
    Durable allocation state kept as a single JSON file.

    The store holds no state between calls. Callers are expected to hold the
    PortLock around read() followed by write().
    """

    def __init__(self, state_dir: Path, low: int):
        self.state_dir = Path(state_dir)
        self.path = self.state_dir / STATE_FILE_NAME
        self.low = low

    def read(self) -> RootState:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return RootState(next_hint=self.low)
        except UnicodeDecodeError as err:
            logging.error(f"Corrupt state file {self.path}: {err}")
            raise CorruptStateError(f"{self.path}: state file is not valid UTF-8: {err}") from err
        except OSError as err:
            raise StorageError(f"Failed to read state file {self.path}: {err}") from err

        try:
            return state_from_json(raw)
        except CorruptStateError as err:
            logging.error(f"Corrupt state file {self.path}: {err}")
            raise CorruptStateError(f"{self.path}: {err}") from err

    def write(self, state: RootState) -> None:
        """Persist the state atomically: temp file in the same directory, then rename."""
        data = state_to_json(state)
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=self.state_dir,
                prefix=f".{STATE_FILE_NAME}.",
                suffix=".tmp",
                delete=False,
            ) as tmp_file:
                tmp_name = tmp_file.name
                tmp_file.write(data)
                tmp_file.flush()
                os.fsync(tmp_file.fileno())
            os.replace(tmp_name, self.path)
        except OSError as err:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Failed to write state file {self.path}: {err}") from err
