from __future__ import annotations
import json
from pathlib import Path

_DEFAULTS = {
    "device_id": 0,
    "dump_timeout_s": 5.0,
    "default_bank": "A",
    "default_program": 1,
}

class AppConfig:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "blofeld-patchmasta" / "config.json"
        self.device_id: int = _DEFAULTS["device_id"]
        self.dump_timeout_s: float = _DEFAULTS["dump_timeout_s"]
        self.default_bank: str = _DEFAULTS["default_bank"]
        self.default_program: int = _DEFAULTS["default_program"]
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text())
            for key in _DEFAULTS:
                if key in data:
                    setattr(self, key, data[key])
        except (json.JSONDecodeError, OSError):
            pass

    def save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data = {key: getattr(self, key) for key in _DEFAULTS}
        self._path.write_text(json.dumps(data, indent=2))
