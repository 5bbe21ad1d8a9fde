"""
Runtime Configuration
======================
Everything that used to be baked into a particular build of the
controller firmware: transport mode, listening endpoints, scan
rate, and data log location.

Sources, lowest to highest precedence:
  1. Dataclass defaults
  2. JSON file (PLCConfig.load)
  3. Environment (PLC_MODE, PLC_CONTROL_PORT, PLC_MGMT_PORT, ...)
  4. Command-line flags (load() overrides, applied by main.py)

Ports left unset follow the transport mode, including after
update("transport_mode", ...) and a save()/load() round trip.
"""

from dataclasses import dataclass, field, fields
import json
import os
from pathlib import Path
from typing import Optional


TRANSPORT_MODES = ("physical", "virtual")

# (control port, management port) per deployment target
_MODE_PORTS = {
    "physical": (9001, 8001),   # Raspberry Pi on the plant network
    "virtual": (9901, 8901),    # VM, shifted to avoid conflicts
}

_PORT_FIELDS = ("control_port", "management_port")
_NULLABLE_FIELDS = _PORT_FIELDS + ("stop_marker_path", "random_seed")

_ENV_KEYS = {
    "PLC_MODE": "transport_mode",
    "PLC_CONTROL_PORT": "control_port",
    "PLC_MGMT_PORT": "management_port",
    "PLC_CYCLE_MS": "cycle_period_ms",
    "PLC_LOG_PATH": "log_path",
    "PLC_STOP_MARKER": "stop_marker_path",
}


@dataclass
class PLCConfig:
    """Runtime configuration for the legacy PLC."""

    # ── Deployment ───────────────────────────────────────────
    transport_mode: str = "physical"
    bind_host: str = "0.0.0.0"
    control_port: Optional[int] = None      # None = mode default
    management_port: Optional[int] = None   # None = mode default
    control_backlog: int = 1                # one connection, typical of legacy
    management_backlog: int = 5

    # ── Scan Cycle ───────────────────────────────────────────
    cycle_period_ms: int = 100
    poll_interval_ms: float = 1.0
    status_interval_cycles: int = 50

    # ── Data Log ─────────────────────────────────────────────
    log_path: str = "/tmp/plc_data.log"
    log_interval_cycles: int = 10

    # ── Input Simulation ─────────────────────────────────────
    stop_marker_path: Optional[str] = "/tmp/plc_estop"
    random_seed: Optional[int] = None

    _config_path: str = field(
        default="config/plc.json", repr=False
    )

    def __post_init__(self):
        if self.transport_mode not in TRANSPORT_MODES:
            raise ValueError(
                f"Unknown transport mode {self.transport_mode!r} "
                f"(expected one of {', '.join(TRANSPORT_MODES)})"
            )
        self._resolve_ports()
        for name in _PORT_FIELDS:
            port = getattr(self, name)
            if not 0 <= port <= 65535:
                raise ValueError(f"{name} out of range: {port}")
        if self.cycle_period_ms <= 0:
            raise ValueError("cycle_period_ms must be positive")
        if self.log_interval_cycles <= 0:
            raise ValueError("log_interval_cycles must be positive")
        if self.management_backlog < 3:
            raise ValueError("management_backlog must be at least 3")

    def _resolve_ports(self):
        """Fill unset ports from the transport mode, remembering which ones."""
        inherited = getattr(self, "_mode_ports", set())
        for name, port in zip(_PORT_FIELDS, _MODE_PORTS[self.transport_mode]):
            if getattr(self, name) is None or name in inherited:
                setattr(self, name, port)
                inherited.add(name)
        self._mode_ports = inherited

    @property
    def cycle_period_sec(self) -> float:
        return self.cycle_period_ms / 1000.0

    @property
    def realistic_inputs(self) -> bool:
        """Virtual deployments get the smoother simulated plant."""
        return self.transport_mode == "virtual"

    @property
    def control_endpoint(self) -> str:
        return f"{self.bind_host}:{self.control_port}"

    @property
    def management_endpoint(self) -> str:
        return f"{self.bind_host}:{self.management_port}"

    # ── Loading / Persistence ────────────────────────────────

    @classmethod
    def for_mode(cls, mode: str, **overrides) -> "PLCConfig":
        """Defaults for a deployment target."""
        return cls(transport_mode=mode, **overrides)

    @classmethod
    def load(
        cls,
        path: str = None,
        environ: dict = None,
        overrides: dict = None,
    ) -> "PLCConfig":
        """Load JSON settings, then apply environment and explicit overrides."""
        filepath = Path(path or "config/plc.json")
        data = {}
        if filepath.exists():
            data = json.loads(filepath.read_text())
            if not isinstance(data, dict):
                raise ValueError(f"{filepath}: expected a JSON object")
        data.update(cls._read_env(environ))
        if overrides:
            data.update({k: v for k, v in overrides.items() if v is not None})
        return cls._from_mapping(data)

    @classmethod
    def from_env(cls, environ: dict = None) -> "PLCConfig":
        """Defaults plus environment overrides only."""
        return cls._from_mapping(cls._read_env(environ))

    @classmethod
    def _read_env(cls, environ: dict = None) -> dict:
        env = os.environ if environ is None else environ
        return {
            key: env[var] for var, key in _ENV_KEYS.items()
            if env.get(var)
        }

    @classmethod
    def _from_mapping(cls, data: dict) -> "PLCConfig":
        kwargs = {}
        for f in fields(cls):
            if f.name.startswith("_") or f.name not in data:
                continue
            kwargs[f.name] = _coerce(f.name, f.default, data[f.name])
        return cls(**kwargs)

    def save(self, path: str = None):
        """Persist current settings to JSON."""
        filepath = Path(path or self._config_path)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        filepath.write_text(json.dumps(self.as_dict(), indent=2))

    def update(self, key: str, value) -> bool:
        """Update a single setting, returning True on success."""
        defaults = {f.name: f.default for f in fields(self) if not f.name.startswith("_")}
        if key not in defaults:
            return False
        previous = getattr(self, key)
        previous_mode_ports = set(self._mode_ports)
        try:
            new_value = _coerce(key, defaults[key], value)
            self._mode_ports.discard(key)
            setattr(self, key, new_value)
            self.__post_init__()
            return True
        except ValueError:
            setattr(self, key, previous)
            self._mode_ports = previous_mode_ports
            return False

    def as_dict(self) -> dict:
        """Return all settings as a flat dictionary; mode-default ports are None."""
        data = {
            f.name: getattr(self, f.name) for f in fields(self)
            if not f.name.startswith("_")
        }
        for name in self._mode_ports:
            data[name] = None
        return data


def _coerce(name: str, default, value):
    """Convert value to the type of a setting's default."""
    if value is None:
        if name in _NULLABLE_FIELDS:
            return None
        raise ValueError(f"{name} may not be null")
    # fields without a typed default are all optional integers
    target = int if default is None else type(default)
    if target is int and isinstance(value, bool):
        raise ValueError(f"{name}: invalid value {value!r}")
    try:
        return target(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name}: invalid value {value!r}") from None
