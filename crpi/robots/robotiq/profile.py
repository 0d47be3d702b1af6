import configparser
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from crpi.robots.robotiq.constants import MAX_VALUE, MIN_VALUE, Axis, GripMode
from crpi.robots.robotiq.registers import CommandRegister, saturate

_TRUE_STRINGS = ("1", "true", "yes", "on")
_FALSE_STRINGS = ("0", "false", "no", "off")


def parse_bool(value: Any) -> bool:
  if isinstance(value, bool):
    return value
  if isinstance(value, str) and value.strip().lower() in _TRUE_STRINGS + _FALSE_STRINGS:
    return value.strip().lower() in _TRUE_STRINGS
  if isinstance(value, int):
    return bool(value)
  raise ValueError(f"Not a boolean: {value!r}")


def parse_mode(value: Any) -> GripMode:
  """Parse a grip mode given by name ("pinch") or number (1)."""
  if isinstance(value, str):
    if value.strip().isdigit():
      return GripMode(int(value))
    try:
      return GripMode[value.strip().upper()]
    except KeyError as e:
      raise ValueError(f"Not a grip mode: {value!r}") from e
  return GripMode(value)


def _to_range(value: Any) -> Tuple[int, int]:
  if isinstance(value, str):
    value = value.split(",")
  opened, closed = (int(v) for v in value)
  return (opened, closed)


def _default_position_ranges() -> Tuple[Tuple[int, int], ...]:
  return tuple((MIN_VALUE, MAX_VALUE) for _ in GripMode)


@dataclass(frozen=True)
class GripperProfile:
  """A named set of defaults applied to the command register when the gripper is activated.

  Profiles are immutable; a session loads one when it is created and uses it until it ends.

  Attributes:
    name: name of the profile.
    mode: grip mode selected on activation.
    speed: finger speed, 0-255.
    force: finger force, 0-255.
    scissor_speed: scissor speed, 0-255.
    scissor_force: scissor force, 0-255.
    auto_center: whether automatic centering is enabled.
    individual_finger_control: whether fingers A, B and C are commanded individually.
    individual_scissor_control: whether the scissor axis is commanded individually.
    position_ranges: (open, closed) finger positions for each grip mode, indexed by mode. Used to
      translate a tool percentage into a position.
  """

  name: str
  mode: GripMode = GripMode.BASIC
  speed: int = MAX_VALUE
  force: int = 150
  scissor_speed: int = MAX_VALUE
  scissor_force: int = 150
  auto_center: bool = False
  individual_finger_control: bool = False
  individual_scissor_control: bool = False
  position_ranges: Tuple[Tuple[int, int], ...] = field(default_factory=_default_position_ranges)

  def __post_init__(self):
    object.__setattr__(self, "mode", GripMode(self.mode))
    for attr in ("speed", "force", "scissor_speed", "scissor_force"):
      object.__setattr__(self, attr, saturate(getattr(self, attr)))
    if len(self.position_ranges) != len(GripMode):
      raise ValueError(f"Expected a position range for each of the {len(GripMode)} grip modes")
    for opened, closed in self.position_ranges:
      if not (MIN_VALUE <= opened <= MAX_VALUE and MIN_VALUE <= closed <= MAX_VALUE):
        raise ValueError(f"Position range ({opened}, {closed}) is outside [0, 255]")

  def position_range(self, mode: GripMode) -> Tuple[int, int]:
    return self.position_ranges[mode]

  def position_for(self, mode: GripMode, percent: float) -> int:
    """Translate `percent` (0 is open, 1 is closed) into a position in the range of `mode`."""
    opened, closed = self.position_range(mode)
    percent = max(0.0, min(1.0, percent))
    return saturate(opened + percent * (closed - opened))

  def apply(self, command: CommandRegister) -> CommandRegister:
    """Stage the mode, options, speeds and forces of this profile on `command`."""
    command = command.with_flags(
      mode=self.mode,
      auto_center=self.auto_center,
      individual_finger_control=self.individual_finger_control,
      individual_scissor_control=self.individual_scissor_control,
    )
    command = command.with_fingers(speed=self.speed, force=self.force)
    return command.with_target(Axis.SCISSOR, speed=self.scissor_speed, force=self.scissor_force)

  @classmethod
  def from_dict(cls, name: str, d: Dict[str, Any]) -> "GripperProfile":
    """Create a profile from a (possibly string-valued) dictionary, as found in JSON or INI files.

    Position ranges are given as `position_range_<mode> = open,closed` or as a
    `position_ranges` mapping from mode name to `[open, closed]`.
    """

    d = dict(d)
    ranges = list(_default_position_ranges())
    for mode_name, value in dict(d.pop("position_ranges", {})).items():
      ranges[parse_mode(mode_name)] = _to_range(value)
    for key in [k for k in d if k.startswith("position_range_")]:
      ranges[parse_mode(key[len("position_range_"):])] = _to_range(d.pop(key))

    kwargs: Dict[str, Any] = {}
    for key, value in d.items():
      if key == "mode":
        kwargs[key] = parse_mode(value)
      elif key in ("speed", "force", "scissor_speed", "scissor_force"):
        kwargs[key] = int(value)
      elif key in ("auto_center", "individual_finger_control", "individual_scissor_control"):
        kwargs[key] = parse_bool(value)
      else:
        raise ValueError(f"Unknown key in gripper profile {name!r}: {key!r}")
    return cls(name=name, position_ranges=tuple(ranges), **kwargs)

  def as_dict(self) -> Dict[str, Any]:
    return {
      "mode": self.mode.name.lower(),
      "speed": self.speed,
      "force": self.force,
      "scissor_speed": self.scissor_speed,
      "scissor_force": self.scissor_force,
      "auto_center": self.auto_center,
      "individual_finger_control": self.individual_finger_control,
      "individual_scissor_control": self.individual_scissor_control,
      "position_ranges": {mode.name.lower(): list(self.position_ranges[mode]) for mode in GripMode},
    }


BUILTIN_PROFILES: Dict[str, GripperProfile] = {
  "basic": GripperProfile(name="basic", mode=GripMode.BASIC),
  "pinch": GripperProfile(name="pinch", mode=GripMode.PINCH),
  "wide": GripperProfile(name="wide", mode=GripMode.WIDE),
  "scissor": GripperProfile(name="scissor", mode=GripMode.SCISSOR),
}


def _read_profiles(path: Path) -> Dict[str, Dict[str, Any]]:
  if path.suffix == ".json":
    with open(path, "r", encoding="utf-8") as f:
      data = json.load(f)
    if not isinstance(data, dict):
      raise ValueError(f"{path} must contain an object of profiles")
    return data
  if path.suffix == ".ini":
    parser = configparser.ConfigParser()
    with open(path, "r", encoding="utf-8") as f:
      parser.read_file(f)
    return {section: dict(parser[section]) for section in parser.sections()}
  raise ValueError(f"Unsupported profile file format: {path.suffix}")


def load_profile(path: Union[str, Path], name: str) -> GripperProfile:
  """Load the profile called `name` from a JSON or INI file.

  In JSON files, profiles are objects keyed by name. In INI files, each section is a profile.

  Raises:
    KeyError: if the file has no profile called `name`.
  """

  profiles = _read_profiles(Path(path))
  if name not in profiles:
    raise KeyError(f"No profile {name!r} in {path}, available: {sorted(profiles)}")
  return GripperProfile.from_dict(name, profiles[name])


def get_profile(name: str, path: Optional[Union[str, Path]] = None) -> GripperProfile:
  """Look up a profile in `path`, or among the built-in profiles if `path` is None."""
  if path is not None:
    return load_profile(path, name)
  if name not in BUILTIN_PROFILES:
    raise KeyError(f"No built-in profile {name!r}, available: {sorted(BUILTIN_PROFILES)}")
  return BUILTIN_PROFILES[name]
