import dataclasses
import json
import os
import tempfile
import unittest

from crpi.robots.robotiq.constants import Axis, GripMode
from crpi.robots.robotiq.profile import (
  BUILTIN_PROFILES,
  GripperProfile,
  get_profile,
  load_profile,
  parse_bool,
  parse_mode,
)
from crpi.robots.robotiq.registers import AxisTarget, CommandRegister


class TestGripperProfile(unittest.TestCase):
  def test_builtin_profiles(self):
    self.assertEqual(set(BUILTIN_PROFILES), {"basic", "pinch", "wide", "scissor"})
    for name, profile in BUILTIN_PROFILES.items():
      self.assertEqual(profile.name, name)
      self.assertEqual(profile.mode, GripMode[name.upper()])
    self.assertIs(get_profile("pinch"), BUILTIN_PROFILES["pinch"])

  def test_unknown_builtin(self):
    with self.assertRaises(KeyError):
      get_profile("tentacle")

  def test_immutable(self):
    profile = GripperProfile(name="test")
    with self.assertRaises(dataclasses.FrozenInstanceError):
      profile.speed = 10  # type: ignore[misc]

  def test_values_saturate(self):
    profile = GripperProfile(name="test", speed=300, force=-1)
    self.assertEqual((profile.speed, profile.force), (255, 0))

  def test_invalid_position_range(self):
    with self.assertRaises(ValueError):
      GripperProfile(name="test", position_ranges=((0, 255),))
    with self.assertRaises(ValueError):
      GripperProfile(name="test", position_ranges=((0, 256),) * 4)

  def test_position_for(self):
    profile = GripperProfile(
      name="test",
      position_ranges=((0, 255), (100, 200), (255, 0), (10, 110)),
    )
    self.assertEqual(profile.position_for(GripMode.BASIC, 0), 0)
    self.assertEqual(profile.position_for(GripMode.BASIC, 1), 255)
    self.assertEqual(profile.position_for(GripMode.PINCH, 0.5), 150)
    self.assertEqual(profile.position_for(GripMode.WIDE, 0.0), 255)
    self.assertEqual(profile.position_for(GripMode.SCISSOR, 0.25), 35)
    self.assertEqual(profile.position_for(GripMode.BASIC, 2), 255)

  def test_apply(self):
    profile = GripperProfile(name="test", mode=GripMode.WIDE, speed=100, force=50,
                             scissor_speed=20, scissor_force=10, auto_center=True,
                             individual_finger_control=True)
    command = profile.apply(CommandRegister(activate=True))
    self.assertTrue(command.activate)
    self.assertEqual(command.mode, GripMode.WIDE)
    self.assertTrue(command.auto_center)
    self.assertTrue(command.individual_finger_control)
    self.assertFalse(command.individual_scissor_control)
    self.assertEqual(command.target(Axis.FINGER_C), AxisTarget(position=0, speed=100, force=50))
    self.assertEqual(command.target(Axis.SCISSOR), AxisTarget(position=0, speed=20, force=10))

  def test_from_dict(self):
    profile = GripperProfile.from_dict("soft", {
      "mode": "pinch",
      "speed": "120",
      "force": 20,
      "auto_center": "yes",
      "position_range_pinch": "110,200",
    })
    self.assertEqual(profile.mode, GripMode.PINCH)
    self.assertEqual(profile.speed, 120)
    self.assertEqual(profile.force, 20)
    self.assertTrue(profile.auto_center)
    self.assertEqual(profile.position_range(GripMode.PINCH), (110, 200))
    self.assertEqual(profile.position_range(GripMode.BASIC), (0, 255))

  def test_from_dict_unknown_key(self):
    with self.assertRaises(ValueError):
      GripperProfile.from_dict("soft", {"sped": 10})

  def test_as_dict_round_trip(self):
    profile = GripperProfile(name="soft", mode=GripMode.SCISSOR, force=30,
                             position_ranges=((0, 255), (0, 255), (0, 255), (20, 60)))
    self.assertEqual(GripperProfile.from_dict("soft", profile.as_dict()), profile)

  def test_parse_helpers(self):
    self.assertTrue(parse_bool("On"))
    self.assertFalse(parse_bool("0"))
    self.assertTrue(parse_bool(1))
    with self.assertRaises(ValueError):
      parse_bool("maybe")
    self.assertEqual(parse_mode("Wide"), GripMode.WIDE)
    self.assertEqual(parse_mode("3"), GripMode.SCISSOR)
    self.assertEqual(parse_mode(1), GripMode.PINCH)
    with self.assertRaises(ValueError):
      parse_mode("fist")
    with self.assertRaises(ValueError):
      parse_mode(7)


class TestLoadProfile(unittest.TestCase):
  def setUp(self):
    self.tmp_dir = tempfile.TemporaryDirectory()  # pylint: disable=consider-using-with

  def tearDown(self):
    self.tmp_dir.cleanup()

  def test_load_json(self):
    path = os.path.join(self.tmp_dir.name, "profiles.json")
    with open(path, "w", encoding="utf-8") as f:
      json.dump({
        "egg": {"mode": "basic", "force": 0, "position_ranges": {"basic": [0, 120]}},
        "bolt": {"mode": "pinch", "force": 255},
      }, f)

    egg = load_profile(path, "egg")
    self.assertEqual(egg.name, "egg")
    self.assertEqual(egg.force, 0)
    self.assertEqual(egg.position_range(GripMode.BASIC), (0, 120))
    self.assertEqual(get_profile("bolt", path).mode, GripMode.PINCH)

  def test_load_ini(self):
    path = os.path.join(self.tmp_dir.name, "profiles.ini")
    with open(path, "w", encoding="utf-8") as f:
      f.write("[egg]\nmode = basic\nforce = 0\nindividual_scissor_control = true\n"
              "position_range_basic = 0,120\n")

    egg = load_profile(path, "egg")
    self.assertEqual(egg.force, 0)
    self.assertTrue(egg.individual_scissor_control)
    self.assertEqual(egg.position_range(GripMode.BASIC), (0, 120))

  def test_missing_profile(self):
    path = os.path.join(self.tmp_dir.name, "profiles.json")
    with open(path, "w", encoding="utf-8") as f:
      json.dump({"egg": {}}, f)
    with self.assertRaises(KeyError):
      load_profile(path, "bolt")

  def test_unsupported_format(self):
    path = os.path.join(self.tmp_dir.name, "profiles.yaml")
    with open(path, "w", encoding="utf-8") as f:
      f.write("egg: {}\n")
    with self.assertRaises(ValueError):
      load_profile(path, "egg")


if __name__ == "__main__":
  unittest.main()
