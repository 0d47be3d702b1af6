from typing import Dict

from crpi.robots.errors import GripperFaultError

# gFLT values. Codes below 0x08 are priority faults, 0x08 and 0x09 minor faults, and codes from 0x0A
# up major faults that need a reset.
fault_descriptions: Dict[int, str] = {
  0x05: "Action delayed, activation (reactivation) must be completed prior to action",
  0x06: "Action delayed, mode change must be completed prior to action",
  0x07: "The activation bit must be set prior to action",
  0x08: "The communication chip is not ready (may be booting)",
  0x09: "Changing mode fault, interference detected on scissor (for less than 20 sec)",
  0x0A: "Automatic release in progress",
  0x0B: "Activation fault, verify that no interference or other error occurred",
  0x0C: "Changing mode fault, interference detected on scissor (for more than 20 sec)",
  0x0D: "Automatic release completed",
  0x0E: "Overcurrent triggered",
  0x0F: "Communication timeout, no communication during at least one second",
}


def describe_fault(fault_code: int) -> str:
  if fault_code == 0:
    return "No fault"
  return fault_descriptions.get(fault_code, f"Unknown fault 0x{fault_code:02x}")


def fault_error(fault_code: int) -> GripperFaultError:
  return GripperFaultError(fault_code=fault_code, description=describe_fault(fault_code))
