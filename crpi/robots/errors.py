from typing import Optional


class CanonError(Exception):
  """ Base class for errors raised by robot backends. The `Robot` frontend converts these into a
  `CanonReturn`. """


class RejectedError(CanonError):
  """ The command was not accepted. Retrying without changing state will be rejected again. """


class CapabilityNotSupportedError(RejectedError):
  """ The operation is part of the shared robot interface, but is not implemented by this
  robot. """

  def __init__(self, operation: str, robot: str):
    super().__init__(f"{operation} is not supported by {robot}")
    self.operation = operation
    self.robot = robot


class PreconditionError(RejectedError):
  """ The robot is not in a state in which the command can be accepted, e.g. it is not activated
  yet. """


class UnknownParameterError(RejectedError):
  """ `set_parameter` was called with a name the robot does not know. """


class CommandFailedError(CanonError):
  """ The command was accepted but could not be executed. """


class TransportError(CommandFailedError):
  """ The exchange with the device failed. The cached device state is left as it was. """


class TransportTimeoutError(TransportError):
  """ The device did not answer within the timeout. """


class MalformedFrameError(TransportError):
  """ A frame read from the device was truncated or not recognized. It is discarded whole. """


class ModbusExceptionError(TransportError):
  """ The device answered with a Modbus exception response. """

  def __init__(self, function_code: int, exception_code: int):
    super().__init__(
      f"Modbus exception 0x{exception_code:02x} for function 0x{function_code:02x}")
    self.function_code = function_code
    self.exception_code = exception_code


class GripperFaultError(CommandFailedError):
  """ The gripper reports a fault. It has to be reset (deactivated and activated again). """

  def __init__(self, fault_code: int, description: Optional[str] = None):
    message = f"Gripper fault 0x{fault_code:02x}"
    if description is not None:
      message += f": {description}"
    super().__init__(message)
    self.fault_code = fault_code
    self.description = description
