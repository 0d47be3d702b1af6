import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from pymodbus.client import AsyncModbusTcpClient  # type: ignore
from pymodbus.exceptions import ConnectionException, ModbusException, ModbusIOException

from crpi.robots.errors import ModbusExceptionError, TransportError, TransportTimeoutError
from crpi.robots.robotiq.constants import (
  COMMAND_REGISTER_ADDRESS,
  DEFAULT_PORT,
  DEFAULT_UNIT_ID,
  READ_INPUT_REGISTERS,
  REGISTER_COUNT,
  STATUS_REGISTER_ADDRESS,
  WRITE_MULTIPLE_REGISTERS,
)
from crpi.robots.robotiq.registers import (
  CommandRegister,
  StatusRegister,
  from_registers,
  to_registers,
)

logger = logging.getLogger(__name__)


class RobotiqLink:
  """Exchanges register blocks with the gripper over Modbus/TCP.

  The link holds no gripper state: a failed exchange leaves whatever the caller cached untouched.
  It is not safe for concurrent use; callers serialize access (see `GripperSession.lock`).

  Args:
    host: host name or IP address of the gripper. Not used if `client` is given.
    port: Modbus/TCP port.
    unit_id: Modbus unit id of the gripper.
    timeout: seconds to wait for each response.
    client: a Modbus client to use instead of connecting to `host`.
  """

  def __init__(
    self,
    host: Optional[str] = None,
    port: int = DEFAULT_PORT,
    unit_id: int = DEFAULT_UNIT_ID,
    timeout: float = 1.0,
    client: Optional[AsyncModbusTcpClient] = None,
  ):
    if host is None and client is None:
      raise ValueError("Either host or client must be given")
    self.host = host
    self.port = port
    self.unit_id = unit_id
    self.timeout = timeout
    self._client = client

  @property
  def client(self) -> AsyncModbusTcpClient:
    if self._client is None:
      raise RuntimeError("Modbus connection not established")
    return self._client

  async def connect(self):
    """Connect to the gripper.

    Raises:
      TransportError: if the connection cannot be established.
    """

    if self._client is None:
      # a single attempt per request, bounded by `timeout`
      self._client = AsyncModbusTcpClient(self.host, port=self.port, timeout=self.timeout,
                                          retries=0)
    logger.info("Connecting to gripper %s:%s, unit %d", self.host, self.port, self.unit_id)
    await self.client.connect()
    if not self.client.connected:
      raise TransportError(f"Modbus connection to {self.host}:{self.port} failed")

  def close(self):
    if self._client is not None:
      logger.info("Closing connection to gripper %s:%s", self.host, self.port)
      self._client.close()

  async def transmit(self, command: CommandRegister):
    """Write `command` and wait for the acknowledgement.

    Raises:
      TransportTimeoutError: if no acknowledgement arrives within the timeout.
      ModbusExceptionError: if the gripper answers with an exception response.
      TransportError: if the exchange fails otherwise.
    """

    registers = to_registers(command.encode())
    await self._exchange(
      WRITE_MULTIPLE_REGISTERS,
      lambda: self.client.write_registers(COMMAND_REGISTER_ADDRESS, registers, slave=self.unit_id),
    )

  async def poll(self) -> StatusRegister:
    """Read and decode the status register.

    Raises:
      TransportTimeoutError: if no status arrives within the timeout.
      MalformedFrameError: if the status is truncated or not recognized.
    """

    response = await self._exchange(
      READ_INPUT_REGISTERS,
      lambda: self.client.read_input_registers(STATUS_REGISTER_ADDRESS, count=REGISTER_COUNT,
                                               slave=self.unit_id),
    )
    return StatusRegister.decode(from_registers(response.registers))

  async def _exchange(self, function_code: int, request: Callable[[], Awaitable[Any]]) -> Any:
    try:
      # the client enforces `timeout` itself, this is an outer bound
      response = await asyncio.wait_for(request(), timeout=2 * self.timeout)
    except (asyncio.TimeoutError, ModbusIOException) as e:
      raise TransportTimeoutError(
        f"No response to function 0x{function_code:02x} within {self.timeout} s") from e
    except ConnectionException as e:
      raise TransportError(f"Connection to the gripper lost: {e}") from e
    except (ModbusException, OSError) as e:
      raise TransportError(f"Modbus request 0x{function_code:02x} failed: {e!r}") from e

    if response.isError():
      exception_code = getattr(response, "exception_code", 0)
      raise ModbusExceptionError(function_code=function_code, exception_code=exception_code)
    return response
