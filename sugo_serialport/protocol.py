"""Protocol constants for sugo-serialport.

Contains:
- Package identity used in the capability descriptor
- Event names relayed from the driver
- Required host commands checked by assert
- Driver defaults and the TRACE logging level
"""

import logging
import os

# TRACE logging level (below DEBUG)
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

NAME = "sugo-serialport"
VERSION = "1.0.0"
DESCRIPTION = "SUGOS adapter to access serial ports"

NOT_CONNECTED = "Serialport is not connected"

# Events forwarded from the driver, in subscription order
PIPE_EVENTS = ("data", "error", "close", "disconnect", "open")

# Commands that must exist on the host (checked by assert)
REQUIRED_BINS = tuple(
    b for b in os.environ.get("SUGO_SERIALPORT_REQUIRED_BINS", "python3").split(",") if b
)

DEFAULT_BAUDRATE = 9600

# Reader thread polls with this timeout so close() can stop it promptly
READ_POLL_S = 0.1
READ_CHUNK_SIZE = 4096
