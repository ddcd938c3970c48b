"""UDS-over-CAN transport, diagnostic client state and EEPROM calibration codec."""

__version__ = "0.1.0"