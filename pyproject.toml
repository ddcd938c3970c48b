[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "udscal"
version = "0.1.0"
description = "UDS over CAN (ISO 15765-2) transport, diagnostic client state and EEPROM calibration codec"
requires-python = ">=3.10"
dependencies = []
keywords = ["can", "uds", "iso-15765", "iso-14229", "diagnostics", "calibration", "eeprom"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Embedded Systems :: Controller Area Network (CAN)",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["udscal"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
