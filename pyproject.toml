[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rtumaster"
version = "0.1.0"
description = "Modbus RTU master for serial lines, with servo-drive extension function codes"
requires-python = ">=3.10"
dependencies = [
    "pyserial",
]
keywords = ["modbus", "rtu", "serial", "master", "servo", "crc16"]
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
    "Topic :: Software Development :: Embedded Systems",
    "Topic :: Terminals :: Serial",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["rtumaster"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
