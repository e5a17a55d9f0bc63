[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "flowpump"
version = "0.1.0"
description = "Closed-loop flow control for stepper-driven peristaltic pumps: filters, PID, gain scheduling, calibration and device models"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "flow control",
    "pid",
    "peristaltic pump",
    "stepper motor",
    "flow sensor",
    "gain scheduling",
    "calibration",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Interface Engine/Protocol Translator",
    "Topic :: Scientific/Engineering",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["flowpump"]

[tool.hatch.build.targets.sdist]
include = ["flowpump", "tests", "pyproject.toml", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
