[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "appinstalld"
version = "1.0.0"
description = "Building blocks for an application install daemon: call chains, app metadata, ipk package extraction and installer tool control"
requires-python = ">=3.10"
keywords = ["installer", "ipk", "opkg", "package", "appinfo", "daemon"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Software Distribution",
]
dependencies = [
    "jsonschema",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["appinstalld"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
