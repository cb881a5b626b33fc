[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sharemem"
version = "0.1.0"
description = "Named shared-memory blocks with a CRC-64 header, guarded by file-based reader/writer locks"
requires-python = ">=3.10"
dependencies = [
    "portalocker",
]
keywords = ["shared memory", "ipc", "file lock", "crc64", "reader writer lock"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
sharemem = "sharemem.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["sharemem"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
