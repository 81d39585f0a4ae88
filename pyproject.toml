[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rediswire"
version = "0.1.0"
description = "RESP3 request serialisation, incremental response parsing and typed response adapters for Redis"
requires-python = ">=3.10"
dependencies = []
keywords = ["redis", "resp3", "protocol", "parser", "pipelining", "asyncio"]
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
    "Framework :: AsyncIO",
    "Topic :: Database :: Front-Ends",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
rediswire-ping = "rediswire.client:main"

[tool.hatch.build.targets.wheel]
packages = ["rediswire"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
