[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "notegraph"
version = "0.1.0"
description = "SQLite-backed note storage, a SQLite schema-migration driver and note tool handlers"
requires-python = ">=3.10"
dependencies = []
keywords = ["notes", "sqlite", "migrations", "full-text-search", "tools"]
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
    "Topic :: Database :: Front-Ends",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["notegraph"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
