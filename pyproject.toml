[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "magnets"
version = "0.1.0"
description = "Anime show catalogue tooling: season and format models, database dump and load, prefix search and airing-schedule diffing"
requires-python = ">=3.11"
dependencies = []
keywords = ["anime", "anilist", "postgres", "dump", "schedule", "prefix-search"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["magnets"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 88
target-version = "py311"

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
