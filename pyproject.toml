[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "alita"
version = "2.1.3"
description = "Settings, MongoDB storage and localisation for a Telegram group-management bot"
requires-python = ">=3.10"
keywords = ["telegram", "bot", "group management", "mongodb", "moderation", "i18n"]
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
    "Topic :: Communications :: Chat",
    "Topic :: Database :: Front-Ends",
    "Typing :: Typed",
]
dependencies = [
    "pymongo",
    "cachetools",
    "pyyaml",
    "python-dotenv",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["alita"]

[tool.hatch.build.targets.sdist]
include = ["alita", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
