[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "zbplugin"
version = "0.1.0"
description = "Chat bot plugin toolkit: group reminders and management, MIDI tunes, avatar memes, web lookups and small local stores"
requires-python = ">=3.10"
keywords = ["chat", "bot", "group-management", "reminder", "cron", "midi", "gif", "sqlite"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Natural Language :: Chinese (Simplified)",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Chat",
]
dependencies = [
    "requests",
    "mido",
    "pillow",
    "lxml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["zbplugin"]

[tool.hatch.build.targets.sdist]
include = ["zbplugin", "tests"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
